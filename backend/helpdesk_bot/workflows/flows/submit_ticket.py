# /helpdesk_bot/workflows/flows/submit_ticket.py

"""
SubmitTicket flow.

Collects severity, category and description (the triggering utterance),
asks for confirmation, then calls the ticket API and answers with the
confirmation card. Entities recognized by the classifier skip their prompt.
"""

import logging
from typing import Optional

from pydantic import ValidationError

from helpdesk_bot.config import strings
from helpdesk_bot.models.domain import (
    IntentResult,
    OutboundMessage,
    TicketSubmission,
    SEVERITY_CHOICES,
)
from helpdesk_bot.models.errors import SubmissionFailed, FlowContractError
from helpdesk_bot.models.flow import (
    Continue,
    End,
    PendingPrompt,
    PromptType,
    StepContext,
    StepResult,
    Suspend,
)

logger = logging.getLogger(__name__)


def _entity_severity(intent: Optional[IntentResult]) -> Optional[str]:
    entity = intent.find_entity("severity") if intent else None
    if entity is None:
        return None
    value = entity.resolved_value.strip().lower()
    return value if value in SEVERITY_CHOICES else None


def _entity_category(intent: Optional[IntentResult]) -> Optional[str]:
    entity = intent.find_entity("category") if intent else None
    if entity is None:
        return None
    return entity.resolved_value.strip() or None


async def collect_entities(ctx: StepContext, intent: Optional[IntentResult]) -> StepResult:
    data = ctx.dialog_data
    if category := _entity_category(intent):
        data["category"] = category
    if severity := _entity_severity(intent):
        data["severity"] = severity
    data["description"] = ctx.message_text

    if not data.get("severity"):
        return Suspend(PendingPrompt(
            prompt_type=PromptType.CHOICE,
            text=strings.SEVERITY_PROMPT,
            choices=list(SEVERITY_CHOICES),
        ))
    return Continue()


async def collect_severity(ctx: StepContext, answer: Optional[str]) -> StepResult:
    data = ctx.dialog_data
    if not data.get("severity"):
        data["severity"] = answer

    if not data.get("category"):
        return Suspend(PendingPrompt(prompt_type=PromptType.TEXT, text=strings.CATEGORY_PROMPT))
    return Continue()


async def confirm_ticket(ctx: StepContext, answer: Optional[str]) -> StepResult:
    data = ctx.dialog_data
    if not data.get("category"):
        data["category"] = answer

    return Suspend(PendingPrompt(
        prompt_type=PromptType.CONFIRM,
        text=strings.TICKET_CONFIRMATION_PROMPT.format(
            severity=data["severity"],
            category=data["category"],
            description=data["description"],
        ),
    ))


async def submit_ticket(ctx: StepContext, confirmed: bool) -> StepResult:
    if not confirmed:
        return End(OutboundMessage(text=strings.TICKET_CANCELLED))

    data = ctx.dialog_data
    missing = [f for f in ("category", "severity", "description") if not data.get(f)]
    if missing:
        raise FlowContractError(f"SubmitTicket reached submission without {missing}")
    try:
        ticket = TicketSubmission(
            category=data["category"],
            severity=data["severity"],
            description=data["description"],
        )
    except ValidationError as e:
        raise FlowContractError(f"SubmitTicket collected an invalid ticket: {e}") from e

    try:
        ticket_id = await ctx.tickets.submit(ticket)
    except SubmissionFailed as e:
        logger.warning(f"Ticket submission failed for {ctx.session.key}: {e}")
        return End(OutboundMessage(text=strings.TICKET_SUBMISSION_FAILED))

    card = ctx.cards.create_ticket_card(ticket_id, ticket)
    return End(OutboundMessage(attachments=[card]))


SUBMIT_TICKET_STEPS = (collect_entities, collect_severity, confirm_ticket, submit_ticket)
