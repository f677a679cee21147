# /helpdesk_bot/workflows/engine.py

"""
Dialog engine.

Routes an inbound message to the right flow and runs that flow's steps
until one of them suspends on a prompt or the flow ends:

1. A session with a pending prompt treats the message as the answer and
   resumes the suspended flow (invalid answers re-issue the same prompt).
2. Otherwise textual triggers are tried in order.
3. Otherwise the intent classifier picks a flow, or the bot falls back to
   the "did not understand" message.

Each step returns a tagged result (Continue, Suspend, End, Replace) that the
engine interprets. Messages for the same conversation are handled strictly
one at a time, also across workers sharing a Redis session store;
different conversations run concurrently.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Pattern, Tuple

from helpdesk_bot.config import strings
from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.conversation import ConversationSession
from helpdesk_bot.models.domain import OutboundMessage
from helpdesk_bot.models.errors import ClassificationError, FlowContractError, PromptValidationError, SessionBusy
from helpdesk_bot.models.flow import Continue, End, FlowFrame, Replace, StepContext, Suspend
from helpdesk_bot.services.card_service import card_service
from helpdesk_bot.services.intent_service import intent_service
from helpdesk_bot.services.search_service import search_service
from helpdesk_bot.services.session_store import SessionLocks, SessionStore, session_store
from helpdesk_bot.services.ticket_service import ticket_service
from helpdesk_bot.utils.alerting import alerting_service
from helpdesk_bot.utils.metrics import chat_messages_counter, dialog_errors_counter, flow_runs_counter
from helpdesk_bot.workflows.definitions import FLOWS, INTENT_TRIGGERS, TEXT_TRIGGERS, FlowDefinition
from helpdesk_bot.workflows.validator import parse_answer

logger = logging.getLogger(__name__)

# Upper bound on Continue/Replace hops within one inbound message.
MAX_STEPS_PER_TURN = 25


class DialogEngine:
    def __init__(
        self,
        classifier,
        search,
        tickets,
        cards,
        store: SessionStore,
        flows: Optional[Dict[str, FlowDefinition]] = None,
        text_triggers: Optional[List[Tuple[Pattern, str]]] = None,
        intent_triggers: Optional[Dict[str, str]] = None,
        confidence_threshold: float = 0.0,
        max_prompt_retries: Optional[int] = None,
        alerting=None,
    ):
        self.classifier = classifier
        self.search = search
        self.tickets = tickets
        self.cards = cards
        self.store = store
        self.flows = flows if flows is not None else FLOWS
        self.text_triggers = text_triggers if text_triggers is not None else TEXT_TRIGGERS
        self.intent_triggers = intent_triggers if intent_triggers is not None else INTENT_TRIGGERS
        self.confidence_threshold = confidence_threshold
        self.max_prompt_retries = max_prompt_retries
        self.alerting = alerting
        self.locks = SessionLocks()

    # --- Public API ---

    async def handle_message(self, conversation_id: str, message_text: str) -> Optional[OutboundMessage]:
        """Handle one inbound message and return the reply, if any."""
        text = (message_text or "").strip()
        # The local lock keeps same-process turns off the shared store lock.
        async with self.locks.hold(conversation_id):
            try:
                async with self.store.lock(conversation_id):
                    return await self._route(conversation_id, text)
            except SessionBusy as e:
                chat_messages_counter.labels(route="busy").inc()
                logger.warning(f"Conversation {conversation_id} is busy: {e}")
                return OutboundMessage(text=strings.CONVERSATION_BUSY)

    async def reset(self, conversation_id: str) -> None:
        """Cancel whatever the conversation is doing. Raises SessionBusy if it stays locked."""
        async with self.locks.hold(conversation_id):
            async with self.store.lock(conversation_id):
                await self.store.delete(conversation_id)
                logger.info(f"Dialog session {conversation_id} reset")

    # --- Routing ---

    async def _route(self, conversation_id: str, text: str) -> Optional[OutboundMessage]:
        session = await self.store.get(conversation_id)
        if session is None:
            session = ConversationSession(key=conversation_id)
        session.last_message_text = text
        session.updated_at = datetime.utcnow()

        if session.pending_prompt is not None:
            if session.pending_prompt.flow_name in self.flows and session.active_frame is not None:
                chat_messages_counter.labels(route="prompt_answer").inc()
                return await self._resume(session, text)
            logger.warning(f"Dropping stale prompt for unknown flow '{session.pending_prompt.flow_name}' in {conversation_id}")
            session = ConversationSession(key=conversation_id, last_message_text=text)

        for pattern, flow_name in self.text_triggers:
            match = pattern.match(text)
            if match:
                chat_messages_counter.labels(route="text_trigger").inc()
                return await self._start(session, flow_name, match.group(1) if match.groups() else text)

        try:
            intent = await self.classifier.classify(text)
        except ClassificationError as e:
            chat_messages_counter.labels(route="classifier_error").inc()
            logger.error(f"Classifier unavailable for {conversation_id}: {e}")
            return OutboundMessage(text=strings.CLASSIFIER_UNAVAILABLE)

        flow_name = self.intent_triggers.get(intent.intent)
        if flow_name is None or intent.top_score < self.confidence_threshold:
            chat_messages_counter.labels(route="fallback").inc()
            logger.info(f"No flow for intent '{intent.intent}' (score {intent.top_score:.2f})")
            return OutboundMessage(text=strings.NOT_UNDERSTOOD.format(text=text))

        chat_messages_counter.labels(route="intent").inc()
        return await self._start(session, flow_name, intent)

    # --- Flow execution ---

    async def _start(self, session: ConversationSession, flow_name: str, args: Any) -> Optional[OutboundMessage]:
        logger.info(f"Starting flow '{flow_name}' for {session.key}")
        flow_runs_counter.labels(flow=flow_name, outcome="started").inc()
        session.flow_stack = [FlowFrame(flow_name=flow_name)]
        session.pending_prompt = None
        session.prompt_attempts = 0
        return await self._run_steps(session, args)

    async def _resume(self, session: ConversationSession, text: str) -> Optional[OutboundMessage]:
        prompt = session.pending_prompt
        try:
            answer = parse_answer(prompt, text)
        except PromptValidationError as e:
            session.prompt_attempts += 1
            if self.max_prompt_retries is not None and session.prompt_attempts > self.max_prompt_retries:
                logger.info(f"Giving up on prompt in '{prompt.flow_name}' for {session.key} after {session.prompt_attempts} invalid answers")
                return await self._end(session, OutboundMessage(text=strings.PROMPT_RETRIES_EXCEEDED), "abandoned")
            logger.info(f"Re-prompting {session.key}: {e}")
            await self.store.save(session)
            return prompt.to_message()

        session.pending_prompt = None
        session.prompt_attempts = 0
        session.active_frame.step_index = prompt.step_index
        return await self._run_steps(session, answer)

    async def _run_steps(self, session: ConversationSession, args: Any) -> Optional[OutboundMessage]:
        for _ in range(MAX_STEPS_PER_TURN):
            frame = session.active_frame
            flow = self.flows.get(frame.flow_name)
            if flow is None:
                return await self._fail(session, FlowContractError(f"Unknown flow '{frame.flow_name}'"))

            if frame.step_index >= len(flow):
                return await self._end(session, None, "completed")

            step = flow.steps[frame.step_index]
            ctx = StepContext(
                session=session,
                frame=frame,
                message_text=session.last_message_text or "",
                search=self.search,
                tickets=self.tickets,
                cards=self.cards,
            )
            try:
                result = await step(ctx, args)
            except Exception as e:
                return await self._fail(session, e)

            if isinstance(result, Continue):
                frame.step_index += 1
                args = result.data
            elif isinstance(result, Suspend):
                frame.step_index += 1
                session.pending_prompt = result.prompt.model_copy(
                    update={"flow_name": frame.flow_name, "step_index": frame.step_index}
                )
                await self.store.save(session)
                return session.pending_prompt.to_message()
            elif isinstance(result, End):
                return await self._end(session, result.message, "completed")
            elif isinstance(result, Replace):
                logger.info(f"Flow '{frame.flow_name}' replaced by '{result.flow_name}' for {session.key}")
                flow_runs_counter.labels(flow=frame.flow_name, outcome="replaced").inc()
                session.flow_stack[-1] = FlowFrame(flow_name=result.flow_name)
                args = result.payload
            else:
                return await self._fail(session, FlowContractError(f"Step {step.__name__} returned {result!r}"))

        return await self._fail(session, FlowContractError(f"More than {MAX_STEPS_PER_TURN} steps in one turn"))

    async def _end(self, session: ConversationSession, message: Optional[OutboundMessage], outcome: str) -> Optional[OutboundMessage]:
        frame = session.active_frame
        if frame is not None:
            flow_runs_counter.labels(flow=frame.flow_name, outcome=outcome).inc()
        session.flow_stack.clear()
        session.pending_prompt = None
        await self.store.delete(session.key)
        return message

    async def _fail(self, session: ConversationSession, error: Exception) -> OutboundMessage:
        frame = session.active_frame
        flow_name = frame.flow_name if frame else "unknown"
        logger.error(f"Flow '{flow_name}' failed for {session.key}: {error}", exc_info=error)
        dialog_errors_counter.labels(flow=flow_name).inc()
        if self.alerting is not None:
            await self.alerting.send_critical_alert(
                "Dialog step failed",
                {"conversation": session.key, "flow": flow_name, "error": str(error)},
            )
        await self._end(session, None, "failed")
        return OutboundMessage(text=strings.GENERIC_ERROR)


# Globally accessible instance
dialog_engine = DialogEngine(
    classifier=intent_service,
    search=search_service,
    tickets=ticket_service,
    cards=card_service,
    store=session_store,
    confidence_threshold=settings.intent_confidence_threshold,
    max_prompt_retries=settings.max_prompt_retries,
    alerting=alerting_service,
)
