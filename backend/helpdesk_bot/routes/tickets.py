# /helpdesk_bot/routes/tickets.py

import structlog
from fastapi import APIRouter, status

from helpdesk_bot.models.api import TicketRequest
from helpdesk_bot.models.domain import TicketSubmission
from helpdesk_bot.services.ticket_store import ticket_store

# Local ticket API. The dialog engine posts here by default
# (TICKET_SUBMISSION_URL) and gets the new ticket id back as the body.

router = APIRouter(
    tags=["Tickets"]
)

log = structlog.get_logger(__name__)


@router.post("/tickets", status_code=status.HTTP_201_CREATED, response_model=int)
async def create_ticket(payload: TicketRequest) -> int:
    ticket = TicketSubmission(**payload.model_dump())
    ticket_id = await ticket_store.create(ticket)
    log.info("Ticket created", ticket_id=ticket_id, severity=ticket.severity.value, category=ticket.category)
    return ticket_id
