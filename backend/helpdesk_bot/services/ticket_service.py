# /helpdesk_bot/services/ticket_service.py

import httpx
import logging

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.domain import TicketSubmission
from helpdesk_bot.models.errors import SubmissionFailed
from helpdesk_bot.utils.circuit_breaker import CircuitBreaker, CircuitOpenError
from helpdesk_bot.utils.metrics import external_calls_counter

logger = logging.getLogger(__name__)

# The ticket API answers -1 when it refused to create the ticket.
FAILED_TICKET_ID = -1


class TicketService:
    def __init__(self, base_url: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.circuit_breaker = CircuitBreaker("tickets")
        self.http_client = httpx.AsyncClient(timeout=httpx.Timeout(timeout))

    async def submit(self, ticket: TicketSubmission) -> int:
        """
        Create a ticket and return its identifier.

        Transport errors, non-2xx responses, unreadable bodies and the -1
        sentinel all raise SubmissionFailed. Submissions are not retried since
        the endpoint is not idempotent.
        """
        url = f"{self.base_url}/api/tickets"
        try:
            response = await self.circuit_breaker.call(
                self.http_client.post, url, json=ticket.model_dump(mode="json")
            )
            response.raise_for_status()
            ticket_id = response.json()
            if isinstance(ticket_id, bool) or not isinstance(ticket_id, int):
                raise ValueError(f"Ticket API returned a non-integer id: {ticket_id!r}")
        except (httpx.HTTPError, CircuitOpenError, ValueError, TypeError) as e:
            external_calls_counter.labels(service="tickets", status="error").inc()
            logger.error(f"ticket_submit_error: {e}")
            raise SubmissionFailed(f"Ticket submission failed: {e}") from e

        if ticket_id == FAILED_TICKET_ID:
            external_calls_counter.labels(service="tickets", status="rejected").inc()
            logger.warning("Ticket API rejected the submission (ticket id -1)")
            raise SubmissionFailed("Ticket API returned -1", ticket_id=ticket_id)

        external_calls_counter.labels(service="tickets", status="success").inc()
        logger.info(f"Ticket {ticket_id} created ({ticket.severity.value}/{ticket.category})")
        return ticket_id

    async def cleanup(self):
        await self.http_client.aclose()


# Globally accessible instance
ticket_service = TicketService(settings.ticket_submission_url, settings.ticket_timeout_seconds)
