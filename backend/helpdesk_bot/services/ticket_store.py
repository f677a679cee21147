# /helpdesk_bot/services/ticket_store.py

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Any

from helpdesk_bot.models.domain import TicketSubmission

# Backing store for the local /api/tickets endpoint. Tickets live in process
# memory only; a real deployment points TICKET_SUBMISSION_URL elsewhere.

logger = logging.getLogger(__name__)


class TicketStore:
    def __init__(self):
        self._tickets: List[Dict[str, Any]] = []
        self._last_id = 0
        self._lock = asyncio.Lock()

    async def create(self, ticket: TicketSubmission) -> int:
        async with self._lock:
            self._last_id += 1
            record = ticket.model_dump(mode="json")
            record["id"] = self._last_id
            record["created_at"] = datetime.utcnow().isoformat()
            self._tickets.append(record)
            logger.info(f"Ticket received: {record}")
            return self._last_id

    def all(self) -> List[Dict[str, Any]]:
        return list(self._tickets)


# Globally accessible instance
ticket_store = TicketStore()
