# /helpdesk_bot/services/card_service.py

import re
import json
import logging
from typing import Any, Dict, Optional

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.domain import Attachment, TicketSubmission

# Renders the ticket confirmation card. Placeholders are substituted inside
# the parsed JSON string values, so user text containing quotes or braces
# can never break the card structure.

logger = logging.getLogger(__name__)

ADAPTIVE_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.adaptive"
THUMBNAIL_CARD_CONTENT_TYPE = "application/vnd.microsoft.card.thumbnail"

_PLACEHOLDER_RE = re.compile(r"\{(ticketId|severity|category|description)\}")


def _substitute(node: Any, values: Dict[str, str]) -> Any:
    if isinstance(node, str):
        return _PLACEHOLDER_RE.sub(lambda m: values[m.group(1)], node)
    if isinstance(node, list):
        return [_substitute(item, values) for item in node]
    if isinstance(node, dict):
        return {key: _substitute(value, values) for key, value in node.items()}
    return node


class CardService:
    def __init__(self, template_path: str):
        self.template_path = template_path
        self._template: Optional[Dict[str, Any]] = None

    def load_template(self) -> Dict[str, Any]:
        if self._template is None:
            with open(self.template_path, encoding="utf-8") as fh:
                self._template = json.load(fh)
            logger.info(f"Loaded ticket card template from {self.template_path}")
        return self._template

    def create_ticket_card(self, ticket_id: int, ticket: TicketSubmission) -> Attachment:
        values = {
            "ticketId": str(ticket_id),
            "severity": ticket.severity.value,
            "category": ticket.category,
            "description": ticket.description,
        }
        content = _substitute(self.load_template(), values)
        return Attachment(content_type=ADAPTIVE_CARD_CONTENT_TYPE, content=content)


# Globally accessible instance
card_service = CardService(settings.card_template_path)
