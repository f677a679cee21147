# /helpdesk_bot/utils/alerting.py

import time
import httpx
import structlog
from typing import Optional, Dict, Any, Tuple
from datetime import datetime

from helpdesk_bot.config.settings import settings

# Posts critical alerts to an external webhook when a dialog step blows up.
# One broken collaborator can fail every conversation at once, so identical
# alerts (same title and flow) are sent at most once per cooldown window.

log = structlog.get_logger(__name__)


class AlertingService:
    def __init__(self, webhook_url: Optional[str], cooldown_seconds: int = 300):
        self.webhook_url = webhook_url
        self.cooldown_seconds = cooldown_seconds
        self.client = httpx.AsyncClient(timeout=5.0) if webhook_url else None
        self._last_sent: Dict[Tuple[str, str], float] = {}

    def _should_send(self, title: str, context: Dict[str, Any]) -> bool:
        fingerprint = (title, str(context.get("flow", "")))
        now = time.monotonic()
        last = self._last_sent.get(fingerprint)
        if last is not None and now - last < self.cooldown_seconds:
            return False
        self._last_sent[fingerprint] = now
        return True

    async def send_critical_alert(self, title: str, context: Dict[str, Any]) -> bool:
        """Returns True when an alert was actually posted."""
        if not self.client:
            return False
        if not self._should_send(title, context):
            log.debug("Alert suppressed during cooldown", title=title, flow=context.get("flow"))
            return False

        payload = {
            "severity": "critical",
            "service": "helpdesk-bot",
            "title": title,
            "context": context,
            "environment": settings.environment,
            "timestamp": datetime.utcnow().isoformat(),
        }
        try:
            response = await self.client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            log.error("Failed to send critical alert", title=title, error=str(e))
            return False
        return True

    async def cleanup(self):
        if self.client:
            await self.client.aclose()


# Globally accessible instance
alerting_service = AlertingService(settings.alerting_webhook_url, settings.alert_cooldown_seconds)
