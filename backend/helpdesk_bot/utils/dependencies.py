# /helpdesk_bot/utils/dependencies.py

import secrets
import structlog
from fastapi import Request, HTTPException, status

from helpdesk_bot.config.settings import settings
from helpdesk_bot.utils.rate_limiter import get_client_ip

log = structlog.get_logger(__name__)

async def verify_channel_secret(request: Request):
    """Checks the shared secret the messaging channel connector sends, when one is configured."""
    if not settings.channel_secret:
        return
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not secrets.compare_digest(token, settings.channel_secret):
        log.warning("Rejected channel request with invalid credentials.", client_ip=get_client_ip(request))
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid channel credentials")

async def verify_metrics_access(request: Request):
    if settings.api_key:
        provided_key = request.headers.get("X-API-KEY")
        if not (provided_key and secrets.compare_digest(provided_key, settings.api_key)):
            raise HTTPException(status_code=403, detail="Invalid or missing API key")
