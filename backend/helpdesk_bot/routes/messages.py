# /helpdesk_bot/routes/messages.py

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from helpdesk_bot.config.settings import settings
from helpdesk_bot.models.api import InboundActivity, MessageReply, APIResponse
from helpdesk_bot.models.conversation import conversation_key
from helpdesk_bot.models.errors import SessionBusy
from helpdesk_bot.utils.dependencies import verify_channel_secret
from helpdesk_bot.utils.metrics import response_time_histogram
from helpdesk_bot.utils.rate_limiter import limiter
from helpdesk_bot.workflows.engine import dialog_engine

# Inbound chat messages from the messaging channel connector. Each message
# is handed to the dialog engine and the reply is returned in the response.

router = APIRouter(
    tags=["Messages"],
    dependencies=[Depends(verify_channel_secret)]
)

log = structlog.get_logger(__name__)


@router.post("/messages", response_model=MessageReply)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def receive_message(request: Request, activity: InboundActivity):
    """Routes one user message through the dialog engine."""
    key = conversation_key(activity.channel_id, activity.from_.id, activity.conversation.id)

    if activity.type != "message":
        log.debug("Ignoring non-message activity", activity_type=activity.type, conversation=key)
        return MessageReply(conversation_id=key)

    with response_time_histogram.labels(endpoint="messages").time():
        log.info("Chat message received", conversation=key)
        reply = await dialog_engine.handle_message(key, activity.text or "")
    return MessageReply(conversation_id=key, reply=reply)


@router.delete("/conversations/{conversation_id}", response_model=APIResponse)
async def reset_conversation(conversation_id: str):
    """Cancels any flow the conversation is in."""
    try:
        await dialog_engine.reset(conversation_id)
    except SessionBusy:
        log.warning("Conversation reset refused, still locked", conversation=conversation_id)
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Conversation is busy")
    log.info("Conversation reset", conversation=conversation_id)
    return APIResponse(success=True, message="Conversation reset", version=settings.api_version)
