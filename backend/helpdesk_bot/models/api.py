# /helpdesk_bot/models/api.py

from pydantic import BaseModel, Field, ConfigDict
from typing import Dict, Optional
from datetime import datetime

from helpdesk_bot.models.domain import OutboundMessage, Severity

# This file contains Pydantic models that define the structure of data for
# API requests and responses, ensuring type safety and validation.


class ChannelAccount(BaseModel):
    id: str
    name: Optional[str] = None


class ConversationAccount(BaseModel):
    id: str


class InboundActivity(BaseModel):
    """Subset of a messaging-channel activity the bot needs."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = "message"
    text: Optional[str] = None
    channel_id: str = Field(default="default", alias="channelId")
    from_: ChannelAccount = Field(..., alias="from")
    conversation: ConversationAccount


class MessageReply(BaseModel):
    conversation_id: str
    reply: Optional[OutboundMessage] = None


class TicketRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=200)
    severity: Severity
    description: str = Field(..., min_length=1, max_length=4000)


class APIResponse(BaseModel):
    success: bool
    message: str
    data: Optional[Dict] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    version: str
