# /helpdesk_bot/models/conversation.py

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from helpdesk_bot.models.flow import FlowFrame, PendingPrompt


def conversation_key(channel_id: str, user_id: str, conversation_id: str) -> str:
    """Sessions are keyed by channel, user and conversation together."""
    return f"{channel_id}:{user_id}:{conversation_id}"


class ConversationSession(BaseModel):
    """Dialog state for one conversation, persisted between turns."""
    key: str = Field(..., description="channel:user:conversation identifier")
    flow_stack: List[FlowFrame] = Field(default_factory=list, description="Active flow invocations, innermost last")
    pending_prompt: Optional[PendingPrompt] = Field(default=None, description="Prompt awaiting an answer")
    prompt_attempts: int = Field(default=0, description="Invalid answers given to the pending prompt")
    last_message_text: Optional[str] = Field(default=None, description="Text of the last inbound message")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def active_frame(self) -> Optional[FlowFrame]:
        if not self.flow_stack:
            return None
        return self.flow_stack[-1]
