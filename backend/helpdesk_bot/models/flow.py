# /helpdesk_bot/models/flow.py

from enum import Enum
from dataclasses import dataclass
from typing import Optional, List, Dict, Any, Union, TYPE_CHECKING
from pydantic import BaseModel, Field

from helpdesk_bot.models.domain import OutboundMessage, CardAction

if TYPE_CHECKING:
    from helpdesk_bot.models.conversation import ConversationSession


class PromptType(str, Enum):
    TEXT = "text"
    CHOICE = "choice"
    CONFIRM = "confirm"


class PendingPrompt(BaseModel):
    """
    A question the bot is waiting on. Stored on the session while a flow is
    suspended so the next inbound message can resume the right step.
    """
    flow_name: str = ""
    step_index: int = 0
    prompt_type: PromptType = PromptType.TEXT
    text: str
    choices: List[str] = Field(default_factory=list)

    def to_message(self) -> OutboundMessage:
        if self.prompt_type == PromptType.CHOICE:
            actions = [CardAction(type="imBack", title=c, value=c) for c in self.choices]
        elif self.prompt_type == PromptType.CONFIRM:
            actions = [CardAction(type="imBack", title=c, value=c) for c in ("Yes", "No")]
        else:
            actions = []
        return OutboundMessage(text=self.text, suggested_actions=actions)


class FlowFrame(BaseModel):
    """One active flow invocation on a session's flow stack."""
    flow_name: str
    step_index: int = 0
    dialog_data: Dict[str, Any] = Field(default_factory=dict)


# --- Step results ---

@dataclass
class Continue:
    """Run the next step now, passing `data` as its input."""
    data: Any = None


@dataclass
class Suspend:
    """Ask the user something; the next step resumes with the parsed answer."""
    prompt: PendingPrompt


@dataclass
class End:
    """Finish the flow (and everything stacked on it) with a final message."""
    message: Optional[OutboundMessage] = None


@dataclass
class Replace:
    """Hand control to another flow for good, starting it with `payload`."""
    flow_name: str
    payload: Any = None


StepResult = Union[Continue, Suspend, End, Replace]


@dataclass
class StepContext:
    """What a step can see: the session, its own frame and the collaborators."""
    session: "ConversationSession"
    frame: FlowFrame
    message_text: str
    search: Any = None
    tickets: Any = None
    cards: Any = None

    @property
    def dialog_data(self) -> Dict[str, Any]:
        return self.frame.dialog_data
