# /helpdesk_bot/models/domain.py

from enum import Enum
from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field, field_validator

# This file defines the core Pydantic models exchanged between the dialog
# engine and its collaborators (classifier, search index, ticket API).


class Severity(str, Enum):
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


SEVERITY_CHOICES: List[str] = [s.value for s in Severity]


class TicketSubmission(BaseModel):
    category: str = Field(..., min_length=1)
    severity: Severity
    description: str = Field(..., min_length=1)

    @field_validator("category", "description")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v


# --- Intent classification ---

class Entity(BaseModel):
    type: str
    value: str
    confidence: Optional[float] = None
    resolution: List[str] = Field(default_factory=list)

    @property
    def resolved_value(self) -> str:
        """Canonical value when the classifier resolved one, else the matched text."""
        return self.resolution[0] if self.resolution else self.value


class IntentResult(BaseModel):
    intent: str
    entities: List[Entity] = Field(default_factory=list)
    top_score: float = 0.0
    query: Optional[str] = None

    def find_entity(self, entity_type: str) -> Optional[Entity]:
        for entity in self.entities:
            if entity.type == entity_type:
                return entity
        return None


# --- Knowledge base search ---

class SearchItem(BaseModel):
    title: str
    category: Optional[str] = None
    text: str = ""
    score: Optional[float] = None

    @classmethod
    def from_index_document(cls, doc: Dict[str, Any]) -> "SearchItem":
        return cls(
            title=doc.get("title", ""),
            category=doc.get("category"),
            text=doc.get("text") or "",
            score=doc.get("@search.score"),
        )


class FacetValue(BaseModel):
    value: str
    count: int = 0


class SearchResult(BaseModel):
    items: List[SearchItem] = Field(default_factory=list)
    facets: Dict[str, List[FacetValue]] = Field(default_factory=dict)


# --- Outbound messages ---

class CardAction(BaseModel):
    type: str = "postBack"
    title: str
    value: str


class Attachment(BaseModel):
    content_type: str
    content: Dict[str, Any]


class OutboundMessage(BaseModel):
    text: Optional[str] = None
    attachments: List[Attachment] = Field(default_factory=list)
    attachment_layout: str = "list"
    suggested_actions: List[CardAction] = Field(default_factory=list)
