"""Pydantic schemas for API request/response."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from bizzybot.services.events import Channel


# ── Event ────────────────────────────────────────────────
class EventCreate(BaseModel):
    customer_id: str = Field(min_length=1, max_length=64)
    event_type: str = Field(min_length=1, max_length=50)
    channel: Channel = Channel.CHAT
    metadata: dict = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    user_message: str = ""
    ai_response: str = ""
    confidence_score: Optional[float] = Field(default=None, ge=0, le=1)


class EventOut(BaseModel):
    id: str
    customer_id: str
    event_type: str
    channel: str
    metadata: dict
    user_message: str
    ai_response: str
    confidence_score: Optional[float] = None
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_record(cls, record):
        return cls(
            id=record.id,
            customer_id=record.customer_id,
            event_type=record.event_type,
            channel=record.channel,
            metadata=record.metadata,
            user_message=record.user_message or "",
            ai_response=record.ai_response or "",
            confidence_score=record.confidence_score,
            created_at=record.created_at,
        )


# ── Lead Notes ───────────────────────────────────────────
class NoteIn(BaseModel):
    notes: str = Field(default="", max_length=10000)
    updated_by: str = Field(default="user", max_length=200)


class NoteOut(BaseModel):
    customer_id: str
    lead_id: str
    notes: str
    updated_by: str
    updated_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class NoteEnvelope(BaseModel):
    notes: Optional[NoteOut] = None
    history: list[NoteOut] = Field(default_factory=list)


# ── Behaviors ────────────────────────────────────────────
class BehaviorAnalyzeRequest(BaseModel):
    ai_response: str
    user_message: str = ""
    channel: Channel = Channel.EMAIL
    customer_id: Optional[str] = None
    track: bool = False
    metadata: dict = Field(default_factory=dict)


class BehaviorEventOut(BaseModel):
    type: str
    confidence: float
    data: dict = Field(default_factory=dict)


class HotLeadSignals(BaseModel):
    is_hot_lead: bool
    score: int
    confidence: float
    signals: list[str]
    reasoning: str


class BehaviorAnalyzeResponse(BaseModel):
    behaviors: list[BehaviorEventOut]
    hot_lead: HotLeadSignals
    tracked: int = 0


# ── Message Classification ───────────────────────────────
class ConversationTurn(BaseModel):
    role: str = "user"
    content: str = ""


class ClassifyRequest(BaseModel):
    message: str
    history: list[ConversationTurn] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)  # customer-specific hot keywords
    customer_id: Optional[str] = None
    channel: Channel = Channel.CHAT
    metadata: dict = Field(default_factory=dict)


class ClassificationOut(BaseModel):
    score: float
    is_hot_lead: bool
    reasoning: str
    keywords: list[str]
    urgency: str
    next_action: str
    method: str
    event_id: Optional[str] = None
