"""SQLAlchemy models — portable across SQLite and PostgreSQL."""

import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, Index, String, Text

from bizzybot.database import Base


def utcnow():
    return datetime.now(timezone.utc)


def new_uuid():
    return str(uuid.uuid4())


# ── Interaction Event ───────────────────────────────────
class InteractionEvent(Base):
    """Append-only interaction fact. Lead state is derived from these rows only."""

    __tablename__ = "interaction_events"
    __table_args__ = (Index("ix_interaction_events_customer_created", "customer_id", "created_at"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    customer_id = Column(String(64), nullable=False, index=True)
    event_type = Column(String(50), nullable=False)  # hot_lead|appointment_scheduled|phone_request|message|<behavior tag>
    channel = Column(String(20), default="chat")  # email|sms|facebook|instagram|chat|voice
    metadata_ = Column("metadata", Text, default="{}")  # JSON: email, phone, name, company, location, message, value
    user_message = Column(Text, default="")
    ai_response = Column(Text, default="")
    confidence_score = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    @property
    def metadata_dict(self) -> dict:
        raw = self.metadata_
        if isinstance(raw, dict):
            return raw
        try:
            data = json.loads(raw or "{}")
        except (json.JSONDecodeError, TypeError):
            return {}
        return data if isinstance(data, dict) else {}


from bizzybot.models.lead_note import LeadNote  # noqa: E402

__all__ = ["InteractionEvent", "LeadNote", "new_uuid", "utcnow"]
