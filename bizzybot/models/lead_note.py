"""Lead notes — one mutable note per (customer, lead)."""

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint

from bizzybot.database import Base
from bizzybot.models import new_uuid, utcnow


class LeadNote(Base):
    """Free-text note a business user keeps on a lead; upserted on every save."""

    __tablename__ = "lead_notes"
    __table_args__ = (UniqueConstraint("customer_id", "lead_id", name="uq_lead_notes_customer_lead"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    customer_id = Column(String(64), nullable=False, index=True)
    lead_id = Column(String(64), nullable=False)
    notes = Column(Text, default="")
    updated_by = Column(String(200), default="")
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    created_at = Column(DateTime(timezone=True), default=utcnow)
