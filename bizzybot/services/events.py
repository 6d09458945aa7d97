"""Interaction events — the immutable facts every lead view is derived from."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class Channel(str, Enum):
    EMAIL = "email"
    SMS = "sms"
    FACEBOOK = "facebook"
    INSTAGRAM = "instagram"
    CHAT = "chat"
    VOICE = "voice"


# Event types the scoring engine gives special weight to
HOT_LEAD = "hot_lead"
APPOINTMENT_SCHEDULED = "appointment_scheduled"
PHONE_REQUEST = "phone_request"
PRICING_DISCUSSED = "pricing_discussed"
MESSAGE = "message"

# Values upstream producers write when a field was not captured
PLACEHOLDER_VALUES = {"", "unknown", "not provided", "n/a", "na", "none", "null"}

_DIGITS = re.compile(r"\D+")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize naive datetimes (SQLite) to UTC-aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def clean_text(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if text.lower() in PLACEHOLDER_VALUES:
        return None
    return text


def normalize_phone(value) -> Optional[str]:
    text = clean_text(value)
    if not text:
        return None
    digits = _DIGITS.sub("", text)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits or None


@dataclass(frozen=True)
class EventRecord:
    """Storage-independent view of one interaction event."""

    id: str
    customer_id: str
    event_type: str
    channel: str
    created_at: datetime
    metadata: dict = field(default_factory=dict)
    user_message: str = ""
    ai_response: str = ""
    confidence_score: Optional[float] = None

    def _meta(self, *keys: str) -> Optional[str]:
        for key in keys:
            value = clean_text(self.metadata.get(key))
            if value:
                return value
        return None

    @property
    def email(self) -> Optional[str]:
        return self._meta("email", "contact_email")

    @property
    def phone(self) -> Optional[str]:
        return self._meta("phone", "contact_phone")

    @property
    def name(self) -> Optional[str]:
        return self._meta("name", "contact_name")

    @property
    def company(self) -> Optional[str]:
        return self._meta("company")

    @property
    def location(self) -> Optional[str]:
        return self._meta("location")

    @property
    def message(self) -> Optional[str]:
        return clean_text(self.user_message) or self._meta("message")

    @property
    def value(self) -> float:
        raw = self.metadata.get("value")
        if isinstance(raw, bool) or raw is None:
            return 0.0
        if isinstance(raw, str):
            raw = raw.replace("$", "").replace(",", "").strip()
        try:
            return max(0.0, float(raw))
        except (TypeError, ValueError):
            return 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "channel": self.channel,
            "created_at": self.created_at.isoformat(),
            "metadata": self.metadata,
            "user_message": self.user_message,
            "ai_response": self.ai_response,
            "confidence_score": self.confidence_score,
        }


async def record_event(
    store,
    customer_id: str,
    event_type: str,
    channel: str = Channel.CHAT.value,
    metadata: Optional[dict] = None,
    created_at: Optional[datetime] = None,
    user_message: str = "",
    ai_response: str = "",
    confidence_score: Optional[float] = None,
) -> EventRecord:
    """Validate and append one event. Only customer_id and event_type are mandatory."""
    customer_id = (customer_id or "").strip() if isinstance(customer_id, str) else customer_id
    event_type = (event_type or "").strip() if isinstance(event_type, str) else event_type
    if not customer_id:
        raise ValueError("customer_id is required")
    if not event_type:
        raise ValueError("event_type is required")

    channel = (channel.value if isinstance(channel, Channel) else str(channel or Channel.CHAT.value)).lower()
    if channel not in {c.value for c in Channel}:
        raise ValueError(f"Unknown channel: {channel}")

    record = await store.append(
        customer_id=str(customer_id),
        event_type=event_type,
        channel=channel,
        metadata=dict(metadata or {}),
        created_at=as_utc(created_at),
        user_message=user_message or "",
        ai_response=ai_response or "",
        confidence_score=confidence_score,
    )
    logger.info(f"Event recorded: customer={record.customer_id} type={record.event_type} channel={record.channel}")
    return record
