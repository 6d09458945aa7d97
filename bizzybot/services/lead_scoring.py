"""Lead scoring engine — aggregate 0-100 lead score and HOT/WARM/COLD temperature from event history."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Sequence

from bizzybot.services.events import (
    APPOINTMENT_SCHEDULED,
    HOT_LEAD,
    PHONE_REQUEST,
    PRICING_DISCUSSED,
    EventRecord,
    as_utc,
)


class Temperature(str, Enum):
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


HOT_THRESHOLD = 70
WARM_THRESHOLD = 40

# ── Component tiers ────────────────────────────────────
# Checked in order; first matching entry wins.
INTENT_TIERS = [
    (HOT_LEAD, 20),
    (APPOINTMENT_SCHEDULED, 15),
    (PHONE_REQUEST, 10),
]
INTENT_BASELINE = 5

VOLUME_TIERS = [  # (minimum event count, points)
    (10, 20),
    (6, 15),
    (3, 10),
    (0, 5),
]

RECENCY_BANDS = [  # (newest event younger than, points)
    (timedelta(days=1), 20),
    (timedelta(days=3), 15),
    (timedelta(days=7), 10),
    (timedelta(days=14), 5),
]

FREQUENCY_TIERS = [  # (minimum distinct active days, points)
    (5, 20),
    (3, 15),
    (2, 10),
    (0, 5),
]

ENGAGEMENT_MAX = 40

# Potential value by strongest signal, matching the subscription tiers
VALUE_TIERS = [
    (APPOINTMENT_SCHEDULED, 497),
    (HOT_LEAD, 297),
    (PRICING_DISCUSSED, 197),
]
VALUE_BASELINE = 97


@dataclass(frozen=True)
class ScoreBreakdown:
    engagement: int
    recency: int
    contact: int
    frequency: int

    @property
    def total(self) -> int:
        return self.engagement + self.recency + self.contact + self.frequency

    def to_dict(self) -> dict:
        return {
            "engagement": self.engagement,
            "recency": self.recency,
            "contact": self.contact,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class LeadScore:
    score: int
    temperature: Temperature
    breakdown: ScoreBreakdown

    def to_dict(self) -> dict:
        return {
            "score": self.score,
            "temperature": self.temperature.value,
            "breakdown": self.breakdown.to_dict(),
        }


def _tier(value: int, tiers) -> int:
    for minimum, points in tiers:
        if value >= minimum:
            return points
    return 0


def calculate_engagement_score(events: Sequence[EventRecord]) -> int:
    """Intent signal (max 20) plus interaction volume (max 20)."""
    types = {e.event_type for e in events}
    intent = INTENT_BASELINE
    for event_type, points in INTENT_TIERS:
        if event_type in types:
            intent = points
            break
    volume = _tier(len(events), VOLUME_TIERS)
    return min(ENGAGEMENT_MAX, intent + volume)


def calculate_recency_score(last_activity: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Banded 0-20 score from the age of the newest event."""
    if not last_activity:
        return 0
    now = as_utc(now) or datetime.now(timezone.utc)
    age = now - as_utc(last_activity)
    if age < timedelta(0):
        age = timedelta(0)
    for limit, points in RECENCY_BANDS:
        if age < limit:
            return points
    return 0


def calculate_contact_score(events: Sequence[EventRecord]) -> int:
    """10 if an email was ever captured, plus 10 if a phone was ever captured."""
    score = 0
    if any(e.email for e in events):
        score += 10
    if any(e.phone for e in events):
        score += 10
    return score


def calculate_frequency_score(events: Sequence[EventRecord]) -> int:
    """Score 5-20 from the number of distinct UTC calendar days with activity."""
    days = {as_utc(e.created_at).date() for e in events}
    return _tier(len(days), FREQUENCY_TIERS)


def _score_to_temperature(
    score: float, hot_threshold: int = HOT_THRESHOLD, warm_threshold: int = WARM_THRESHOLD
) -> Temperature:
    if score >= hot_threshold:
        return Temperature.HOT
    if score >= warm_threshold:
        return Temperature.WARM
    return Temperature.COLD


def aggregate_lead_temperature(
    events: Sequence[EventRecord],
    now: Optional[datetime] = None,
    hot_threshold: int = HOT_THRESHOLD,
    warm_threshold: int = WARM_THRESHOLD,
) -> LeadScore:
    """
    Score one contact's full history.

    The result depends only on the event set and `now`; recency makes it
    decay as `now` advances even without new events.
    """
    if not events:
        raise ValueError("Cannot score a contact without events")
    now = as_utc(now) or datetime.now(timezone.utc)
    last_activity = max(as_utc(e.created_at) for e in events)

    breakdown = ScoreBreakdown(
        engagement=calculate_engagement_score(events),
        recency=calculate_recency_score(last_activity, now),
        contact=calculate_contact_score(events),
        frequency=calculate_frequency_score(events),
    )
    score = int(min(100, max(0, breakdown.total)))
    return LeadScore(
        score=score,
        temperature=_score_to_temperature(score, hot_threshold, warm_threshold),
        breakdown=breakdown,
    )


def estimate_lead_value(events: Sequence[EventRecord]) -> int:
    """Likely plan value from the strongest buying signal seen."""
    types = {e.event_type for e in events}
    for event_type, value in VALUE_TIERS:
        if event_type in types:
            return value
    return VALUE_BASELINE


def recorded_value(events: Sequence[EventRecord]) -> float:
    """Sum of monetary values reported in event metadata."""
    return round(sum(e.value for e in events), 2)
