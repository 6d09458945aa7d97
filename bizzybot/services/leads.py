"""Leads service — scored contact listing, lead detail view and lead analytics."""

import logging
import re
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from pydantic import BaseModel, Field

from bizzybot.config import get_settings
from bizzybot.repositories.base import NoteRecord
from bizzybot.services.events import APPOINTMENT_SCHEDULED, PHONE_REQUEST, Channel, as_utc, normalize_phone
from bizzybot.services.identity import ContactIndexCache, ResolvedContact, load_contacts
from bizzybot.services.lead_scoring import (
    HOT_THRESHOLD,
    WARM_THRESHOLD,
    LeadScore,
    Temperature,
    aggregate_lead_temperature,
    estimate_lead_value,
    recorded_value,
)

logger = logging.getLogger(__name__)

CHANNEL_FILTERS = {"all"} | {c.value for c in Channel}
TEMPERATURE_FILTERS = {"all"} | {t.value for t in Temperature}
SORT_OPTIONS = ("score", "recent", "value", "name")
RECENT_EVENTS = 5
HIGHLY_ENGAGED_EVENTS = 10
_PHONE_TERM = re.compile(r"[\d\s().+-]+")


# ── Response Schemas ─────────────────────────────────────
class LeadSummary(BaseModel):
    contact_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    primary_channel: str
    channels: list[str]
    score: int
    temperature: str
    breakdown: dict
    total_interactions: int
    event_counts: dict
    first_interaction_at: datetime
    last_interaction_at: datetime
    last_message: Optional[str] = None
    recorded_value: float
    potential_value: int


class LeadListSummary(BaseModel):
    total: int = 0
    hot: int = 0
    warm: int = 0
    cold: int = 0
    average_score: float = 0.0
    total_value: float = 0.0
    by_channel: dict = Field(default_factory=dict)


class LeadPage(BaseModel):
    leads: list[LeadSummary]
    total: int
    hot_count: int
    summary: LeadListSummary
    filters: dict


class LeadDetail(BaseModel):
    lead: LeadSummary
    tags: list[str]
    recent_events: list[dict]
    events: list[dict]
    notes: Optional[dict] = None
    note_history: list[dict] = Field(default_factory=list)


class LeadInsight(BaseModel):
    type: str  # success / warning
    message: str


class LeadAnalytics(BaseModel):
    period_days: int
    total_leads: int
    hot_leads: int
    appointments_scheduled: int
    total_interactions: int
    avg_lead_score: float
    total_potential_value: int
    conversion_rate: float
    channels_used: list[str]
    insights: list[LeadInsight]


# ── Helpers ──────────────────────────────────────────────
def _summarize(contact: ResolvedContact, lead_score: LeadScore) -> LeadSummary:
    last_message = None
    for event in reversed(contact.events):
        if event.message:
            last_message = event.message
            break
    return LeadSummary(
        contact_id=contact.contact_id,
        name=contact.name,
        email=contact.email,
        phone=contact.phone,
        company=contact.company,
        location=contact.location,
        primary_channel=contact.primary_channel,
        channels=contact.channels,
        score=lead_score.score,
        temperature=lead_score.temperature.value,
        breakdown=lead_score.breakdown.to_dict(),
        total_interactions=len(contact.events),
        event_counts=dict(contact.event_counts()),
        first_interaction_at=contact.first_interaction_at,
        last_interaction_at=contact.last_interaction_at,
        last_message=last_message,
        recorded_value=recorded_value(contact.events),
        potential_value=estimate_lead_value(contact.events),
    )


def _matches_search(contact: ResolvedContact, lead: LeadSummary, term: str) -> bool:
    haystack = [lead.name, lead.email, lead.phone, lead.company]
    if any(term in value.lower() for value in haystack if value):
        return True
    if not _PHONE_TERM.fullmatch(term):
        return False
    digits = normalize_phone(term)
    return bool(digits) and any(digits in phone for phone in contact.phones)


def _sort(leads: List[LeadSummary], sort_by: str) -> List[LeadSummary]:
    # Stable sorts, applied from the weakest key to the strongest
    leads = sorted(leads, key=lambda l: l.contact_id)
    leads = sorted(leads, key=lambda l: l.last_interaction_at, reverse=True)
    if sort_by == "score":
        return sorted(leads, key=lambda l: l.score, reverse=True)
    if sort_by == "value":
        return sorted(leads, key=lambda l: (l.recorded_value, l.potential_value), reverse=True)
    if sort_by == "name":
        return sorted(leads, key=lambda l: (l.name is None, (l.name or "").lower()))
    return leads


def _build_summary(leads: List[LeadSummary]) -> LeadListSummary:
    if not leads:
        return LeadListSummary()
    temps = Counter(l.temperature for l in leads)
    return LeadListSummary(
        total=len(leads),
        hot=temps.get(Temperature.HOT.value, 0),
        warm=temps.get(Temperature.WARM.value, 0),
        cold=temps.get(Temperature.COLD.value, 0),
        average_score=round(sum(l.score for l in leads) / len(leads), 1),
        total_value=round(sum(l.recorded_value for l in leads), 2),
        by_channel=dict(Counter(l.primary_channel for l in leads)),
    )


def lead_tags(lead: LeadSummary, high_value_threshold: Optional[float] = None,
              hot_threshold: int = HOT_THRESHOLD) -> List[str]:
    if high_value_threshold is None:
        high_value_threshold = get_settings().high_value_threshold
    counts = lead.event_counts
    tags = []
    if lead.score >= hot_threshold:
        tags.append("Hot Lead")
    if counts.get(APPOINTMENT_SCHEDULED):
        tags.append("Appointment Scheduled")
    if counts.get(PHONE_REQUEST):
        tags.append("Phone Requested")
    if len(lead.channels) > 1:
        tags.append("Multi-Channel")
    if lead.total_interactions > HIGHLY_ENGAGED_EVENTS:
        tags.append("Highly Engaged")
    if lead.recorded_value >= high_value_threshold:
        tags.append("High Value")
    if lead.breakdown.get("recency") == 20:
        tags.append("Recently Active")
    if lead.breakdown.get("contact") == 20:
        tags.append("Complete Profile")
    return tags


def _require_customer(customer_id: str) -> str:
    customer_id = (customer_id or "").strip() if isinstance(customer_id, str) else customer_id
    if not customer_id:
        raise ValueError("customer_id is required")
    return str(customer_id)


# ── Service ──────────────────────────────────────────────
async def list_leads(
    store,
    customer_id: str,
    channel: str = "all",
    temperature_filter: str = "all",
    search_term: str = "",
    sort_by: str = "score",
    limit: int = 100,
    offset: int = 0,
    now: Optional[datetime] = None,
    cache: Optional[ContactIndexCache] = None,
    hot_threshold: int = HOT_THRESHOLD,
    warm_threshold: int = WARM_THRESHOLD,
) -> LeadPage:
    """
    Resolve, score, filter, sort and page a customer's contacts.

    Temperatures are recomputed against `now` on every call, so a lead that
    went quiet drops out of the hot filter without any write.
    """
    customer_id = _require_customer(customer_id)
    channel = (channel or "all").lower()
    temperature_filter = (temperature_filter or "all").lower()
    sort_by = (sort_by or "score").lower()
    if channel not in CHANNEL_FILTERS:
        raise ValueError(f"Unknown channel filter: {channel}")
    if temperature_filter not in TEMPERATURE_FILTERS:
        raise ValueError(f"Unknown temperature filter: {temperature_filter}")
    if sort_by not in SORT_OPTIONS:
        raise ValueError(f"Unknown sort option: {sort_by}")
    if limit < 0 or offset < 0:
        raise ValueError("limit and offset must be non-negative")

    now = as_utc(now) or datetime.now(timezone.utc)
    contacts = await load_contacts(store, customer_id, cache)

    leads = []
    term = (search_term or "").strip().lower()
    for contact in contacts:
        if channel != "all" and channel not in contact.channels:
            continue
        lead = _summarize(contact, aggregate_lead_temperature(contact.events, now, hot_threshold, warm_threshold))
        if temperature_filter != "all" and lead.temperature != temperature_filter:
            continue
        if term and not _matches_search(contact, lead, term):
            continue
        leads.append(lead)

    leads = _sort(leads, sort_by)
    hot_count = sum(1 for l in leads if l.temperature == Temperature.HOT.value)
    page = leads[offset:offset + limit]
    logger.debug(f"Listed {len(page)}/{len(leads)} leads for customer={customer_id}")

    return LeadPage(
        leads=page,
        total=len(leads),
        hot_count=hot_count,
        summary=_build_summary(leads),
        filters={
            "channel": channel,
            "temperature": temperature_filter,
            "search": term,
            "sort_by": sort_by,
            "limit": limit,
            "offset": offset,
        },
    )


async def get_lead_details(
    store,
    note_store,
    customer_id: str,
    lead_identifier: str,
    now: Optional[datetime] = None,
    cache: Optional[ContactIndexCache] = None,
    high_value_threshold: Optional[float] = None,
    hot_threshold: int = HOT_THRESHOLD,
    warm_threshold: int = WARM_THRESHOLD,
) -> Optional[LeadDetail]:
    """Full view of one contact, looked up by contact id, email, phone or name."""
    customer_id = _require_customer(customer_id)
    if not lead_identifier or not str(lead_identifier).strip():
        return None

    contacts = await load_contacts(store, customer_id, cache)
    contact = next((c for c in contacts if c.matches(lead_identifier)), None)
    if contact is None:
        return None

    now = as_utc(now) or datetime.now(timezone.utc)
    lead = _summarize(contact, aggregate_lead_temperature(contact.events, now, hot_threshold, warm_threshold))
    events = [e.to_dict() for e in reversed(contact.events)]
    # Notes saved before a merge stay under the id the contact had then
    history: List[NoteRecord] = await note_store.history_many(customer_id, contact.lead_ids)

    return LeadDetail(
        lead=lead,
        tags=lead_tags(lead, high_value_threshold, hot_threshold),
        recent_events=events[:RECENT_EVENTS],
        events=events,
        notes=history[0].to_dict() if history else None,
        note_history=[n.to_dict() for n in history],
    )


def generate_lead_insights(analytics: dict) -> List[LeadInsight]:
    insights = []
    if analytics["hot_leads"] > 0:
        insights.append(LeadInsight(
            type="success",
            message=f"You have {analytics['hot_leads']} hot leads ready for immediate follow-up!",
        ))
    if analytics["appointments_scheduled"] > 0:
        insights.append(LeadInsight(
            type="success",
            message=f"{analytics['appointments_scheduled']} appointments scheduled - great conversion!",
        ))
    rate = analytics["conversion_rate"]
    if rate > 10:
        insights.append(LeadInsight(type="success", message=f"Your {rate}% conversion rate is excellent!"))
    elif rate < 5 and analytics["total_leads"] > 10:
        insights.append(LeadInsight(
            type="warning",
            message=f"Consider improving follow-up - conversion rate is only {rate}%",
        ))
    return insights


async def get_lead_analytics(
    store,
    customer_id: str,
    period_days: int = 30,
    now: Optional[datetime] = None,
    cache: Optional[ContactIndexCache] = None,
    hot_threshold: int = HOT_THRESHOLD,
    warm_threshold: int = WARM_THRESHOLD,
) -> LeadAnalytics:
    """Totals over contacts first seen within the last `period_days`."""
    customer_id = _require_customer(customer_id)
    if period_days <= 0:
        raise ValueError("period_days must be positive")

    now = as_utc(now) or datetime.now(timezone.utc)
    since = now - timedelta(days=period_days)
    contacts = [
        c for c in await load_contacts(store, customer_id, cache)
        if as_utc(c.first_interaction_at) >= since
    ]

    scores = [aggregate_lead_temperature(c.events, now, hot_threshold, warm_threshold) for c in contacts]
    total = len(contacts)
    appointments = sum(1 for c in contacts if c.event_counts().get(APPOINTMENT_SCHEDULED))
    data = {
        "period_days": period_days,
        "total_leads": total,
        "hot_leads": sum(1 for s in scores if s.temperature == Temperature.HOT),
        "appointments_scheduled": appointments,
        "total_interactions": sum(len(c.events) for c in contacts),
        "avg_lead_score": round(sum(s.score for s in scores) / total, 1) if total else 0.0,
        "total_potential_value": sum(estimate_lead_value(c.events) for c in contacts),
        "conversion_rate": round(appointments / total * 100, 1) if total else 0.0,
        "channels_used": sorted({c.primary_channel for c in contacts}),
    }
    return LeadAnalytics(**data, insights=generate_lead_insights(data))
