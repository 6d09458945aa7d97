"""Tests for lead listing, lead details and lead analytics over the in-memory stores."""

from datetime import timedelta

import pytest

from bizzybot.config import Settings
from bizzybot.services import leads as leads_service
from bizzybot.services.events import record_event
from bizzybot.services.identity import ContactIndexCache
from bizzybot.services.leads import get_lead_analytics, get_lead_details, list_leads
from bizzybot.services.notes import save_note

CUSTOMER = "cust-1"


async def _seed(store, now):
    """Three contacts: Ann (hot), Bob (warm), an anonymous stale visitor (cold)."""
    # Ann: hot lead with email+phone over 5 days, 11 events
    await record_event(store, CUSTOMER, "hot_lead", "sms", {"name": "Ann Lee", "email": "ann@acme.com"}, created_at=now)
    for days in range(5):
        for hour in (1, 2):
            await record_event(
                store, CUSTOMER, "message", "email",
                {"email": "ann@acme.com", "phone": "555-0100", "company": "Acme", "value": "$300"},
                created_at=now - timedelta(days=days, hours=hour),
            )
    # Bob: one appointment today, email only
    await record_event(store, CUSTOMER, "appointment_scheduled", "chat", {"name": "Bob", "email": "bob@x.com"},
                       created_at=now - timedelta(hours=3))
    await record_event(store, CUSTOMER, "phone_request", "chat", {"email": "bob@x.com"},
                       created_at=now - timedelta(days=1, hours=3))
    # Anonymous visitor, three weeks ago
    await record_event(store, CUSTOMER, "message", "facebook", {"message": "hi"}, created_at=now - timedelta(days=21))


class TestListLeads:
    @pytest.mark.asyncio
    async def test_groups_and_scores(self, event_store, now):
        await _seed(event_store, now)
        page = await list_leads(event_store, CUSTOMER, now=now)

        assert page.total == 3
        assert [l.temperature for l in page.leads] == ["hot", "warm", "cold"]
        ann = page.leads[0]
        assert ann.name == "Ann Lee"
        assert ann.total_interactions == 11
        assert ann.channels == ["email", "sms"]
        assert ann.recorded_value == 3000.0
        assert page.hot_count == 1

    @pytest.mark.asyncio
    async def test_hot_filter_only_returns_hot(self, event_store, now):
        await _seed(event_store, now)
        page = await list_leads(event_store, CUSTOMER, temperature_filter="hot", now=now)
        assert len(page.leads) == 1
        assert all(l.score >= 70 for l in page.leads)

    @pytest.mark.asyncio
    async def test_hot_filter_recomputed_as_time_passes(self, event_store, now):
        # 25 engagement + 20 recency + 20 contact + 5 frequency = 70
        await record_event(event_store, CUSTOMER, "hot_lead", "sms", {"email": "c@d.com", "phone": "5550199"}, created_at=now)
        assert (await list_leads(event_store, CUSTOMER, temperature_filter="hot", now=now)).hot_count == 1

        later = now + timedelta(days=2)
        page = await list_leads(event_store, CUSTOMER, temperature_filter="hot", now=later)
        assert page.leads == []
        assert page.hot_count == 0

    @pytest.mark.asyncio
    async def test_channel_filter_matches_any_event(self, event_store, now):
        await _seed(event_store, now)
        page = await list_leads(event_store, CUSTOMER, channel="sms", now=now)
        assert [l.name for l in page.leads] == ["Ann Lee"]

    @pytest.mark.asyncio
    async def test_search(self, event_store, now):
        await _seed(event_store, now)
        assert [l.name for l in (await list_leads(event_store, CUSTOMER, search_term="ACME", now=now)).leads] == ["Ann Lee"]
        assert [l.name for l in (await list_leads(event_store, CUSTOMER, search_term="bob@", now=now)).leads] == ["Bob"]
        assert (await list_leads(event_store, CUSTOMER, search_term="nobody", now=now)).leads == []

    @pytest.mark.asyncio
    async def test_search_by_phone_digits(self, event_store, now):
        await record_event(event_store, CUSTOMER, "message", "sms", {"name": "Dee", "phone": "(555) 010-0100"}, created_at=now)
        await record_event(event_store, CUSTOMER, "message", "email", {"email": "p1@x.com"}, created_at=now)

        for term in ("5550100100", "555-010-0100", "+1 555 010 0100", "0100"):
            page = await list_leads(event_store, CUSTOMER, search_term=term, now=now)
            assert [l.name for l in page.leads] == ["Dee"], term

        # A digit inside an email is not a phone search
        page = await list_leads(event_store, CUSTOMER, search_term="p1@", now=now)
        assert [l.email for l in page.leads] == ["p1@x.com"]

    @pytest.mark.asyncio
    async def test_sort_options(self, event_store, now):
        await _seed(event_store, now)
        by_name = await list_leads(event_store, CUSTOMER, sort_by="name", now=now)
        assert [l.name for l in by_name.leads] == ["Ann Lee", "Bob", None]

        recent = await list_leads(event_store, CUSTOMER, sort_by="recent", now=now)
        assert recent.leads[0].name == "Ann Lee"
        assert recent.leads[-1].name is None

        by_value = await list_leads(event_store, CUSTOMER, sort_by="value", now=now)
        assert by_value.leads[0].name == "Ann Lee"
        assert by_value.leads[1].name == "Bob"

    @pytest.mark.asyncio
    async def test_pagination_keeps_totals(self, event_store, now):
        await _seed(event_store, now)
        page = await list_leads(event_store, CUSTOMER, limit=1, offset=1, now=now)
        assert len(page.leads) == 1
        assert page.leads[0].name == "Bob"
        assert page.total == 3
        assert page.hot_count == 1
        assert page.summary.total == 3

    @pytest.mark.asyncio
    async def test_summary(self, event_store, now):
        await _seed(event_store, now)
        summary = (await list_leads(event_store, CUSTOMER, now=now)).summary
        assert (summary.hot, summary.warm, summary.cold) == (1, 1, 1)
        assert summary.total_value == 3000.0
        assert summary.by_channel == {"email": 1, "chat": 1, "facebook": 1}

    @pytest.mark.asyncio
    async def test_unknown_customer_is_empty(self, event_store):
        page = await list_leads(event_store, "nobody")
        assert page.leads == []
        assert page.total == 0
        assert page.summary.average_score == 0.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "kwargs",
        [{"channel": "fax"}, {"temperature_filter": "lukewarm"}, {"sort_by": "age"}, {"limit": -1}],
    )
    async def test_invalid_filters_raise(self, event_store, kwargs):
        with pytest.raises(ValueError):
            await list_leads(event_store, CUSTOMER, **kwargs)

    @pytest.mark.asyncio
    async def test_missing_customer_raises(self, event_store):
        with pytest.raises(ValueError):
            await list_leads(event_store, "")

    @pytest.mark.asyncio
    async def test_uses_cache(self, event_store, now):
        await _seed(event_store, now)
        cache = ContactIndexCache()
        await list_leads(event_store, CUSTOMER, now=now, cache=cache)
        assert len(cache) == 1
        page = await list_leads(event_store, CUSTOMER, now=now, cache=cache)
        assert page.total == 3


class TestLeadDetails:
    @pytest.mark.asyncio
    async def test_lookup_by_any_identifier(self, event_store, note_store, now):
        await _seed(event_store, now)
        by_email = await get_lead_details(event_store, note_store, CUSTOMER, "ann@acme.com", now=now)
        by_phone = await get_lead_details(event_store, note_store, CUSTOMER, "(555) 0100", now=now)
        by_id = await get_lead_details(event_store, note_store, CUSTOMER, by_email.lead.contact_id, now=now)
        assert by_email.lead.contact_id == by_phone.lead.contact_id == by_id.lead.contact_id

    @pytest.mark.asyncio
    async def test_detail_content(self, event_store, note_store, now):
        await _seed(event_store, now)
        detail = await get_lead_details(event_store, note_store, CUSTOMER, "Ann Lee", now=now)

        assert len(detail.recent_events) == 5
        assert len(detail.events) == 11
        assert detail.events[0]["event_type"] == "hot_lead"  # newest first
        assert detail.lead.last_message is None
        assert detail.notes is None
        assert set(detail.tags) >= {"Hot Lead", "Multi-Channel", "Highly Engaged", "High Value",
                                    "Recently Active", "Complete Profile"}
        assert "Appointment Scheduled" not in detail.tags

    @pytest.mark.asyncio
    async def test_high_value_tag_follows_settings(self, event_store, note_store, now, monkeypatch):
        await _seed(event_store, now)
        monkeypatch.setattr(leads_service, "get_settings", lambda: Settings(high_value_threshold=5000))
        detail = await get_lead_details(event_store, note_store, CUSTOMER, "Ann Lee", now=now)
        assert "High Value" not in detail.tags

        detail = await get_lead_details(event_store, note_store, CUSTOMER, "Ann Lee", now=now, high_value_threshold=1000)
        assert "High Value" in detail.tags

    @pytest.mark.asyncio
    async def test_tags_for_appointment_contact(self, event_store, note_store, now):
        await _seed(event_store, now)
        detail = await get_lead_details(event_store, note_store, CUSTOMER, "bob@x.com", now=now)
        assert "Appointment Scheduled" in detail.tags
        assert "Phone Requested" in detail.tags
        assert "Hot Lead" not in detail.tags

    @pytest.mark.asyncio
    async def test_includes_notes(self, event_store, note_store, now):
        await _seed(event_store, now)
        detail = await get_lead_details(event_store, note_store, CUSTOMER, "bob@x.com", now=now)
        await save_note(note_store, CUSTOMER, detail.lead.contact_id, "Call back Monday", "sam")

        detail = await get_lead_details(event_store, note_store, CUSTOMER, "bob@x.com", now=now)
        assert detail.notes["notes"] == "Call back Monday"
        assert len(detail.note_history) == 1

    @pytest.mark.asyncio
    async def test_notes_survive_contact_merge(self, event_store, note_store, now):
        await record_event(event_store, CUSTOMER, "message", "email", {"email": "a@x.com"}, created_at=now - timedelta(days=2))
        await record_event(event_store, CUSTOMER, "message", "sms", {"phone": "555-0100"}, created_at=now - timedelta(days=1))
        before = await get_lead_details(event_store, note_store, CUSTOMER, "555-0100", now=now)
        await save_note(note_store, CUSTOMER, before.lead.contact_id, "Prefers texts", "sam")

        # One event carrying both identifiers links the two contacts
        await record_event(event_store, CUSTOMER, "message", "sms", {"email": "a@x.com", "phone": "555-0100"}, created_at=now)
        after = await get_lead_details(event_store, note_store, CUSTOMER, "555-0100", now=now)

        assert after.lead.contact_id != before.lead.contact_id
        assert after.lead.total_interactions == 3
        assert after.notes is not None
        assert after.notes["notes"] == "Prefers texts"

        by_old_id = await get_lead_details(event_store, note_store, CUSTOMER, before.lead.contact_id, now=now)
        assert by_old_id.lead.contact_id == after.lead.contact_id

    @pytest.mark.asyncio
    async def test_merged_contact_lists_newest_note_first(self, event_store, note_store, now):
        first = await record_event(event_store, CUSTOMER, "message", "email", {"email": "a@x.com"}, created_at=now - timedelta(days=2))
        second = await record_event(event_store, CUSTOMER, "message", "sms", {"phone": "555-0100"}, created_at=now - timedelta(days=1))
        await save_note(note_store, CUSTOMER, f"ct_{first.id}", "older note")
        await save_note(note_store, CUSTOMER, f"ct_{second.id}", "newer note")
        await record_event(event_store, CUSTOMER, "message", "sms", {"email": "a@x.com", "phone": "555-0100"}, created_at=now)

        detail = await get_lead_details(event_store, note_store, CUSTOMER, "a@x.com", now=now)
        assert detail.notes["notes"] == "newer note"
        assert [n["notes"] for n in detail.note_history] == ["newer note", "older note"]

    @pytest.mark.asyncio
    async def test_unknown_lead_is_none(self, event_store, note_store, now):
        await _seed(event_store, now)
        assert await get_lead_details(event_store, note_store, CUSTOMER, "ghost@x.com", now=now) is None
        assert await get_lead_details(event_store, note_store, "other", "ann@acme.com", now=now) is None
        assert await get_lead_details(event_store, note_store, CUSTOMER, "  ", now=now) is None


class TestLeadAnalytics:
    @pytest.mark.asyncio
    async def test_totals_and_insights(self, event_store, now):
        await _seed(event_store, now)
        analytics = await get_lead_analytics(event_store, CUSTOMER, period_days=30, now=now)

        assert analytics.total_leads == 3
        assert analytics.hot_leads == 1
        assert analytics.appointments_scheduled == 1
        assert analytics.total_interactions == 14
        assert analytics.conversion_rate == 33.3
        assert analytics.channels_used == ["chat", "email", "facebook"]
        messages = [i.message for i in analytics.insights]
        assert any("1 hot leads" in m for m in messages)
        assert any("33.3% conversion rate is excellent" in m for m in messages)

    @pytest.mark.asyncio
    async def test_period_excludes_older_contacts(self, event_store, now):
        await _seed(event_store, now)
        analytics = await get_lead_analytics(event_store, CUSTOMER, period_days=7, now=now)
        assert analytics.total_leads == 2

    @pytest.mark.asyncio
    async def test_low_conversion_warning(self, event_store, now):
        for i in range(12):
            await record_event(event_store, CUSTOMER, "message", "chat", {"email": f"p{i}@x.com"}, created_at=now)
        analytics = await get_lead_analytics(event_store, CUSTOMER, now=now)
        assert analytics.conversion_rate == 0.0
        assert [i.type for i in analytics.insights] == ["warning"]

    @pytest.mark.asyncio
    async def test_empty_customer(self, event_store):
        analytics = await get_lead_analytics(event_store, "nobody")
        assert analytics.total_leads == 0
        assert analytics.insights == []
