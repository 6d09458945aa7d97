"""Tests for the aggregate lead scoring engine."""

from datetime import datetime, timedelta, timezone

import pytest

from bizzybot.services.lead_scoring import (
    Temperature,
    _score_to_temperature,
    aggregate_lead_temperature,
    calculate_contact_score,
    calculate_engagement_score,
    calculate_frequency_score,
    calculate_recency_score,
    estimate_lead_value,
    recorded_value,
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


# ── Reference scenarios ──────────────────────────────────


class TestScenarios:
    def test_single_hot_lead_event_is_warm(self, make_event):
        events = [make_event("hot_lead", NOW, email="a@b.com")]
        result = aggregate_lead_temperature(events, NOW)

        assert result.breakdown.engagement == 25
        assert result.breakdown.recency == 20
        assert result.breakdown.contact == 10
        assert result.breakdown.frequency == 5
        assert result.score == 60
        assert result.temperature == Temperature.WARM

    def test_full_history_is_hot(self, make_event):
        events = [make_event("hot_lead", NOW, email="a@b.com")]
        # 9 more messages over 6 distinct days, newest today, phone captured
        offsets = [0, 1, 1, 2, 2, 3, 4, 5, 5]
        for days in offsets:
            events.append(make_event("message", NOW - timedelta(days=days, hours=1), email="a@b.com", phone="555-0100"))

        result = aggregate_lead_temperature(events, NOW)

        assert result.breakdown.engagement == 40
        assert result.breakdown.recency == 20
        assert result.breakdown.contact == 20
        assert result.breakdown.frequency == 20
        assert result.score == 100
        assert result.temperature == Temperature.HOT

    def test_stale_anonymous_event_is_cold(self, make_event):
        events = [make_event("message", NOW - timedelta(days=20))]
        result = aggregate_lead_temperature(events, NOW)

        assert result.breakdown.engagement == 10
        assert result.breakdown.recency == 0
        assert result.breakdown.contact == 0
        assert result.breakdown.frequency == 5
        assert result.score == 15
        assert result.temperature == Temperature.COLD


# ── Components ───────────────────────────────────────────


class TestEngagement:
    def test_intent_priority(self, make_event):
        events = [make_event("phone_request"), make_event("appointment_scheduled")]
        # appointment (15) outranks phone request (10); 2 events -> volume 5
        assert calculate_engagement_score(events) == 20

    def test_baseline_intent(self, make_event):
        assert calculate_engagement_score([make_event("message")]) == 10

    @pytest.mark.parametrize("count,expected_volume", [(1, 5), (2, 5), (3, 10), (5, 10), (6, 15), (9, 15), (10, 20)])
    def test_volume_tiers(self, make_event, count, expected_volume):
        events = [make_event("message") for _ in range(count)]
        assert calculate_engagement_score(events) == 5 + expected_volume

    def test_capped_at_forty(self, make_event):
        events = [make_event("hot_lead") for _ in range(30)]
        assert calculate_engagement_score(events) == 40


class TestRecency:
    @pytest.mark.parametrize(
        "age,expected",
        [
            (timedelta(hours=0), 20),
            (timedelta(hours=23), 20),
            (timedelta(days=1), 15),
            (timedelta(days=2, hours=23), 15),
            (timedelta(days=3), 10),
            (timedelta(days=6), 10),
            (timedelta(days=7), 5),
            (timedelta(days=13), 5),
            (timedelta(days=14), 0),
            (timedelta(days=90), 0),
        ],
    )
    def test_bands(self, age, expected):
        assert calculate_recency_score(NOW - age, NOW) == expected

    def test_future_timestamp_counts_as_now(self):
        assert calculate_recency_score(NOW + timedelta(days=2), NOW) == 20

    def test_naive_timestamp_treated_as_utc(self):
        naive = (NOW - timedelta(hours=2)).replace(tzinfo=None)
        assert calculate_recency_score(naive, NOW) == 20

    def test_missing_activity(self):
        assert calculate_recency_score(None, NOW) == 0


class TestContactAndFrequency:
    def test_contact_component_values(self, make_event):
        assert calculate_contact_score([make_event()]) == 0
        assert calculate_contact_score([make_event(email="x@y.com")]) == 10
        assert calculate_contact_score([make_event(phone="555 0100")]) == 10
        assert calculate_contact_score([make_event(email="x@y.com"), make_event(phone="5550100")]) == 20

    def test_placeholder_contact_values_ignored(self, make_event):
        assert calculate_contact_score([make_event(email="unknown", phone="Not provided")]) == 0

    def test_frequency_counts_distinct_utc_days(self, make_event):
        same_day = [make_event(created_at=NOW - timedelta(hours=h)) for h in range(5)]
        assert calculate_frequency_score(same_day) == 5

        two_days = same_day + [make_event(created_at=NOW - timedelta(days=1))]
        assert calculate_frequency_score(two_days) == 10

        three_days = two_days + [make_event(created_at=NOW - timedelta(days=2))]
        assert calculate_frequency_score(three_days) == 15

        five_days = three_days + [make_event(created_at=NOW - timedelta(days=d)) for d in (3, 4)]
        assert calculate_frequency_score(five_days) == 20


# ── Properties ───────────────────────────────────────────


class TestProperties:
    def test_empty_input_raises(self):
        with pytest.raises(ValueError):
            aggregate_lead_temperature([], NOW)

    def test_deterministic(self, make_event):
        events = [make_event("appointment_scheduled", NOW - timedelta(days=2), email="a@b.com")]
        first = aggregate_lead_temperature(events, NOW)
        second = aggregate_lead_temperature(list(reversed(events)), NOW)
        assert first == second

    def test_score_never_increases_as_time_passes(self, make_event):
        events = [
            make_event("hot_lead", NOW - timedelta(days=1), email="a@b.com"),
            make_event("message", NOW, phone="5550100"),
        ]
        scores = [aggregate_lead_temperature(events, NOW + timedelta(days=d)).score for d in range(0, 30)]
        assert scores == sorted(scores, reverse=True)

    def test_adding_distinct_day_never_lowers_score(self, make_event):
        events = [make_event("message", NOW - timedelta(days=3))]
        before = aggregate_lead_temperature(events, NOW)
        events.append(make_event("message", NOW - timedelta(days=4)))
        after = aggregate_lead_temperature(events, NOW)
        assert after.breakdown.frequency >= before.breakdown.frequency
        assert after.score >= before.score

    def test_adding_intent_event_never_lowers_score(self, make_event):
        events = [make_event("phone_request", NOW)]
        before = aggregate_lead_temperature(events, NOW).score
        events.append(make_event("hot_lead", NOW))
        assert aggregate_lead_temperature(events, NOW).score >= before

    def test_score_bounds(self, make_event):
        events = [make_event("hot_lead", NOW - timedelta(days=d), email="a@b.com", phone="1") for d in range(20)]
        result = aggregate_lead_temperature(events, NOW)
        assert 0 <= result.score <= 100

    @pytest.mark.parametrize(
        "score,expected",
        [
            (0, Temperature.COLD),
            (39, Temperature.COLD),
            (40, Temperature.WARM),
            (69, Temperature.WARM),
            (70, Temperature.HOT),
            (100, Temperature.HOT),
        ],
    )
    def test_temperature_step_edges(self, score, expected):
        assert _score_to_temperature(score) == expected

    @pytest.mark.parametrize("hot,warm,expected", [(60, 40, Temperature.HOT), (70, 60, Temperature.WARM), (90, 80, Temperature.COLD)])
    def test_configurable_thresholds(self, make_event, hot, warm, expected):
        events = [make_event("hot_lead", NOW, email="a@b.com")]  # scores 60
        assert aggregate_lead_temperature(events, NOW, hot, warm).temperature == expected

    def test_to_dict(self, make_event):
        data = aggregate_lead_temperature([make_event("hot_lead", NOW, email="a@b.com")], NOW).to_dict()
        assert data["temperature"] == "warm"
        assert set(data["breakdown"]) == {"engagement", "recency", "contact", "frequency"}


class TestValue:
    def test_estimated_value_by_strongest_signal(self, make_event):
        assert estimate_lead_value([make_event("message")]) == 97
        assert estimate_lead_value([make_event("pricing_discussed")]) == 197
        assert estimate_lead_value([make_event("hot_lead"), make_event("pricing_discussed")]) == 297
        assert estimate_lead_value([make_event("hot_lead"), make_event("appointment_scheduled")]) == 497

    def test_recorded_value_parses_metadata(self, make_event):
        events = [make_event(value=250), make_event(value="$1,000.50"), make_event(value="n/a"), make_event()]
        assert recorded_value(events) == 1250.5
