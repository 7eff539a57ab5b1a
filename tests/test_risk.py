from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from aog_analytics.analytics.risk import (
    RiskScoreResult,
    calculate_risk_score,
    calculate_risk_scores,
    cost_trend_score,
    downtime_trend_score,
    get_high_risk_aircraft,
    recent_frequency_score,
    recurring_issues_score,
    risk_scores_to_frame,
)
from aog_analytics.analytics.visuals import build_risk_chart
from aog_analytics.models import GroundingEvent

NOW = datetime(2024, 9, 30, 12, 0)


def _event(aircraft_id: str, days_ago: float, downtime_hours: float = 10.0, **extra) -> GroundingEvent:
    detected = NOW - timedelta(days=days_ago)
    return GroundingEvent(
        aircraft_id=aircraft_id,
        detected_at=detected,
        cleared_at=detected + timedelta(hours=downtime_hours),
        **extra,
    )


def test_aircraft_without_events_scores_zero():
    result = calculate_risk_score("AC-9", [_event("AC-1", 5)], [_event("AC-1", 5)], reference_time=NOW)
    assert result.risk_score == 0
    assert result.factors == []
    assert result.registration == "AC-9"


def test_single_event_only_recent_frequency_can_score():
    fleet = [_event("AC-1", 2, internal_cost=5000.0, reason_code="HYD")] + [
        _event(f"AC-{n}", 200) for n in range(2, 6)
    ]
    own = [event for event in fleet if event.aircraft_id == "AC-1"]

    assert downtime_trend_score(own) == 0
    assert cost_trend_score(own) == 0
    assert recurring_issues_score(own) == 0

    # one recent event against a fleet average of 1/5 -> ratio 5 -> capped at 100
    assert recent_frequency_score(own, fleet, reference_time=NOW) == pytest.approx(100.0)

    result = calculate_risk_score("AC-1", fleet, fleet, reference_time=NOW)
    assert result.risk_score == pytest.approx(40.0)
    assert [factor.name for factor in result.factors] == ["Recent Event Frequency"]
    assert result.factors[0].contribution == pytest.approx(100.0)


def test_recent_frequency_zero_at_or_below_fleet_average():
    fleet = [_event("AC-1", 3), _event("AC-2", 4)]
    assert recent_frequency_score([fleet[0]], fleet, reference_time=NOW) == 0


def test_downtime_trend_scales_to_double():
    events = [
        _event("AC-1", 100, downtime_hours=10),
        _event("AC-1", 90, downtime_hours=10),
        _event("AC-1", 80, downtime_hours=15),
        _event("AC-1", 70, downtime_hours=15),
    ]
    assert downtime_trend_score(events) == pytest.approx(50.0)

    improving = list(reversed([_event("AC-1", d, downtime_hours=h) for d, h in ((100, 15), (90, 15), (80, 10))]))
    assert downtime_trend_score(improving) == 0


def test_odd_history_splits_at_floor_half():
    # first half holds one event, second half two
    events = [
        _event("AC-1", 90, downtime_hours=10),
        _event("AC-1", 80, downtime_hours=20),
        _event("AC-1", 70, downtime_hours=40),
    ]
    assert downtime_trend_score(events) == pytest.approx(100.0)


def test_cost_trend_uses_internal_plus_external():
    events = [
        _event("AC-1", 60, internal_cost=1000.0, external_cost=0.0),
        _event("AC-1", 50, internal_cost=600.0, external_cost=600.0),
    ]
    assert cost_trend_score(events) == pytest.approx(20.0)


def test_recurring_issues_scale_with_repeats():
    events = [_event("AC-1", d, reason_code="AOG-ENG") for d in (50, 40, 30)] + [
        _event("AC-1", 20, reason_code="AOG-HYD")
    ]
    assert recurring_issues_score(events) == pytest.approx(50.0)
    assert recurring_issues_score([_event("AC-1", d, reason_code=f"R{d}") for d in (1, 2)]) == 0
    many = [_event("AC-1", d, reason_code="AOG-ENG") for d in range(40, 47)]
    assert recurring_issues_score(many) == pytest.approx(100.0)


def test_combined_score_weights_and_contributions():
    events = [
        _event("AC-1", 100, downtime_hours=10, internal_cost=100.0, reason_code="ENG"),
        _event("AC-1", 90, downtime_hours=20, internal_cost=200.0, reason_code="ENG"),
    ]
    result = calculate_risk_score("AC-1", events, events, registration="HZ-A42", reference_time=NOW)

    # frequency 0, downtime 100 * 0.3, cost 100 * 0.2, recurring 25 * 0.1
    assert result.risk_score == pytest.approx(52.5)
    assert result.registration == "HZ-A42"
    contributions = {factor.name: factor.contribution for factor in result.factors}
    assert "Recent Event Frequency" not in contributions
    assert contributions["Average Downtime Trend"] == pytest.approx(30 / 52.5 * 100)
    assert sum(contributions.values()) == pytest.approx(100.0)


def test_high_risk_selection_keeps_top_n_above_threshold():
    scores = [
        RiskScoreResult("A", "A", 80.0),
        RiskScoreResult("B", "B", 25.0),
        RiskScoreResult("C", "C", 45.0),
        RiskScoreResult("D", "D", 31.0),
        RiskScoreResult("E", "E", 90.0),
    ]
    assert [result.aircraft_id for result in get_high_risk_aircraft(scores)] == ["E", "A", "C"]
    assert get_high_risk_aircraft(scores, top_n=5, threshold=50) == [scores[4], scores[0]]


def test_calculate_risk_scores_for_fleet():
    events = [_event("AC-1", 2), _event("AC-1", 3), _event("AC-2", 100)]
    results = calculate_risk_scores([("AC-1", "HZ-A1"), {"id": "AC-2", "registration": "HZ-A2"}], events, reference_time=NOW)
    assert [result.registration for result in results] == ["HZ-A1", "HZ-A2"]
    assert results[0].risk_score > results[1].risk_score

    frame = risk_scores_to_frame(results)
    assert list(frame["Aircraft"]) == ["HZ-A1", "HZ-A2"]


def test_risk_chart_marks_threshold():
    scores = [RiskScoreResult("A", "HZ-A1", 72.0), RiskScoreResult("B", "HZ-A2", 12.0)]
    fig = build_risk_chart(scores, threshold=30.0)
    assert fig.data
    assert fig.layout.shapes[0].y0 == 30.0


def test_timezone_aware_reference_time():
    fleet = [_event("AC-1", 2)] + [_event(f"AC-{n}", 200) for n in range(2, 6)]
    aware_now = NOW.replace(tzinfo=timezone.utc)

    assert recent_frequency_score(fleet[:1], fleet, reference_time=aware_now) == pytest.approx(100.0)
    result = calculate_risk_score("AC-1", fleet, fleet, reference_time=aware_now)
    assert result.risk_score == pytest.approx(40.0)
