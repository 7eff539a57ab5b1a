from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from aog_analytics.analytics.comparison import build_metric, compare_year_over_year
from aog_analytics.models import GroundingEvent


def _event(aircraft_id: str, detected: datetime, hours: float) -> GroundingEvent:
    return GroundingEvent(aircraft_id=aircraft_id, detected_at=detected, cleared_at=detected + timedelta(hours=hours))


def test_build_metric_trend_and_favorability():
    rising = build_metric("Total Downtime (h)", 120.0, 100.0)
    assert rising.change == pytest.approx(20.0)
    assert rising.change_percentage == pytest.approx(20.0)
    assert rising.trend == "up"
    assert rising.favorable is False

    steady = build_metric("Total Downtime (h)", 103.0, 100.0)
    assert steady.trend == "flat"

    falling = build_metric("Total Downtime (h)", 50.0, 100.0)
    assert falling.trend == "down"
    assert falling.favorable is True

    higher_better = build_metric("Availability", 50.0, 100.0, higher_is_better=True)
    assert higher_better.favorable is False


def test_build_metric_without_previous_value():
    metric = build_metric("AOG Events", 4.0, 0.0)
    assert metric.change_percentage == 0
    assert metric.trend == "flat"


def test_compare_year_over_year_windows():
    events = [
        _event("AC-1", datetime(2024, 3, 5), 30),
        _event("AC-2", datetime(2024, 4, 1), 10),
        _event("AC-1", datetime(2023, 3, 10), 20),
        _event("AC-1", datetime(2022, 3, 10), 99),
    ]
    comparison = compare_year_over_year(events, datetime(2024, 1, 1), datetime(2024, 6, 30))

    assert comparison.previous_start == datetime(2023, 1, 1)
    assert comparison.previous_end == datetime(2023, 6, 30)
    assert comparison.has_historical_data is True

    count = comparison.metric("AOG Events")
    assert (count.current_year, count.previous_year) == (2, 1)
    assert count.trend == "up"
    assert count.favorable is False

    downtime = comparison.metric("Total Downtime (h)")
    assert downtime.current_year == pytest.approx(40.0)
    assert downtime.previous_year == pytest.approx(20.0)
    assert downtime.change_percentage == pytest.approx(100.0)

    legacy = comparison.metric("Legacy Downtime (h)")
    assert legacy.current_year == pytest.approx(40.0)

    frame = comparison.to_frame()
    assert len(frame) == 7
    assert {"Metric", "Current", "Previous", "Trend", "Favorable"}.issubset(frame.columns)


def test_compare_without_history():
    events = [_event("AC-1", datetime(2024, 3, 5), 30)]
    comparison = compare_year_over_year(events, datetime(2024, 1, 1), datetime(2024, 12, 31), aircraft_id="AC-1")
    assert comparison.has_historical_data is False
    assert all(metric.change_percentage == 0 for metric in comparison.metrics)
    with pytest.raises(KeyError):
        comparison.metric("Flight Hours")


def test_compare_year_over_year_with_aware_window():
    events = [
        _event("AC-1", datetime(2024, 3, 5), 30),
        _event("AC-1", datetime(2023, 3, 10), 20),
    ]
    comparison = compare_year_over_year(
        events,
        datetime(2024, 1, 1, tzinfo=timezone.utc),
        datetime(2024, 6, 30, tzinfo=timezone.utc),
    )
    assert comparison.previous_start == datetime(2023, 1, 1)
    count = comparison.metric("AOG Events")
    assert (count.current_year, count.previous_year) == (1, 1)
