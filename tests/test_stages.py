from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from aog_analytics.analytics.stages import STAGES, analyze_stages, bottleneck_summary_frame, bottlenecks_by
from aog_analytics.models import GroundingEvent

T0 = datetime(2024, 6, 1, 0, 0)


def _at(hours: float) -> datetime:
    return T0 + timedelta(hours=hours)


def _event(aircraft_id: str, offsets: dict[str, float], **extra) -> GroundingEvent:
    return GroundingEvent(aircraft_id=aircraft_id, **{name: _at(hours) for name, hours in offsets.items()}, **extra)


def _sample_events() -> list[GroundingEvent]:
    return [
        _event(
            "AC-1",
            {
                "reported_at": 0,
                "procurement_requested_at": 2,
                "available_at_store_at": 30,
                "issued_back_at": 31,
                "installation_complete_at": 35,
                "test_start_at": 36,
                "up_and_running_at": 38,
            },
            responsible_party="Internal",
        ),
        _event(
            "AC-2",
            {
                "reported_at": 0,
                "procurement_requested_at": 4,
                "available_at_store_at": 14,
            },
            responsible_party="OEM",
        ),
    ]


def test_stage_averages_use_only_events_with_both_endpoints():
    analysis = analyze_stages(_sample_events())
    by_name = {stats.stage: stats for stats in analysis.stages}

    assert [stats.stage for stats in analysis.stages] == [stage for stage, _, _ in STAGES]
    assert by_name["Troubleshooting"].count == 2
    assert by_name["Troubleshooting"].average_hours == pytest.approx(3.0)
    assert by_name["Procurement"].count == 2
    assert by_name["Procurement"].average_hours == pytest.approx(19.0)
    assert by_name["Installation"].count == 1
    assert by_name["Installation"].average_hours == pytest.approx(4.0)


def test_bottleneck_is_highest_average_stage():
    analysis = analyze_stages(_sample_events())
    assert analysis.bottleneck is not None
    assert analysis.bottleneck.stage == "Procurement"


def test_bottleneck_tie_goes_to_earliest_stage():
    event = _event("AC-1", {"reported_at": 0, "procurement_requested_at": 5, "available_at_store_at": 10})
    analysis = analyze_stages([event])
    assert analysis.bottleneck.stage == "Troubleshooting"


def test_no_stage_data_has_no_bottleneck():
    analysis = analyze_stages([GroundingEvent(aircraft_id="AC-1")])
    assert analysis.bottleneck is None
    assert all(stats.count == 0 and stats.average_hours == 0 for stats in analysis.stages)
    assert analyze_stages([]).bottleneck is None


def test_negative_stage_durations_clamp_to_zero():
    event = _event("AC-1", {"reported_at": 10, "procurement_requested_at": 2})
    stats = analyze_stages([event]).stages[0]
    assert stats.count == 1
    assert stats.average_hours == 0


def test_backfilled_endpoints_count_as_populated():
    event = _event("AC-1", {"detected_at": 0, "procurement_requested_at": 6})
    stats = analyze_stages([event]).stages[0]
    assert stats.count == 1
    assert stats.average_hours == pytest.approx(6.0)


def test_bottlenecks_by_cohort():
    results = bottlenecks_by(_sample_events(), "responsible_party")
    assert set(results) == {"Internal", "OEM"}
    assert results["OEM"].bottleneck.stage == "Procurement"
    assert results["Internal"].bottleneck.stage == "Procurement"

    frame = bottleneck_summary_frame(results)
    assert list(frame["Cohort"]) == ["Internal", "OEM"]

    with pytest.raises(ValueError):
        bottlenecks_by(_sample_events(), "colour")


def test_stage_frame_marks_bottleneck():
    frame = analyze_stages(_sample_events()).to_frame()
    assert frame["Bottleneck"].sum() == 1
    assert frame.loc[frame["Bottleneck"], "Stage"].iloc[0] == "Procurement"
