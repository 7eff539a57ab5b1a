from __future__ import annotations

import pandas as pd
import pytest

from aog_analytics.analytics.preparation import prepare_event_dataframe, events_from_frame
from aog_analytics.analytics.breakdowns import (
    build_aircraft_breakdown,
    build_reason_code_breakdown,
    build_responsible_party_breakdown,
)
from aog_analytics.analytics.buckets import aggregate
from aog_analytics.analytics.profiling import analyze_milestone_coverage, milestone_completeness
from aog_analytics.analytics.stages import analyze_stages
from aog_analytics.analytics.timeseries import build_bucket_time_series
from aog_analytics.analytics.visuals import (
    build_aircraft_bucket_chart,
    build_bucket_pie_chart,
    build_bucket_time_series_chart,
    build_stage_chart,
    create_downtime_distribution_plot,
)


def _prepared_sample() -> pd.DataFrame:
    raw = pd.DataFrame(
        [
            {
                "Aircraft": "HZ-A42",
                "Reported At": "2024-01-05 08:00",
                "Procurement Requested At": "2024-01-05 10:00",
                "Available At Store At": "2024-01-05 18:00",
                "Installation Complete At": "2024-01-05 20:00",
                "Test Start At": "2024-01-05 21:00",
                "Up And Running At": "2024-01-05 23:00",
                "Responsible Party": "Internal",
                "Reason Code": "HYD",
                "Internal Cost": 1000,
            },
            {
                "Aircraft": "HZ-A42",
                "Start Date": "2024-02-10",
                "Finish Date": "2024-02-11",
                "Responsible Party": "OEM",
                "Reason Code": "HYD",
                "External Cost": 2500,
            },
            {
                "Aircraft": "HZ-SK5",
                "Reported At": "2024-03-01 00:00",
                "Installation Complete At": "2024-03-01 06:00",
                "Up And Running At": "2024-03-01 06:00",
                "Reason Code": "ENG",
            },
        ]
    )
    return prepare_event_dataframe(raw)


def test_aircraft_breakdown_separates_legacy_hours():
    aircraft = build_aircraft_breakdown(_prepared_sample())
    assert list(aircraft.columns)[:2] == ["Aircraft", "Events"]
    assert list(aircraft["Aircraft"]) == ["HZ-A42", "HZ-SK5"]

    first = aircraft.iloc[0]
    assert first["Events"] == 2
    assert first["Legacy Events"] == 1
    assert first["Technical Hours"] == pytest.approx(4.0)
    assert first["Procurement Hours"] == pytest.approx(8.0)
    assert first["Legacy Hours"] == pytest.approx(24.0)
    assert first["Total Downtime"] == pytest.approx(39.0)


def test_party_and_reason_breakdowns():
    prepared = _prepared_sample()

    parties = build_responsible_party_breakdown(prepared)
    assert set(parties["Responsible Party"]) == {"Internal", "OEM", "Unassigned"}
    assert parties["Share %"].sum() == pytest.approx(100.0, abs=0.05)
    assert parties.iloc[0]["Responsible Party"] == "OEM"

    reasons = build_reason_code_breakdown(prepared)
    assert reasons.iloc[0]["Reason Code"] == "HYD"
    assert reasons.iloc[0]["Occurrences"] == 2
    assert reasons.iloc[0]["Total Cost"] == pytest.approx(3500.0)


def test_breakdowns_on_empty_frame_keep_columns():
    empty = prepare_event_dataframe(pd.DataFrame())
    assert build_aircraft_breakdown(empty).empty
    assert "Share %" in build_responsible_party_breakdown(empty).columns
    assert "Reason Code" in build_reason_code_breakdown(empty).columns


def test_milestone_coverage_profile():
    prepared = _prepared_sample()
    coverage = analyze_milestone_coverage(prepared)
    assert {"Milestone", "Populated", "Coverage %"}.issubset(coverage.columns)
    assert len(coverage) == 7

    reported = coverage.loc[coverage["Column"] == "reported_at"].iloc[0]
    # the legacy row gets reported_at back-filled from its start date
    assert reported["Populated"] == 3
    issued = coverage.loc[coverage["Column"] == "issued_back_at"].iloc[0]
    assert issued["Coverage %"] == 0

    assert milestone_completeness(prepared) == pytest.approx(66.67)


def test_build_bucket_time_series_returns_frame_and_summary():
    prepared = _prepared_sample()
    result = build_bucket_time_series(prepared)
    assert {"period", "technical_hours", "legacy_hours", "trend"}.issubset(result.frame.columns)
    assert len(result.frame) == 3
    assert result.frame["events"].sum() == len(prepared)
    assert result.frame["legacy_hours"].sum() == pytest.approx(24.0)
    assert result.slope is not None
    assert result.model_summary


def test_time_series_on_empty_frame():
    result = build_bucket_time_series(pd.DataFrame())
    assert result.frame.empty
    assert result.slope is None


def test_visuals_return_figures():
    prepared = _prepared_sample()
    events = events_from_frame(prepared)

    pie = build_bucket_pie_chart(aggregate(events))
    assert set(pie.data[0].labels) == {"Technical", "Procurement", "Ops", "Legacy"}

    assert build_aircraft_bucket_chart(prepared).data
    assert build_stage_chart(analyze_stages(events)).data
    assert build_bucket_time_series_chart(build_bucket_time_series(prepared).frame).data

    fig = create_downtime_distribution_plot(prepared)
    assert fig.axes
