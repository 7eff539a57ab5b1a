"""Year-over-year comparison of AOG downtime."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Sequence

import pandas as pd

from ..models import GroundingEvent, coerce_timestamp, round_half_up
from .buckets import ThreeBucketBreakdown, aggregate, filter_events

TREND_THRESHOLD_PCT = 5.0


@dataclass(slots=True)
class YoYMetric:
    name: str
    current_year: float
    previous_year: float
    change: float
    change_percentage: float
    trend: str
    favorable: bool


@dataclass(slots=True)
class YoYComparison:
    current_start: datetime
    current_end: datetime
    previous_start: datetime
    previous_end: datetime
    metrics: List[YoYMetric] = field(default_factory=list)
    has_historical_data: bool = False

    def metric(self, name: str) -> YoYMetric:
        for item in self.metrics:
            if item.name == name:
                return item
        raise KeyError(name)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(
            [
                {
                    "Metric": item.name,
                    "Current": item.current_year,
                    "Previous": item.previous_year,
                    "Change": item.change,
                    "Change %": item.change_percentage,
                    "Trend": item.trend,
                    "Favorable": item.favorable,
                }
                for item in self.metrics
            ],
            columns=["Metric", "Current", "Previous", "Change", "Change %", "Trend", "Favorable"],
        )


def build_metric(name: str, current: float, previous: float, *, higher_is_better: bool = False) -> YoYMetric:
    """Compare two values; trend is ``flat`` within +/-5 % of the previous value."""
    change = current - previous
    change_percentage = change / previous * 100.0 if previous != 0 else 0.0
    trend = "flat"
    if abs(change_percentage) > TREND_THRESHOLD_PCT:
        trend = "up" if change > 0 else "down"
    favorable = change >= 0 if higher_is_better else change <= 0
    return YoYMetric(
        name=name,
        current_year=round_half_up(current, 2),
        previous_year=round_half_up(previous, 2),
        change=round_half_up(change, 2),
        change_percentage=round_half_up(change_percentage, 1),
        trend=trend,
        favorable=favorable,
    )


def _breakdown_values(breakdown: ThreeBucketBreakdown) -> List[tuple[str, float]]:
    return [
        ("AOG Events", float(breakdown.total_events)),
        ("Total Downtime (h)", breakdown.total_downtime_hours),
        ("Average Downtime (h)", breakdown.average_downtime_hours),
        ("Technical Hours", breakdown.technical.total_hours),
        ("Procurement Hours", breakdown.procurement.total_hours),
        ("Ops Hours", breakdown.ops.total_hours),
        ("Legacy Downtime (h)", breakdown.legacy_downtime_hours),
    ]


def compare_year_over_year(
    events: Sequence[GroundingEvent],
    start: datetime,
    end: datetime,
    *,
    aircraft_id: str | None = None,
    fleet_group: str | None = None,
) -> YoYComparison:
    """Aggregate ``[start, end]`` and the same window one year earlier.

    Every metric is downtime-like, so a decrease is favorable.
    """
    start = coerce_timestamp(start)
    end = coerce_timestamp(end)
    previous_start = (pd.Timestamp(start) - pd.DateOffset(years=1)).to_pydatetime()
    previous_end = (pd.Timestamp(end) - pd.DateOffset(years=1)).to_pydatetime()

    current_events = filter_events(events, start=start, end=end, aircraft_id=aircraft_id, fleet_group=fleet_group)
    previous_events = filter_events(
        events, start=previous_start, end=previous_end, aircraft_id=aircraft_id, fleet_group=fleet_group
    )

    current_values = _breakdown_values(aggregate(current_events))
    previous_values = dict(_breakdown_values(aggregate(previous_events)))

    metrics = [build_metric(name, value, previous_values[name]) for name, value in current_values]
    return YoYComparison(
        current_start=start,
        current_end=end,
        previous_start=previous_start,
        previous_end=previous_end,
        metrics=metrics,
        has_historical_data=len(previous_events) > 0,
    )
