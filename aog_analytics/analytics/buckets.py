"""Three-bucket fleet breakdown of AOG downtime."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from ..metrics import compute_metrics
from ..models import GroundingEvent, coerce_timestamp, round_half_up

logger = logging.getLogger(__name__)

BUCKETS = ("technical", "procurement", "ops")
BUCKET_LABELS = {
    "technical": "Technical",
    "procurement": "Procurement",
    "ops": "Ops",
    "legacy": "Legacy",
}


def _round2(value: float) -> float:
    return round_half_up(value, 2)


def _ratio(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100.0


@dataclass(slots=True)
class BucketStats:
    total_hours: float = 0.0
    average_hours: float = 0.0
    percentage: float = 0.0


@dataclass(slots=True)
class ThreeBucketBreakdown:
    """Fleet-level bucket totals, averages and shares.

    Legacy downtime is carried separately and never folded into the three
    bucket percentages.
    """

    technical: BucketStats = field(default_factory=BucketStats)
    procurement: BucketStats = field(default_factory=BucketStats)
    ops: BucketStats = field(default_factory=BucketStats)
    legacy_downtime_hours: float = 0.0
    total_events: int = 0
    complete_events: int = 0
    legacy_events: int = 0
    active_events: int = 0
    total_downtime_hours: float = 0.0
    average_downtime_hours: float = 0.0

    def bucket(self, name: str) -> BucketStats:
        return getattr(self, name)

    @property
    def bucket_hours(self) -> float:
        return sum(self.bucket(name).total_hours for name in BUCKETS)

    def slice_percentages(self, *, include_legacy: bool = True) -> Dict[str, float]:
        """Shares of each slice; with ``include_legacy`` legacy is a fourth slice."""
        slices = {name: self.bucket(name).total_hours for name in BUCKETS}
        if include_legacy:
            slices["legacy"] = self.legacy_downtime_hours
        whole = sum(slices.values())
        return {name: _round2(_ratio(hours, whole)) for name, hours in slices.items()}


def filter_events(
    events: Iterable[GroundingEvent],
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    aircraft_id: Optional[str] = None,
    fleet_group: Optional[str] = None,
) -> List[GroundingEvent]:
    """Select events by anchor date window (inclusive), aircraft and fleet group.

    Timezone-aware bounds are compared in naive UTC, like the event timestamps.
    """
    start = coerce_timestamp(start)
    end = coerce_timestamp(end)
    selected: List[GroundingEvent] = []
    for event in events:
        if aircraft_id is not None and event.aircraft_id != aircraft_id:
            continue
        if fleet_group is not None and event.fleet_group != fleet_group:
            continue
        if start is not None or end is not None:
            anchor = coerce_timestamp(event.anchor_date)
            if anchor is None:
                continue
            if start is not None and anchor < start:
                continue
            if end is not None and anchor > end:
                continue
        selected.append(event)
    return selected


def aggregate(events: Sequence[GroundingEvent]) -> ThreeBucketBreakdown:
    """Fold events into a ``ThreeBucketBreakdown``.

    Averages divide each bucket total by the number of complete events, so a
    bucket that most events skip shows a low average rather than none.
    Percentages divide by the sum of the three bucket totals. Every division
    by zero short-circuits to ``0``.
    """
    totals = {name: 0.0 for name in BUCKETS}
    legacy_hours = 0.0
    downtime_hours = 0.0
    complete_count = 0
    legacy_count = 0
    active_count = 0

    for event in events:
        metrics = compute_metrics(event)
        downtime_hours += metrics.total_downtime_hours
        if event.is_active:
            active_count += 1
        if metrics.is_undecomposable:
            legacy_count += 1
            legacy_hours += metrics.total_downtime_hours
            continue
        complete_count += 1
        totals["technical"] += metrics.technical_time_hours
        totals["procurement"] += metrics.procurement_time_hours
        totals["ops"] += metrics.ops_time_hours

    bucket_sum = sum(totals.values())
    stats = {
        name: BucketStats(
            total_hours=_round2(hours),
            average_hours=_round2(hours / complete_count) if complete_count else 0.0,
            percentage=_round2(_ratio(hours, bucket_sum)),
        )
        for name, hours in totals.items()
    }

    total_events = len(events)
    breakdown = ThreeBucketBreakdown(
        technical=stats["technical"],
        procurement=stats["procurement"],
        ops=stats["ops"],
        legacy_downtime_hours=_round2(legacy_hours),
        total_events=total_events,
        complete_events=complete_count,
        legacy_events=legacy_count,
        active_events=active_count,
        total_downtime_hours=_round2(downtime_hours),
        average_downtime_hours=_round2(downtime_hours / total_events) if total_events else 0.0,
    )

    logger.info(
        "Aggregated three-bucket breakdown",
        extra={
            "events_total": total_events,
            "events_complete": complete_count,
            "events_legacy": legacy_count,
            "bucket_hours": _round2(bucket_sum),
            "legacy_hours": breakdown.legacy_downtime_hours,
        },
    )
    return breakdown


def breakdown_to_frame(breakdown: ThreeBucketBreakdown) -> pd.DataFrame:
    """Render the breakdown as a table with legacy as a distinct fourth row."""
    four_slice = breakdown.slice_percentages(include_legacy=True)
    rows: List[Dict[str, object]] = []
    for name in BUCKETS:
        stats = breakdown.bucket(name)
        rows.append(
            {
                "Bucket": BUCKET_LABELS[name],
                "Total Hours": stats.total_hours,
                "Average Hours": stats.average_hours,
                "% of Buckets": stats.percentage,
                "% incl. Legacy": four_slice[name],
            }
        )
    rows.append(
        {
            "Bucket": f"{BUCKET_LABELS['legacy']} (undecomposed)",
            "Total Hours": breakdown.legacy_downtime_hours,
            "Average Hours": (
                _round2(breakdown.legacy_downtime_hours / breakdown.legacy_events)
                if breakdown.legacy_events
                else 0.0
            ),
            "% of Buckets": "—",
            "% incl. Legacy": four_slice["legacy"],
        }
    )
    return pd.DataFrame(rows)


def summary_to_frame(breakdown: ThreeBucketBreakdown) -> pd.DataFrame:
    """Headline counts and downtime totals as a two-column table."""
    rows = [
        ("AOG events", breakdown.total_events),
        ("Complete events", breakdown.complete_events),
        ("Legacy events", breakdown.legacy_events),
        ("Active events", breakdown.active_events),
        ("Total downtime (h)", breakdown.total_downtime_hours),
        ("Average downtime (h)", breakdown.average_downtime_hours),
        ("Legacy downtime (h)", breakdown.legacy_downtime_hours),
    ]
    return pd.DataFrame(rows, columns=["Metric", "Value"])
