"""Per-stage durations between consecutive milestones and bottleneck detection."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from ..metrics import backfill, hours_between
from ..models import GroundingEvent, round_half_up

logger = logging.getLogger(__name__)

STAGES: Tuple[Tuple[str, str, str], ...] = (
    ("Troubleshooting", "reported_at", "procurement_requested_at"),
    ("Procurement", "procurement_requested_at", "available_at_store_at"),
    ("Issue to Maintenance", "available_at_store_at", "issued_back_at"),
    ("Installation", "issued_back_at", "installation_complete_at"),
    ("Awaiting Test", "installation_complete_at", "test_start_at"),
    ("Ops Testing", "test_start_at", "up_and_running_at"),
)

COHORT_KEYS: Dict[str, Callable[[GroundingEvent], Optional[str]]] = {
    "aircraft": lambda event: event.aircraft_id or None,
    "fleet_group": lambda event: event.fleet_group,
    "responsible_party": lambda event: event.responsible_party,
}


@dataclass(slots=True)
class StageStats:
    stage: str
    start_milestone: str
    end_milestone: str
    count: int = 0
    total_hours: float = 0.0
    average_hours: float = 0.0


@dataclass(slots=True)
class BottleneckAnalysis:
    """Stage statistics in milestone order plus the slowest stage, if any."""

    stages: List[StageStats] = field(default_factory=list)
    bottleneck: Optional[StageStats] = None
    events_analyzed: int = 0

    def to_frame(self) -> pd.DataFrame:
        rows = [
            {
                "Stage": stats.stage,
                "From": stats.start_milestone,
                "To": stats.end_milestone,
                "Events": stats.count,
                "Total Hours": stats.total_hours,
                "Average Hours": stats.average_hours,
                "Bottleneck": self.bottleneck is not None and stats.stage == self.bottleneck.stage,
            }
            for stats in self.stages
        ]
        return pd.DataFrame(
            rows,
            columns=["Stage", "From", "To", "Events", "Total Hours", "Average Hours", "Bottleneck"],
        )


def _stage_hours(event: GroundingEvent) -> Dict[str, float]:
    filled = backfill(event)
    durations: Dict[str, float] = {}
    for stage, start_field, end_field in STAGES:
        start = getattr(filled, start_field)
        end = getattr(filled, end_field)
        if start is None or end is None:
            continue
        durations[stage] = hours_between(start, end)
    return durations


def analyze_stages(events: Sequence[GroundingEvent]) -> BottleneckAnalysis:
    """Average each stage over the events that populate both of its endpoints.

    The bottleneck is the stage with the highest average; the earliest stage
    in milestone order wins a tie. With no stage data the bottleneck is
    ``None``.
    """
    totals = {stage: 0.0 for stage, _, _ in STAGES}
    counts = {stage: 0 for stage, _, _ in STAGES}

    for event in events:
        for stage, hours in _stage_hours(event).items():
            totals[stage] += hours
            counts[stage] += 1

    stages: List[StageStats] = []
    for stage, start_field, end_field in STAGES:
        count = counts[stage]
        stages.append(
            StageStats(
                stage=stage,
                start_milestone=start_field,
                end_milestone=end_field,
                count=count,
                total_hours=round_half_up(totals[stage], 2),
                average_hours=round_half_up(totals[stage] / count, 2) if count else 0.0,
            )
        )

    bottleneck: Optional[StageStats] = None
    for stats in stages:
        if stats.count == 0:
            continue
        if bottleneck is None or stats.average_hours > bottleneck.average_hours:
            bottleneck = stats

    logger.debug(
        "Analyzed milestone stages",
        extra={
            "events": len(events),
            "bottleneck": bottleneck.stage if bottleneck else None,
        },
    )
    return BottleneckAnalysis(stages=stages, bottleneck=bottleneck, events_analyzed=len(events))


def bottlenecks_by(events: Sequence[GroundingEvent], key: str = "aircraft") -> Dict[str, BottleneckAnalysis]:
    """Run ``analyze_stages`` per cohort.

    ``key`` is one of ``aircraft``, ``fleet_group`` or ``responsible_party``.
    Events without a value for the key are grouped under ``"Unassigned"``.
    """
    try:
        key_func = COHORT_KEYS[key]
    except KeyError as exc:
        raise ValueError(f"Unknown cohort key {key!r}; expected one of {sorted(COHORT_KEYS)}") from exc

    cohorts: Dict[str, List[GroundingEvent]] = {}
    for event in events:
        cohorts.setdefault(key_func(event) or "Unassigned", []).append(event)

    return {name: analyze_stages(members) for name, members in sorted(cohorts.items())}


def bottleneck_summary_frame(results: Dict[str, BottleneckAnalysis]) -> pd.DataFrame:
    """One row per cohort naming its bottleneck stage."""
    rows = []
    for name, analysis in results.items():
        bottleneck = analysis.bottleneck
        rows.append(
            {
                "Cohort": name,
                "Events": analysis.events_analyzed,
                "Bottleneck": bottleneck.stage if bottleneck else "—",
                "Average Hours": bottleneck.average_hours if bottleneck else 0.0,
            }
        )
    return pd.DataFrame(rows, columns=["Cohort", "Events", "Bottleneck", "Average Hours"])
