"""Three-bucket downtime decomposition for a single grounding event.

Two steps:

1. Back-fill: ``reported_at`` defaults to ``detected_at`` and
   ``up_and_running_at`` defaults to ``cleared_at``.
2. Dispatch on which milestones are populated:

   - ``CompleteMilestones``: reported and up-and-running both known; the
     three buckets and the total are computed from the milestones.
   - ``DetectedClearedOnly``: only the coarse detection/clearance pair is
     known; the total is their difference and the buckets stay at zero.
   - ``NoData``: nothing to measure; every field is zero.

Technical time is troubleshooting (reported -> procurement requested, or
reported -> installation complete when no part was ordered) plus
installation (available at store -> installation complete). Procurement
time is procurement requested -> available at store. Ops time is test start
-> up and running. Total downtime is always reported -> up and running, so
buckets undercount when intermediate milestones are skipped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Union

from .models import DowntimeMetrics, GroundingEvent

logger = logging.getLogger(__name__)

_SECONDS_PER_HOUR = 3600.0


@dataclass(frozen=True, slots=True)
class CompleteMilestones:
    reported_at: datetime
    up_and_running_at: datetime
    procurement_requested_at: Optional[datetime] = None
    available_at_store_at: Optional[datetime] = None
    installation_complete_at: Optional[datetime] = None
    test_start_at: Optional[datetime] = None


@dataclass(frozen=True, slots=True)
class DetectedClearedOnly:
    detected_at: datetime
    cleared_at: datetime


@dataclass(frozen=True, slots=True)
class NoData:
    pass


MilestonePath = Union[CompleteMilestones, DetectedClearedOnly, NoData]


def hours_between(start: Optional[datetime], end: Optional[datetime]) -> float:
    """Elapsed hours from ``start`` to ``end``, clamped at zero.

    Returns ``0.0`` when either side is missing. Out-of-order input (``end``
    before ``start``) also yields ``0.0`` rather than a negative duration.
    """
    if start is None or end is None:
        return 0.0
    try:
        elapsed = (end - start).total_seconds() / _SECONDS_PER_HOUR
    except TypeError:
        logger.debug(
            "Skipping duration due to incompatible datetime types",
            extra={"start": repr(start), "end": repr(end)},
        )
        return 0.0
    return max(0.0, elapsed)


def backfill(event: GroundingEvent) -> GroundingEvent:
    """Return a copy of ``event`` with default report/up-and-running milestones."""
    reported_at = event.reported_at if event.reported_at is not None else event.detected_at
    up_and_running_at = event.up_and_running_at if event.up_and_running_at is not None else event.cleared_at
    if reported_at is event.reported_at and up_and_running_at is event.up_and_running_at:
        return event
    return event.with_updates(reported_at=reported_at, up_and_running_at=up_and_running_at)


def select_path(event: GroundingEvent) -> MilestonePath:
    """Pick the computation path from the populated milestones (no back-fill)."""
    if event.reported_at is not None and event.up_and_running_at is not None:
        return CompleteMilestones(
            reported_at=event.reported_at,
            up_and_running_at=event.up_and_running_at,
            procurement_requested_at=event.procurement_requested_at,
            available_at_store_at=event.available_at_store_at,
            installation_complete_at=event.installation_complete_at,
            test_start_at=event.test_start_at,
        )
    if event.detected_at is not None and event.cleared_at is not None:
        return DetectedClearedOnly(detected_at=event.detected_at, cleared_at=event.cleared_at)
    return NoData()


def _technical_hours(path: CompleteMilestones) -> float:
    if path.procurement_requested_at is not None:
        troubleshooting = hours_between(path.reported_at, path.procurement_requested_at)
    elif path.installation_complete_at is not None:
        # no procurement step: repair ran straight through to installation
        troubleshooting = hours_between(path.reported_at, path.installation_complete_at)
    else:
        troubleshooting = 0.0

    installation = hours_between(path.available_at_store_at, path.installation_complete_at)
    return troubleshooting + installation


def compute_metrics(event: GroundingEvent, *, backfill_defaults: bool = True) -> DowntimeMetrics:
    """Compute bucket hours and total downtime for ``event``.

    Never raises for missing or malformed milestones. With
    ``backfill_defaults`` the returned ``reported_at``/``up_and_running_at``
    carry the back-filled values so callers can persist them.
    """
    source = backfill(event) if backfill_defaults else event
    path = select_path(source)

    metrics = DowntimeMetrics(reported_at=source.reported_at, up_and_running_at=source.up_and_running_at)

    if isinstance(path, CompleteMilestones):
        metrics.technical_time_hours = _technical_hours(path)
        metrics.procurement_time_hours = hours_between(path.procurement_requested_at, path.available_at_store_at)
        metrics.ops_time_hours = hours_between(path.test_start_at, path.up_and_running_at)
        metrics.total_downtime_hours = hours_between(path.reported_at, path.up_and_running_at)
    elif isinstance(path, DetectedClearedOnly):
        metrics.total_downtime_hours = hours_between(path.detected_at, path.cleared_at)
    else:
        logger.debug(
            "No milestone data to compute downtime",
            extra={"event_id": event.event_id, "aircraft_id": event.aircraft_id},
        )

    return metrics


def apply_metrics(event: GroundingEvent, metrics: Optional[DowntimeMetrics] = None) -> GroundingEvent:
    """Return a copy of ``event`` whose derived fields match its milestones."""
    metrics = metrics or compute_metrics(event)
    return event.with_updates(
        reported_at=metrics.reported_at,
        up_and_running_at=metrics.up_and_running_at,
        technical_time_hours=metrics.technical_time_hours,
        procurement_time_hours=metrics.procurement_time_hours,
        ops_time_hours=metrics.ops_time_hours,
        total_downtime_hours=metrics.total_downtime_hours,
        is_legacy=metrics.is_undecomposable,
    )
