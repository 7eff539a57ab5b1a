"""Legacy vs complete classification of grounding events.

An event is legacy when downtime was recorded but none of it can be
attributed to a bucket: all three bucket hours are zero while total
downtime is positive. The classification is always derived from the
milestones; a stored ``is_legacy`` flag may be stale and is not consulted.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, List, Tuple

from .metrics import compute_metrics
from .models import GroundingEvent


class EventClass(str, Enum):
    COMPLETE = "Complete"
    LEGACY = "Legacy"


def is_legacy(event: GroundingEvent) -> bool:
    """Return ``True`` when the event's downtime cannot be decomposed."""
    return compute_metrics(event).is_undecomposable


def classify(event: GroundingEvent) -> EventClass:
    return EventClass.LEGACY if is_legacy(event) else EventClass.COMPLETE


def partition_events(events: Iterable[GroundingEvent]) -> Tuple[List[GroundingEvent], List[GroundingEvent]]:
    """Split events into ``(complete, legacy)``; each event lands in exactly one list."""
    complete: List[GroundingEvent] = []
    legacy: List[GroundingEvent] = []
    for event in events:
        (legacy if is_legacy(event) else complete).append(event)
    return complete, legacy


def has_milestone_detail(event: GroundingEvent) -> bool:
    """Whether the event carries the minimum milestone set for bucket analytics.

    Report (or detection), installation complete and up-and-running (or
    clearance) must all be present.
    """
    reported = event.reported_at or event.detected_at
    up_and_running = event.up_and_running_at or event.cleared_at
    return reported is not None and event.installation_complete_at is not None and up_and_running is not None
