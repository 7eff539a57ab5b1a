from __future__ import annotations

from datetime import datetime, timedelta

from aog_analytics.classifier import (
    EventClass,
    classify,
    has_milestone_detail,
    is_legacy,
    partition_events,
)
from aog_analytics.models import GroundingEvent

T0 = datetime(2024, 5, 10, 6, 0)


def _legacy_event() -> GroundingEvent:
    return GroundingEvent(aircraft_id="AC-1", detected_at=T0, cleared_at=T0 + timedelta(hours=20))


def _complete_event() -> GroundingEvent:
    return GroundingEvent(
        aircraft_id="AC-2",
        reported_at=T0,
        installation_complete_at=T0 + timedelta(hours=5),
        up_and_running_at=T0 + timedelta(hours=6),
    )


def test_detected_cleared_only_event_is_legacy():
    event = _legacy_event()
    assert is_legacy(event)
    assert classify(event) is EventClass.LEGACY
    assert classify(event).value == "Legacy"


def test_decomposed_event_is_complete():
    assert not is_legacy(_complete_event())
    assert classify(_complete_event()) is EventClass.COMPLETE


def test_stale_stored_flag_is_ignored():
    stale = _complete_event().with_updates(is_legacy=True)
    assert classify(stale) is EventClass.COMPLETE

    unflagged = _legacy_event().with_updates(is_legacy=False)
    assert classify(unflagged) is EventClass.LEGACY


def test_zero_downtime_event_is_not_legacy():
    event = GroundingEvent(aircraft_id="AC-3", detected_at=T0)
    assert not is_legacy(event)


def test_partition_places_every_event_exactly_once():
    events = [_legacy_event(), _complete_event(), GroundingEvent(aircraft_id="AC-3"), _legacy_event()]
    complete, legacy = partition_events(events)
    assert len(complete) + len(legacy) == len(events)
    assert len(legacy) == 2
    assert all(not is_legacy(event) for event in complete)


def test_has_milestone_detail_accepts_fallback_timestamps():
    assert has_milestone_detail(_complete_event())
    assert not has_milestone_detail(_legacy_event())

    with_install = _legacy_event().with_updates(installation_complete_at=T0 + timedelta(hours=18))
    assert has_milestone_detail(with_install)
