"""Per-aircraft risk score built from recent frequency, trends and recurrence."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from ..metrics import compute_metrics
from ..models import GroundingEvent, coerce_timestamp, round_half_up

logger = logging.getLogger(__name__)

RECENT_WINDOW_DAYS = 30
HIGH_RISK_THRESHOLD = 30.0

FACTOR_WEIGHTS: Tuple[Tuple[str, float], ...] = (
    ("Recent Event Frequency", 0.4),
    ("Average Downtime Trend", 0.3),
    ("Cost Trend", 0.2),
    ("Recurring Issues", 0.1),
)


@dataclass(slots=True)
class RiskFactor:
    name: str
    contribution: float


@dataclass(slots=True)
class RiskScoreResult:
    aircraft_id: str
    registration: str
    risk_score: float = 0.0
    factors: List[RiskFactor] = field(default_factory=list)

    @property
    def level(self) -> str:
        if self.risk_score > 60:
            return "High"
        if self.risk_score > HIGH_RISK_THRESHOLD:
            return "Medium"
        return "Low"


def _event_time(event: GroundingEvent) -> Optional[datetime]:
    return coerce_timestamp(event.detected_at or event.reported_at)


def _downtime_hours(event: GroundingEvent) -> float:
    total = compute_metrics(event).total_downtime_hours
    return total if total > 0 else event.total_downtime_hours


def _chronological(events: Sequence[GroundingEvent]) -> List[GroundingEvent]:
    return sorted(events, key=lambda event: _event_time(event) or datetime.min)


def _halves_trend_score(events: Sequence[GroundingEvent], value: Callable[[GroundingEvent], float]) -> float:
    """0 when the later half is flat or better; 100 at a 2x increase."""
    if len(events) < 2:
        return 0.0

    ordered = _chronological(events)
    midpoint = len(ordered) // 2
    first, second = ordered[:midpoint], ordered[midpoint:]

    first_avg = sum(value(event) for event in first) / max(1, len(first))
    second_avg = sum(value(event) for event in second) / max(1, len(second))
    if second_avg <= first_avg:
        return 0.0

    ratio = second_avg / max(0.1, first_avg)
    return min(100.0, (ratio - 1) * 100)


def recent_frequency_score(
    aircraft_events: Sequence[GroundingEvent],
    all_events: Sequence[GroundingEvent],
    *,
    reference_time: datetime,
    window_days: int = RECENT_WINDOW_DAYS,
) -> float:
    """Compare this aircraft's recent event count with the fleet per-aircraft average.

    0 at or below the average, 100 at three times the average or more.
    """
    cutoff = coerce_timestamp(reference_time) - timedelta(days=window_days)

    def is_recent(event: GroundingEvent) -> bool:
        moment = _event_time(event)
        return moment is not None and moment >= cutoff

    recent = sum(1 for event in aircraft_events if is_recent(event))
    fleet_recent = sum(1 for event in all_events if is_recent(event))
    fleet_aircraft = len({event.aircraft_id for event in all_events})
    fleet_average = fleet_recent / max(1, fleet_aircraft)

    if recent <= fleet_average:
        return 0.0
    ratio = recent / max(0.1, fleet_average)
    return min(100.0, (ratio - 1) / 2 * 100)


def downtime_trend_score(aircraft_events: Sequence[GroundingEvent]) -> float:
    return _halves_trend_score(aircraft_events, _downtime_hours)


def cost_trend_score(aircraft_events: Sequence[GroundingEvent]) -> float:
    return _halves_trend_score(aircraft_events, lambda event: event.total_cost)


def recurring_issues_score(aircraft_events: Sequence[GroundingEvent]) -> float:
    """0 when no reason code repeats; 100 once one code appears five times."""
    if len(aircraft_events) < 2:
        return 0.0
    counts = Counter(event.reason_code for event in aircraft_events if event.reason_code)
    max_occurrences = max(counts.values(), default=0)
    if max_occurrences <= 1:
        return 0.0
    return min(100.0, (max_occurrences - 1) / 4 * 100)


def calculate_risk_score(
    aircraft_id: str,
    events: Sequence[GroundingEvent],
    all_events: Sequence[GroundingEvent],
    *,
    registration: Optional[str] = None,
    reference_time: Optional[datetime] = None,
    window_days: int = RECENT_WINDOW_DAYS,
) -> RiskScoreResult:
    """Score one aircraft from 0 (low) to 100 (high).

    ``events`` may hold the whole fleet; only the aircraft's own events are
    scored. ``all_events`` supplies the fleet-wide baseline for the recent
    frequency factor. ``reference_time`` defaults to the current UTC time.
    """
    aircraft_events = [event for event in events if event.aircraft_id == aircraft_id]
    label = registration or next((event.registration for event in aircraft_events if event.registration), aircraft_id)

    if not aircraft_events:
        return RiskScoreResult(aircraft_id=aircraft_id, registration=label)

    reference_time = coerce_timestamp(reference_time) or datetime.now(timezone.utc).replace(tzinfo=None)
    sub_scores = (
        recent_frequency_score(aircraft_events, all_events, reference_time=reference_time, window_days=window_days),
        downtime_trend_score(aircraft_events),
        cost_trend_score(aircraft_events),
        recurring_issues_score(aircraft_events),
    )
    weighted = [score * weight for score, (_, weight) in zip(sub_scores, FACTOR_WEIGHTS)]
    combined = min(100.0, sum(weighted))

    factors: List[RiskFactor] = []
    if combined > 0:
        for (name, _), part in zip(FACTOR_WEIGHTS, weighted):
            contribution = part / combined * 100
            if contribution > 0:
                factors.append(RiskFactor(name=name, contribution=contribution))

    logger.debug(
        "Calculated risk score",
        extra={"aircraft_id": aircraft_id, "events": len(aircraft_events), "risk_score": combined},
    )
    return RiskScoreResult(
        aircraft_id=aircraft_id,
        registration=label,
        risk_score=round_half_up(combined, 1),
        factors=factors,
    )


def calculate_risk_scores(
    aircraft: Iterable[Mapping[str, str] | Tuple[str, str]],
    events: Sequence[GroundingEvent],
    *,
    reference_time: Optional[datetime] = None,
    window_days: int = RECENT_WINDOW_DAYS,
) -> List[RiskScoreResult]:
    """Score every aircraft against the same fleet-wide event list.

    ``aircraft`` items are ``(aircraft_id, registration)`` pairs or mappings
    with ``id`` and ``registration`` keys.
    """
    results: List[RiskScoreResult] = []
    for item in aircraft:
        if isinstance(item, Mapping):
            aircraft_id, registration = item["id"], item.get("registration")
        else:
            aircraft_id, registration = item
        results.append(
            calculate_risk_score(
                aircraft_id,
                events,
                events,
                registration=registration,
                reference_time=reference_time,
                window_days=window_days,
            )
        )
    return results


def get_high_risk_aircraft(
    scores: Sequence[RiskScoreResult],
    top_n: int = 3,
    threshold: float = HIGH_RISK_THRESHOLD,
) -> List[RiskScoreResult]:
    """Top ``top_n`` scores, keeping only those above ``threshold``."""
    ranked = sorted(scores, key=lambda result: result.risk_score, reverse=True)[:top_n]
    return [result for result in ranked if result.risk_score > threshold]


def risk_scores_to_frame(scores: Sequence[RiskScoreResult]) -> pd.DataFrame:
    rows = [
        {
            "Aircraft": result.registration,
            "Risk Score": result.risk_score,
            "Level": result.level,
            "Factors": ", ".join(f"{factor.name} ({factor.contribution:.0f}%)" for factor in result.factors) or "—",
        }
        for result in sorted(scores, key=lambda result: result.risk_score, reverse=True)
    ]
    return pd.DataFrame(rows, columns=["Aircraft", "Risk Score", "Level", "Factors"])
