"""Grounding-event record and the field aliases used to read it.

Events arrive as MongoDB documents (camelCase keys), as spreadsheet rows
(free-form headers) or as pandas rows. ``GroundingEvent.from_record`` maps
all of them onto one set of snake_case attributes and coerces every
timestamp fail-soft: a value that cannot be parsed is treated as absent.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

_SQUASH = re.compile(r"[^0-9a-z]+")

MILESTONE_ORDER: Tuple[str, ...] = (
    "reported_at",
    "procurement_requested_at",
    "available_at_store_at",
    "issued_back_at",
    "installation_complete_at",
    "test_start_at",
    "up_and_running_at",
)

TIMESTAMP_FIELDS: Tuple[str, ...] = ("detected_at", "cleared_at", *MILESTONE_ORDER)
DERIVED_FIELDS: Tuple[str, ...] = (
    "technical_time_hours",
    "procurement_time_hours",
    "ops_time_hours",
    "total_downtime_hours",
)
COST_FIELDS: Tuple[str, ...] = ("internal_cost", "external_cost")
FLAG_FIELDS: Tuple[str, ...] = ("is_imported", "is_legacy")

# snake_case attribute -> camelCase document key
DOCUMENT_KEYS: Dict[str, str] = {
    "event_id": "_id",
    "aircraft_id": "aircraftId",
    "registration": "registration",
    "fleet_group": "fleetGroup",
    "detected_at": "detectedAt",
    "cleared_at": "clearedAt",
    "reported_at": "reportedAt",
    "procurement_requested_at": "procurementRequestedAt",
    "available_at_store_at": "availableAtStoreAt",
    "issued_back_at": "issuedBackAt",
    "installation_complete_at": "installationCompleteAt",
    "test_start_at": "testStartAt",
    "up_and_running_at": "upAndRunningAt",
    "technical_time_hours": "technicalTimeHours",
    "procurement_time_hours": "procurementTimeHours",
    "ops_time_hours": "opsTimeHours",
    "total_downtime_hours": "totalDowntimeHours",
    "is_imported": "isImported",
    "is_legacy": "isLegacy",
    "internal_cost": "internalCost",
    "external_cost": "externalCost",
    "reason_code": "reasonCode",
    "responsible_party": "responsibleParty",
    "category": "category",
}

# Squashed header (lowercase, alphanumerics only) -> attribute. Covers the
# document keys, the snake_case attribute names and spreadsheet headers.
FIELD_ALIASES: Dict[str, str] = {
    "id": "event_id",
    "eventid": "event_id",
    "aircraftid": "aircraft_id",
    "aircraft": "registration",
    "registration": "registration",
    "aircraftregistration": "registration",
    "tail": "registration",
    "tailnumber": "registration",
    "fleetgroup": "fleet_group",
    "fleet": "fleet_group",
    "detectedat": "detected_at",
    "detected": "detected_at",
    "startdate": "detected_at",
    "clearedat": "cleared_at",
    "cleared": "cleared_at",
    "finishdate": "cleared_at",
    "reportedat": "reported_at",
    "reported": "reported_at",
    "procurementrequestedat": "procurement_requested_at",
    "procurementrequested": "procurement_requested_at",
    "availableatstoreat": "available_at_store_at",
    "availableatstore": "available_at_store_at",
    "issuedbackat": "issued_back_at",
    "issuedback": "issued_back_at",
    "installationcompleteat": "installation_complete_at",
    "installationcomplete": "installation_complete_at",
    "teststartat": "test_start_at",
    "teststart": "test_start_at",
    "upandrunningat": "up_and_running_at",
    "upandrunning": "up_and_running_at",
    "technicaltimehours": "technical_time_hours",
    "procurementtimehours": "procurement_time_hours",
    "opstimehours": "ops_time_hours",
    "totaldowntimehours": "total_downtime_hours",
    "isimported": "is_imported",
    "islegacy": "is_legacy",
    "internalcost": "internal_cost",
    "externalcost": "external_cost",
    "reasoncode": "reason_code",
    "reason": "reason_code",
    "wodefect": "reason_code",
    "defectdescription": "reason_code",
    "responsibleparty": "responsible_party",
    "category": "category",
    "aogoos": "category",
}


def squash(label: object) -> str:
    """Reduce a header or key to lowercase alphanumerics for alias lookup."""
    return _SQUASH.sub("", str(label).strip().lower())


def resolve_field(label: object) -> Optional[str]:
    """Return the event attribute a header/key refers to, if any."""
    return FIELD_ALIASES.get(squash(label))


def _is_missing(value: object) -> bool:
    if value is None or value is pd.NaT or value is pd.NA:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and not value.strip():
        return True
    return False


def coerce_timestamp(value: object) -> Optional[datetime]:
    """Parse ``value`` into a naive UTC ``datetime``.

    Strings, ``datetime``/``date``, ``pandas.Timestamp`` and ``numpy.datetime64``
    are accepted. Anything else, or anything that fails to parse, yields
    ``None`` so a single bad cell never aborts a batch.
    """
    if _is_missing(value):
        return None
    if not isinstance(value, (str, datetime, date, pd.Timestamp, np.datetime64)):
        logger.debug("Ignoring non-temporal timestamp value", extra={"value_type": type(value).__name__})
        return None

    try:
        parsed = pd.to_datetime(value, errors="coerce", utc=True)
    except (TypeError, ValueError, OverflowError):
        parsed = pd.NaT

    if parsed is pd.NaT or pd.isna(parsed):
        logger.debug("Treating unparseable timestamp as absent", extra={"value": str(value)[:64]})
        return None
    return parsed.tz_convert(None).to_pydatetime()


def coerce_float(value: object) -> float:
    """Parse a numeric field, falling back to ``0.0``."""
    if _is_missing(value) or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def round_half_up(value: float, digits: int = 2) -> float:
    """Round to ``digits`` places with ties going up, so ``0.125`` becomes ``0.13``."""
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def coerce_flag(value: object) -> bool:
    if _is_missing(value):
        return False
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "y", "1"}
    return bool(value)


def coerce_text(value: object) -> Optional[str]:
    if _is_missing(value):
        return None
    return str(value).strip()


@dataclass(slots=True)
class GroundingEvent:
    """One AOG occurrence for one aircraft."""

    aircraft_id: str
    detected_at: Optional[datetime] = None
    cleared_at: Optional[datetime] = None
    event_id: Optional[str] = None
    registration: Optional[str] = None
    fleet_group: Optional[str] = None

    reported_at: Optional[datetime] = None
    procurement_requested_at: Optional[datetime] = None
    available_at_store_at: Optional[datetime] = None
    issued_back_at: Optional[datetime] = None
    installation_complete_at: Optional[datetime] = None
    test_start_at: Optional[datetime] = None
    up_and_running_at: Optional[datetime] = None

    technical_time_hours: float = 0.0
    procurement_time_hours: float = 0.0
    ops_time_hours: float = 0.0
    total_downtime_hours: float = 0.0

    is_imported: bool = False
    is_legacy: bool = False

    internal_cost: float = 0.0
    external_cost: float = 0.0
    reason_code: Optional[str] = None
    responsible_party: Optional[str] = None
    category: Optional[str] = None

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "GroundingEvent":
        """Build an event from a document, spreadsheet row or plain mapping."""
        values: Dict[str, Any] = {}
        for key, raw in record.items():
            attribute = resolve_field(key)
            if attribute is None or attribute in values:
                continue
            values[attribute] = raw

        kwargs: Dict[str, Any] = {}
        for attribute in TIMESTAMP_FIELDS:
            kwargs[attribute] = coerce_timestamp(values.get(attribute))
        for attribute in (*DERIVED_FIELDS, *COST_FIELDS):
            kwargs[attribute] = max(0.0, coerce_float(values.get(attribute)))
        for attribute in FLAG_FIELDS:
            kwargs[attribute] = coerce_flag(values.get(attribute))
        for attribute in ("event_id", "registration", "fleet_group", "reason_code", "responsible_party", "category"):
            kwargs[attribute] = coerce_text(values.get(attribute))

        aircraft_id = coerce_text(values.get("aircraft_id")) or kwargs["registration"] or ""
        return cls(aircraft_id=aircraft_id, **kwargs)

    def to_record(self) -> Dict[str, Any]:
        """Return the camelCase document form, omitting absent optional values."""
        record: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if value is None:
                continue
            record[DOCUMENT_KEYS[item.name]] = value
        return record

    def milestones(self) -> Dict[str, Optional[datetime]]:
        return {name: getattr(self, name) for name in MILESTONE_ORDER}

    def with_updates(self, **changes: Any) -> "GroundingEvent":
        return replace(self, **changes)

    @property
    def anchor_date(self) -> Optional[datetime]:
        """Date the event is filed under for windowed analytics."""
        return self.reported_at or self.detected_at

    @property
    def total_cost(self) -> float:
        return self.internal_cost + self.external_cost

    @property
    def is_active(self) -> bool:
        return self.cleared_at is None and self.up_and_running_at is None


@dataclass(slots=True)
class DowntimeMetrics:
    """Derived fields computed for one event."""

    technical_time_hours: float = 0.0
    procurement_time_hours: float = 0.0
    ops_time_hours: float = 0.0
    total_downtime_hours: float = 0.0
    reported_at: Optional[datetime] = None
    up_and_running_at: Optional[datetime] = None

    @property
    def bucket_sum(self) -> float:
        return self.technical_time_hours + self.procurement_time_hours + self.ops_time_hours

    @property
    def is_undecomposable(self) -> bool:
        """Downtime exists but none of it could be attributed to a bucket."""
        return self.bucket_sum == 0 and self.total_downtime_hours > 0

    def as_update(self) -> Dict[str, Any]:
        """Return the ``$set`` payload for the document store."""
        payload: Dict[str, Any] = {
            "technicalTimeHours": self.technical_time_hours,
            "procurementTimeHours": self.procurement_time_hours,
            "opsTimeHours": self.ops_time_hours,
            "totalDowntimeHours": self.total_downtime_hours,
        }
        if self.reported_at is not None:
            payload["reportedAt"] = self.reported_at
        if self.up_and_running_at is not None:
            payload["upAndRunningAt"] = self.up_and_running_at
        return payload
