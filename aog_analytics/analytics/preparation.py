"""Data preparation for AOG event tables."""

from __future__ import annotations

import re
from dataclasses import asdict
from datetime import datetime, time, timedelta
from typing import Iterable, List, Sequence

import numpy as np
import pandas as pd

from ..classifier import has_milestone_detail
from ..errors import DataValidationError
from ..metrics import apply_metrics
from ..models import (
    COST_FIELDS,
    DERIVED_FIELDS,
    FLAG_FIELDS,
    TIMESTAMP_FIELDS,
    GroundingEvent,
    coerce_timestamp,
    resolve_field,
    squash,
)

_NON_ALNUM = re.compile(r"[^0-9a-zA-Z]+")
_MULTI_UNDERSCORE = re.compile(r"_+")

EVENT_COLUMNS: tuple[str, ...] = (
    "event_id",
    "aircraft_id",
    "registration",
    "fleet_group",
    *TIMESTAMP_FIELDS,
    *DERIVED_FIELDS,
    *FLAG_FIELDS,
    *COST_FIELDS,
    "reason_code",
    "responsible_party",
    "category",
)
PREPARED_COLUMNS: tuple[str, ...] = (
    *EVENT_COLUMNS,
    "event_class",
    "anchor_date",
    "total_cost",
    "is_active",
    "has_milestone_detail",
)

# Spreadsheet exports split the start/finish instants into a date and a time column.
TIME_COMPANIONS = {
    "starttime": "detected_at",
    "detectedtime": "detected_at",
    "finishtime": "cleared_at",
    "clearedtime": "cleared_at",
}


def _canonicalise(column: str) -> str:
    """Convert column headers to snake_case strings."""
    clean = _NON_ALNUM.sub("_", str(column).strip().lower())
    clean = _MULTI_UNDERSCORE.sub("_", clean).strip("_")
    return clean


def _build_rename_map(columns: Iterable[str]) -> dict[str, str]:
    rename_map: dict[str, str] = {}
    claimed: set[str] = set()
    for column in columns:
        target = resolve_field(column)
        if target is None or target in claimed:
            target = _canonicalise(column)
        if target in claimed:
            # second header for a field already taken, e.g. "Aircraft" and "Registration"
            base, suffix = target, 2
            while f"{base}_{suffix}" in claimed:
                suffix += 1
            target = f"{base}_{suffix}"
        claimed.add(target)
        rename_map[column] = target
    return rename_map


def _parse_datetime(series: pd.Series) -> pd.Series:
    parsed = series.map(coerce_timestamp)
    return pd.to_datetime(parsed, errors="coerce")


def _time_offset(value: object) -> pd.Timedelta | None:
    if value is None or value is pd.NaT or value is pd.NA:
        return None
    if isinstance(value, time):
        return pd.Timedelta(hours=value.hour, minutes=value.minute, seconds=value.second)
    if isinstance(value, datetime):
        return pd.Timedelta(hours=value.hour, minutes=value.minute, seconds=value.second)
    if isinstance(value, timedelta):
        return pd.Timedelta(value)
    text = str(value).strip()
    if not text or text.lower() in {"nan", "none", "nat"}:
        return None
    if text.count(":") == 1:
        text = f"{text}:00"
    offset = pd.to_timedelta(text, errors="coerce")
    return None if pd.isna(offset) else offset


def _combine_date_time(dates: pd.Series, times: pd.Series) -> pd.Series:
    day = _parse_datetime(dates).dt.normalize()
    offsets = pd.to_timedelta(times.map(_time_offset), errors="coerce").fillna(pd.Timedelta(0))
    return day + offsets


def events_from_frame(df: pd.DataFrame) -> List[GroundingEvent]:
    """Build ``GroundingEvent`` objects from a raw or prepared event table."""
    if df.empty:
        return []
    return [GroundingEvent.from_record(record) for record in df.to_dict("records")]


def events_to_frame(events: Sequence[GroundingEvent]) -> pd.DataFrame:
    """Tabulate events with one column per ``GroundingEvent`` attribute."""
    if not events:
        return pd.DataFrame(columns=list(EVENT_COLUMNS))

    frame = pd.DataFrame([asdict(event) for event in events])
    frame = frame.reindex(columns=list(EVENT_COLUMNS))
    for column in TIMESTAMP_FIELDS:
        frame[column] = pd.to_datetime(frame[column], errors="coerce")
    return frame


def prepare_event_dataframe(df: pd.DataFrame, *, imported: bool | None = None) -> pd.DataFrame:
    """
    Return a normalized copy of an AOG event table ready for analytics.

    The function standardises column names, merges split date/time columns,
    parses every timestamp fail-soft, and recomputes the derived columns from
    the milestones:
      * the four bucket/total hour columns and back-filled ``reported_at`` / ``up_and_running_at``
      * ``is_legacy`` and ``event_class`` (``Complete`` / ``Legacy``)
      * ``anchor_date``, ``total_cost``, ``is_active`` and ``has_milestone_detail``

    Columns the event model does not know are carried through untouched.
    ``imported`` overrides the ``is_imported`` flag for every row when given.
    """

    if df.empty:
        return pd.DataFrame(columns=list(PREPARED_COLUMNS))

    working = df.dropna(how="all").copy()
    time_columns = {column: TIME_COMPANIONS[squash(column)] for column in working.columns if squash(column) in TIME_COMPANIONS}
    working = working.rename(columns=_build_rename_map(c for c in working.columns if c not in time_columns))

    if "aircraft_id" not in working.columns and "registration" not in working.columns:
        raise DataValidationError(
            "Event table needs an aircraft column (e.g. 'Aircraft', 'Registration' or 'aircraftId'); "
            f"found {list(df.columns)}"
        )

    for column in TIMESTAMP_FIELDS:
        if column in working.columns:
            working[column] = _parse_datetime(working[column])

    for source, target in time_columns.items():
        if target in working.columns:
            working[target] = _combine_date_time(working[target], working[source])
        working = working.drop(columns=[source])

    if imported is not None:
        working["is_imported"] = bool(imported)

    events = [apply_metrics(event) for event in events_from_frame(working)]
    derived = events_to_frame(events)
    derived.index = working.index

    for column in EVENT_COLUMNS:
        working[column] = derived[column]

    working["event_class"] = np.where(working["is_legacy"], "Legacy", "Complete")
    working["anchor_date"] = working["reported_at"].fillna(working["detected_at"])
    working["total_cost"] = working["internal_cost"] + working["external_cost"]
    working["is_active"] = working["cleared_at"].isna() & working["up_and_running_at"].isna()
    working["has_milestone_detail"] = [has_milestone_detail(event) for event in events]

    has_identity = working["aircraft_id"].astype("string").fillna("").str.len() > 0
    working = working[has_identity]

    ordered = list(PREPARED_COLUMNS) + [column for column in working.columns if column not in PREPARED_COLUMNS]
    return working[ordered].reset_index(drop=True)
