"""Breakdown tables for AOG downtime analytics."""

from __future__ import annotations

import pandas as pd

AIRCRAFT_COLUMNS = [
    "Aircraft",
    "Events",
    "Legacy Events",
    "Technical Hours",
    "Procurement Hours",
    "Ops Hours",
    "Legacy Hours",
    "Total Downtime",
]
PARTY_COLUMNS = ["Responsible Party", "Events", "Total Downtime", "Share %"]
REASON_COLUMNS = ["Reason Code", "Occurrences", "Total Downtime", "Total Cost"]


def _aircraft_label(df: pd.DataFrame) -> pd.Series:
    registration = df.get("registration", pd.Series(pd.NA, index=df.index, dtype="string")).astype("string")
    aircraft_id = df.get("aircraft_id", pd.Series(pd.NA, index=df.index, dtype="string")).astype("string")
    return registration.where(registration.fillna("") != "", aircraft_id).fillna("Unknown")


def build_aircraft_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """Bucket and legacy hours per aircraft, worst aircraft first.

    Bucket columns only count complete events; downtime of legacy events is
    reported in ``Legacy Hours`` instead.
    """
    required = {"technical_time_hours", "procurement_time_hours", "ops_time_hours", "total_downtime_hours", "is_legacy"}
    if df.empty or not required.issubset(df.columns):
        return pd.DataFrame(columns=AIRCRAFT_COLUMNS)

    legacy = df["is_legacy"].fillna(False).astype(bool)
    working = df.assign(
        aircraft=_aircraft_label(df),
        legacy_event=legacy.astype(int),
        legacy_hours=df["total_downtime_hours"].where(legacy, 0.0),
        technical=df["technical_time_hours"].where(~legacy, 0.0),
        procurement=df["procurement_time_hours"].where(~legacy, 0.0),
        ops=df["ops_time_hours"].where(~legacy, 0.0),
    )

    result = (
        working.groupby("aircraft", dropna=False)
        .agg(
            events=("aircraft", "size"),
            legacy_events=("legacy_event", "sum"),
            technical=("technical", "sum"),
            procurement=("procurement", "sum"),
            ops=("ops", "sum"),
            legacy_hours=("legacy_hours", "sum"),
            total=("total_downtime_hours", "sum"),
        )
        .reset_index()
    )
    result.columns = AIRCRAFT_COLUMNS
    result["Events"] = result["Events"].astype(int)
    result["Legacy Events"] = result["Legacy Events"].astype(int)
    hour_columns = AIRCRAFT_COLUMNS[3:]
    result[hour_columns] = result[hour_columns].astype(float).round(2)
    return result.sort_values(["Total Downtime", "Events"], ascending=[False, False]).reset_index(drop=True)


def build_responsible_party_breakdown(df: pd.DataFrame) -> pd.DataFrame:
    """Total downtime attributed to each responsible party."""
    if df.empty or "total_downtime_hours" not in df.columns:
        return pd.DataFrame(columns=PARTY_COLUMNS)

    party = df.get("responsible_party", pd.Series(pd.NA, index=df.index)).astype("string").fillna("Unassigned")
    grouped = (
        df.assign(party=party)
        .groupby("party", dropna=False)
        .agg(events=("party", "size"), total=("total_downtime_hours", "sum"))
        .reset_index()
    )
    grand_total = grouped["total"].sum()
    grouped["share"] = (grouped["total"] / grand_total * 100.0) if grand_total > 0 else 0.0
    grouped.columns = PARTY_COLUMNS
    grouped["Total Downtime"] = grouped["Total Downtime"].astype(float).round(2)
    grouped["Share %"] = grouped["Share %"].astype(float).round(2)
    return grouped.sort_values("Total Downtime", ascending=False).reset_index(drop=True)


def build_reason_code_breakdown(df: pd.DataFrame, *, top_n: int = 15) -> pd.DataFrame:
    """Return the most frequent reason codes with their downtime and cost."""
    if df.empty or not {"reason_code", "total_downtime_hours"}.issubset(df.columns):
        return pd.DataFrame(columns=REASON_COLUMNS)

    working = df.dropna(subset=["reason_code"])
    working = working[working["reason_code"].astype("string").str.strip() != ""]
    if working.empty:
        return pd.DataFrame(columns=REASON_COLUMNS)

    cost = working.get("total_cost", pd.Series(0.0, index=working.index))
    grouped = (
        working.assign(cost=cost)
        .groupby("reason_code", dropna=False)
        .agg(
            occurrences=("reason_code", "size"),
            total=("total_downtime_hours", "sum"),
            cost=("cost", "sum"),
        )
        .reset_index()
    )
    grouped.columns = REASON_COLUMNS
    grouped["Occurrences"] = grouped["Occurrences"].astype(int)
    grouped["Total Downtime"] = grouped["Total Downtime"].astype(float).round(2)
    grouped["Total Cost"] = grouped["Total Cost"].astype(float).round(2)
    return (
        grouped.sort_values(["Occurrences", "Total Downtime"], ascending=[False, False])
        .head(top_n)
        .reset_index(drop=True)
    )
