"""Milestone coverage diagnostics for event tables."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import pandas as pd

from ..models import MILESTONE_ORDER

MILESTONE_LABELS = {
    "reported_at": "Reported",
    "procurement_requested_at": "Procurement Requested",
    "available_at_store_at": "Available at Store",
    "issued_back_at": "Issued Back",
    "installation_complete_at": "Installation Complete",
    "test_start_at": "Test Start",
    "up_and_running_at": "Up & Running",
}


@dataclass(slots=True)
class MilestoneCoverage:
    milestone: str
    label: str
    populated: int
    coverage_pct: float


def analyze_milestone_coverage(df: pd.DataFrame) -> pd.DataFrame:
    """
    Return one row per milestone describing how often it is populated.

    Metrics included:
    - number of events with the timestamp present
    - percentage of events with the timestamp present
    """

    columns = ["Milestone", "Column", "Populated", "Coverage %"]
    if df.empty:
        return pd.DataFrame(columns=columns)

    total_rows = max(len(df), 1)
    profiles: List[MilestoneCoverage] = []
    for milestone in MILESTONE_ORDER:
        series = df.get(milestone, pd.Series(pd.NaT, index=df.index))
        populated = int(series.notna().sum())
        profiles.append(
            MilestoneCoverage(
                milestone=milestone,
                label=MILESTONE_LABELS[milestone],
                populated=populated,
                coverage_pct=round(populated / total_rows * 100.0, 2),
            )
        )

    return pd.DataFrame(
        {
            "Milestone": [profile.label for profile in profiles],
            "Column": [profile.milestone for profile in profiles],
            "Populated": [profile.populated for profile in profiles],
            "Coverage %": [profile.coverage_pct for profile in profiles],
        }
    )


def milestone_completeness(df: pd.DataFrame) -> float:
    """Share of events, in percent, carrying enough milestones for bucket analytics."""
    if df.empty or "has_milestone_detail" not in df.columns:
        return 0.0
    return round(float(df["has_milestone_detail"].fillna(False).astype(bool).mean() * 100.0), 2)
