"""Time-series utilities for monthly downtime by bucket."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd
import statsmodels.api as sm

SERIES_COLUMNS = [
    "period",
    "events",
    "technical_hours",
    "procurement_hours",
    "ops_hours",
    "legacy_hours",
    "total_downtime_hours",
    "trend",
]


@dataclass(slots=True)
class TimeSeriesResult:
    frame: pd.DataFrame
    model_summary: str | None
    slope: float | None


def _empty_result() -> TimeSeriesResult:
    return TimeSeriesResult(frame=pd.DataFrame(columns=SERIES_COLUMNS), model_summary=None, slope=None)


def build_bucket_time_series(df: pd.DataFrame, freq: str = "MS") -> TimeSeriesResult:
    """Return bucket and legacy hours resampled by period plus an OLS trend on total downtime.

    Events are filed under their anchor date. The trend is fitted only when at
    least three periods exist; ``slope`` is in hours per period.
    """
    required = {"anchor_date", "technical_time_hours", "procurement_time_hours", "ops_time_hours", "total_downtime_hours"}
    if df.empty or not required.issubset(df.columns):
        return _empty_result()

    indexed = df.dropna(subset=["anchor_date"]).copy()
    if indexed.empty:
        return _empty_result()

    legacy = indexed.get("is_legacy", pd.Series(False, index=indexed.index)).fillna(False).astype(bool)
    indexed = indexed.assign(
        events=1,
        technical_hours=indexed["technical_time_hours"].where(~legacy, 0.0),
        procurement_hours=indexed["procurement_time_hours"].where(~legacy, 0.0),
        ops_hours=indexed["ops_time_hours"].where(~legacy, 0.0),
        legacy_hours=indexed["total_downtime_hours"].where(legacy, 0.0),
    )
    indexed["anchor_date"] = pd.to_datetime(indexed["anchor_date"])
    indexed = indexed.set_index("anchor_date").sort_index()

    series = (
        indexed[["events", "technical_hours", "procurement_hours", "ops_hours", "legacy_hours", "total_downtime_hours"]]
        .resample(freq)
        .sum()
    )
    if series.empty:
        return _empty_result()

    series = series.reset_index().rename(columns={"anchor_date": "period"})
    series["events"] = series["events"].astype(int)
    hour_columns = ["technical_hours", "procurement_hours", "ops_hours", "legacy_hours", "total_downtime_hours"]
    series[hour_columns] = series[hour_columns].astype(float).round(2)

    model_summary = None
    slope = None
    series["trend"] = np.nan
    if len(series) >= 3:
        x = np.arange(len(series))
        X = sm.add_constant(x)
        model = sm.OLS(series["total_downtime_hours"], X).fit()
        series["trend"] = model.predict(X)
        model_summary = model.summary().as_text()
        slope = float(model.params.iloc[1]) if len(model.params) > 1 else None

    return TimeSeriesResult(frame=series[SERIES_COLUMNS], model_summary=model_summary, slope=slope)
