"""Plotly and Matplotlib visualisations for AOG downtime analytics."""

from __future__ import annotations

from typing import Sequence

import pandas as pd
import plotly.express as px
from matplotlib import pyplot as plt
import seaborn as sns

from .breakdowns import build_aircraft_breakdown
from .buckets import BUCKET_LABELS, ThreeBucketBreakdown
from .risk import RiskScoreResult
from .stages import BottleneckAnalysis

sns.set_theme(style="whitegrid")
_BLUE = "#2563eb"
_RED = "#dc2626"
_GREEN = "#059669"
_AMBER = "#f59e0b"
_GREY = "#94a3b8"
BUCKET_COLORS = {
    "Technical": _BLUE,
    "Procurement": _AMBER,
    "Ops": _GREEN,
    "Legacy": _GREY,
}


def _empty_figure(message: str):
    fig = px.scatter()
    fig.add_annotation(text=message, showarrow=False)
    fig.update_xaxes(visible=False)
    fig.update_yaxes(visible=False)
    fig.update_layout(height=320, margin=dict(l=10, r=10, t=40, b=10))
    return fig


def build_bucket_pie_chart(breakdown: ThreeBucketBreakdown, *, include_legacy: bool = True):
    """Pie of downtime by bucket; legacy downtime is its own slice."""
    hours = {BUCKET_LABELS[name]: breakdown.bucket(name).total_hours for name in ("technical", "procurement", "ops")}
    if include_legacy:
        hours[BUCKET_LABELS["legacy"]] = breakdown.legacy_downtime_hours
    if sum(hours.values()) <= 0:
        return _empty_figure("No downtime recorded for the selected events.")

    data = pd.DataFrame({"Bucket": list(hours), "Hours": list(hours.values())})
    fig = px.pie(
        data,
        names="Bucket",
        values="Hours",
        color="Bucket",
        color_discrete_map=BUCKET_COLORS,
        title="Downtime by bucket",
    )
    fig.update_traces(textposition="inside", textinfo="percent+label")
    fig.update_layout(height=400)
    return fig


def build_aircraft_bucket_chart(df: pd.DataFrame, *, top_n: int = 15):
    """Stacked bucket hours for the aircraft with the most downtime."""
    table = build_aircraft_breakdown(df)
    if table.empty:
        return _empty_figure("No aircraft downtime data available.")

    data = table.head(top_n).rename(
        columns={
            "Technical Hours": "Technical",
            "Procurement Hours": "Procurement",
            "Ops Hours": "Ops",
            "Legacy Hours": "Legacy",
        }
    )
    fig = px.bar(
        data,
        x="Aircraft",
        y=["Technical", "Procurement", "Ops", "Legacy"],
        color_discrete_map=BUCKET_COLORS,
        labels={"value": "Hours", "variable": "Bucket"},
        title="Downtime by aircraft",
    )
    fig.update_layout(barmode="stack", legend_title_text="Bucket", height=400)
    return fig


def build_stage_chart(analysis: BottleneckAnalysis):
    """Horizontal bar of average hours per stage, bottleneck highlighted."""
    frame = analysis.to_frame()
    if frame.empty or analysis.bottleneck is None:
        return _empty_figure("No milestone stage data available.")

    frame["Status"] = frame["Bottleneck"].map({True: "Bottleneck", False: "Stage"})
    fig = px.bar(
        frame,
        x="Average Hours",
        y="Stage",
        orientation="h",
        color="Status",
        color_discrete_map={"Bottleneck": _RED, "Stage": _BLUE},
        hover_data=["Events", "Total Hours"],
        title="Average hours per milestone stage",
    )
    fig.update_layout(height=400, yaxis=dict(autorange="reversed"), legend_title_text="")
    return fig


def build_bucket_time_series_chart(ts_frame: pd.DataFrame):
    """Plot monthly bucket hours with an optional trend line on total downtime."""
    if ts_frame.empty or "total_downtime_hours" not in ts_frame.columns:
        return _empty_figure("Insufficient data for time-series analysis.")

    fig = px.line(
        ts_frame,
        x="period",
        y=["technical_hours", "procurement_hours", "ops_hours", "legacy_hours"],
        title="Monthly downtime by bucket",
        labels={"period": "Month", "value": "Hours", "variable": "Bucket"},
    )
    if "trend" in ts_frame.columns and ts_frame["trend"].notna().any():
        fig.add_trace(px.line(ts_frame, x="period", y="trend").data[0])
        fig.data[-1].name = "Total trend (OLS)"
        fig.data[-1].line.color = "#FF6B6B"
        fig.data[-1].showlegend = True
    fig.update_layout(height=420, legend_title_text="")
    return fig


def build_risk_chart(scores: Sequence[RiskScoreResult], *, threshold: float = 30.0):
    if not scores:
        return _empty_figure("No aircraft risk scores available.")
    data = pd.DataFrame(
        {
            "Aircraft": [result.registration for result in scores],
            "Risk Score": [result.risk_score for result in scores],
            "Level": [result.level for result in scores],
        }
    ).sort_values("Risk Score", ascending=False)
    fig = px.bar(
        data,
        x="Aircraft",
        y="Risk Score",
        color="Level",
        color_discrete_map={"High": _RED, "Medium": _AMBER, "Low": _GREEN},
        title="Aircraft risk score",
    )
    fig.add_hline(y=threshold, line_dash="dot", line_color=_GREY)
    fig.update_layout(height=400, yaxis=dict(range=[0, 100]))
    return fig


def create_downtime_distribution_plot(df: pd.DataFrame):
    """Return a Matplotlib histogram of total downtime split by event class."""
    fig, ax = plt.subplots(figsize=(6, 4))
    if df.empty or "total_downtime_hours" not in df.columns:
        ax.text(0.5, 0.5, "No downtime data available.", ha="center", va="center")
        ax.axis("off")
        return fig

    working = df[df["total_downtime_hours"] > 0]
    if working.empty:
        ax.text(0.5, 0.5, "No downtime data available.", ha="center", va="center")
        ax.axis("off")
        return fig

    hue = "event_class" if "event_class" in working.columns else None
    sns.histplot(
        data=working,
        x="total_downtime_hours",
        hue=hue,
        bins=20,
        palette={"Complete": _BLUE, "Legacy": _GREY} if hue else None,
        color=None if hue else _BLUE,
        alpha=0.7,
        ax=ax,
    )
    ax.set_title("Distribution of AOG downtime")
    ax.set_xlabel("Downtime (hours)")
    ax.set_ylabel("Events")
    fig.tight_layout()
    return fig
