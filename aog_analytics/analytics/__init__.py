"""Fleet analytics over AOG grounding events."""

from .preparation import prepare_event_dataframe, events_from_frame, events_to_frame
from .buckets import (
    BucketStats,
    ThreeBucketBreakdown,
    aggregate,
    breakdown_to_frame,
    filter_events,
    summary_to_frame,
)
from .breakdowns import build_aircraft_breakdown, build_reason_code_breakdown, build_responsible_party_breakdown
from .stages import BottleneckAnalysis, StageStats, analyze_stages, bottlenecks_by
from .risk import (
    RiskFactor,
    RiskScoreResult,
    calculate_risk_score,
    calculate_risk_scores,
    get_high_risk_aircraft,
)
from .comparison import YoYComparison, YoYMetric, compare_year_over_year
from .visuals import (
    build_aircraft_bucket_chart,
    build_bucket_pie_chart,
    build_bucket_time_series_chart,
    build_risk_chart,
    build_stage_chart,
    create_downtime_distribution_plot,
)
from .profiling import analyze_milestone_coverage, milestone_completeness
from .timeseries import build_bucket_time_series

__all__ = [
    "prepare_event_dataframe",
    "events_from_frame",
    "events_to_frame",
    "BucketStats",
    "ThreeBucketBreakdown",
    "aggregate",
    "breakdown_to_frame",
    "filter_events",
    "summary_to_frame",
    "build_aircraft_breakdown",
    "build_reason_code_breakdown",
    "build_responsible_party_breakdown",
    "BottleneckAnalysis",
    "StageStats",
    "analyze_stages",
    "bottlenecks_by",
    "RiskFactor",
    "RiskScoreResult",
    "calculate_risk_score",
    "calculate_risk_scores",
    "get_high_risk_aircraft",
    "YoYComparison",
    "YoYMetric",
    "compare_year_over_year",
    "build_aircraft_bucket_chart",
    "build_bucket_pie_chart",
    "build_bucket_time_series_chart",
    "build_risk_chart",
    "build_stage_chart",
    "create_downtime_distribution_plot",
    "analyze_milestone_coverage",
    "milestone_completeness",
    "build_bucket_time_series",
]
