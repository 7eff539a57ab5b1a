"""AOG downtime decomposition and fleet analytics package."""

from .config import Settings, get_settings
from .data_loader import load_events
from .models import DowntimeMetrics, GroundingEvent, MILESTONE_ORDER
from .metrics import compute_metrics, apply_metrics
from .classifier import EventClass, classify, is_legacy, partition_events
from .analytics.preparation import prepare_event_dataframe
from .analytics.buckets import ThreeBucketBreakdown, aggregate

__all__ = [
    "Settings",
    "get_settings",
    "load_events",
    "DowntimeMetrics",
    "GroundingEvent",
    "MILESTONE_ORDER",
    "compute_metrics",
    "apply_metrics",
    "EventClass",
    "classify",
    "is_legacy",
    "partition_events",
    "prepare_event_dataframe",
    "ThreeBucketBreakdown",
    "aggregate",
]
