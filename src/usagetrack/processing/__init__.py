"""Processing module for usagetrack.

Provides the daily activity reconstruction engine.
"""

from .daily import DailyDataProcessor
from .insights import InsightGenerator, derive_insights
from .models import (
    DailyAppUsageRecord,
    DailyDeviceSummary,
    DailyInsight,
    DailyProcessingResult,
    InsightKey,
    ScrollDataType,
    ScrollSessionRecord,
    SessionEndReason,
    SessionType,
    UnlockSessionRecord,
    UsageInterval,
)
from .scroll import ScrollSessionMerger, merge_scroll_sessions
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds
from .unlock import UnlockSessionReconstructor, reconstruct_unlock_sessions
from .usage import UsageAggregator, aggregate_usage, count_app_opens

__all__ = [
    "DEFAULT_THRESHOLDS",
    "DailyAppUsageRecord",
    "DailyDataProcessor",
    "DailyDeviceSummary",
    "DailyInsight",
    "DailyProcessingResult",
    "InsightGenerator",
    "InsightKey",
    "ProcessingThresholds",
    "ScrollDataType",
    "ScrollSessionMerger",
    "ScrollSessionRecord",
    "SessionEndReason",
    "SessionType",
    "UnlockSessionReconstructor",
    "UnlockSessionRecord",
    "UsageAggregator",
    "UsageInterval",
    "aggregate_usage",
    "count_app_opens",
    "derive_insights",
    "merge_scroll_sessions",
    "reconstruct_unlock_sessions",
]
