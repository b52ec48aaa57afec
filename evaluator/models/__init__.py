"""Models for evaluation data structures."""

from .snapshot import Snapshot
from .tracked_process import TrackedProcess, ProcessUsage, ProviderUsage
from .metrics_data import (
    AggregatedMetrics,
    ChannelStats,
    MetricsData,
    RunChannelSummary,
    TokenMetrics,
    TokenTiming,
)
from .metrics_series import MetricsSeries
from .provider_response import ProviderResponse
from .evaluation_result import EvaluationResult
from .device_metadata import DeviceMetadata
from .evaluation_session import EvaluationSession

__all__ = [
    "AggregatedMetrics",
    "ChannelStats",
    "DeviceMetadata",
    "EvaluationResult",
    "EvaluationSession",
    "MetricsData",
    "MetricsSeries",
    "ProcessUsage",
    "ProviderResponse",
    "ProviderUsage",
    "RunChannelSummary",
    "Snapshot",
    "TokenMetrics",
    "TokenTiming",
    "TrackedProcess",
]
