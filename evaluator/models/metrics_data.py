"""Aggregated metrics data models."""

from dataclasses import dataclass, field, replace, asdict
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from evaluator.models.snapshot import Snapshot


@dataclass(frozen=True)
class ChannelStats:
    """
    Reduced statistics for one channel of a snapshot series.

    `any_present` separates "never read" (False, zeros) from a channel that
    was read and measured zero (True, zeros).
    """
    average: float = 0.0
    peak: float = 0.0
    any_present: bool = False
    samples: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TokenTiming:
    """Streaming markers and token counts reported by a provider call (monotonic seconds)"""
    request_start: float
    total_duration: float
    first_token: Optional[float] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None


@dataclass(frozen=True)
class TokenMetrics:
    """
    Derived token throughput.

    Unset fields mean "not measured"; a 0.0 would claim a measured zero.
    """
    time_to_first_token: Optional[float] = None
    tokens_per_second: Optional[float] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class MetricsData:
    """
    Sealed result of one collection run.

    Snapshots are in temporal order and the statistics are computed once,
    when the run is sealed.
    """
    start_time: datetime
    end_time: datetime
    snapshots: Tuple[Snapshot, ...] = ()
    cpu: ChannelStats = ChannelStats()
    memory: ChannelStats = ChannelStats()
    gpu: ChannelStats = ChannelStats()
    npu: ChannelStats = ChannelStats()
    evaluator_memory: ChannelStats = ChannelStats()
    provider_memory: Mapping[str, ChannelStats] = field(default_factory=dict)
    provider_cpu: Mapping[str, ChannelStats] = field(default_factory=dict)
    tokens: Optional[TokenMetrics] = None

    def __post_init__(self):
        object.__setattr__(self, "snapshots", tuple(self.snapshots))
        object.__setattr__(self, "provider_memory", MappingProxyType(dict(self.provider_memory)))
        object.__setattr__(self, "provider_cpu", MappingProxyType(dict(self.provider_cpu)))

    @property
    def duration(self) -> float:
        """Wall-clock duration of the run in seconds"""
        return (self.end_time - self.start_time).total_seconds()

    @property
    def samples_count(self) -> int:
        return len(self.snapshots)

    def with_tokens(self, tokens: Optional[TokenMetrics]) -> 'MetricsData':
        """Return a copy carrying the given token metrics."""
        return replace(self, tokens=tokens)

    def channels(self) -> Dict[str, ChannelStats]:
        return {
            'cpu': self.cpu,
            'memory': self.memory,
            'gpu': self.gpu,
            'npu': self.npu,
            'evaluator_memory': self.evaluator_memory,
        }

    def to_dict(self, include_snapshots: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        data = {
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_seconds': self.duration,
            'samples_count': self.samples_count,
            'channels': {name: stats.to_dict() for name, stats in self.channels().items()},
            'provider_memory': {k: v.to_dict() for k, v in self.provider_memory.items()},
            'provider_cpu': {k: v.to_dict() for k, v in self.provider_cpu.items()},
            'tokens': self.tokens.to_dict() if self.tokens else None,
        }
        if include_snapshots:
            data['snapshots'] = [s.to_dict() for s in self.snapshots]
        return data

    def format_resource_stats(self) -> str:
        """Format resource usage statistics for display."""
        def fmt(stats: ChannelStats, unit: str) -> str:
            if not stats.any_present:
                return "n/a"
            return f"{stats.average:.1f}{unit} (peak {stats.peak:.1f}{unit})"

        return "cpu={}  memory={}  gpu={}  npu={}".format(
            fmt(self.cpu, "%"),
            fmt(self.memory, "MB"),
            fmt(self.gpu, "%"),
            fmt(self.npu, "%"),
        )


@dataclass(frozen=True)
class RunChannelSummary:
    """One channel summarised across several runs"""
    average: float = 0.0
    minimum: float = 0.0
    maximum: float = 0.0
    peak: float = 0.0
    runs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class AggregatedMetrics:
    """
    Per-channel summary over the metrics of several runs.

    average/minimum/maximum are taken over each run's average, peak is the
    mean of each run's peak. Runs that never read a channel are left out of
    that channel.
    """
    cpu: RunChannelSummary = RunChannelSummary()
    memory: RunChannelSummary = RunChannelSummary()
    gpu: RunChannelSummary = RunChannelSummary()
    npu: RunChannelSummary = RunChannelSummary()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cpu': self.cpu.to_dict(),
            'memory': self.memory.to_dict(),
            'gpu': self.gpu.to_dict(),
            'npu': self.npu.to_dict(),
        }
