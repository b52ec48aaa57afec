"""
Metrics Aggregator Module

Pure reductions from a sealed snapshot sequence to summary statistics, plus
token throughput derived from provider timing markers.
"""
import math
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from evaluator.models.metrics_data import (
    AggregatedMetrics,
    ChannelStats,
    MetricsData,
    RunChannelSummary,
    TokenMetrics,
    TokenTiming,
)
from evaluator.models.snapshot import Snapshot


def channel_stats(values: Iterable[Optional[float]]) -> ChannelStats:
    """
    Mean and peak over the present readings.

    Absent readings (None) are skipped; a channel with no present reading
    reports zeros with `any_present=False`.
    """
    present = [v for v in values if v is not None]
    if not present:
        return ChannelStats()
    peak = max(present)
    # float rounding can push the mean of equal readings above them
    average = min(math.fsum(present) / len(present), peak)
    return ChannelStats(
        average=average,
        peak=peak,
        any_present=True,
        samples=len(present),
    )


def _keyed_stats(snapshots: Sequence[Snapshot],
                 getter: Callable[[Snapshot], Dict[str, float]]) -> Dict[str, ChannelStats]:
    keys: List[str] = []
    for s in snapshots:
        for key in getter(s):
            if key not in keys:
                keys.append(key)
    return {key: channel_stats(getter(s).get(key) for s in snapshots) for key in keys}


def token_metrics(timing: Optional[TokenTiming]) -> Optional[TokenMetrics]:
    """
    Derive time-to-first-token and tokens/second.

    tokens/second is only set for a positive completion count over a positive
    duration; otherwise it stays None ("not measured").
    """
    if timing is None:
        return None

    ttft = None
    if timing.first_token is not None:
        ttft = max(timing.first_token - timing.request_start, 0.0)

    tps = None
    if timing.completion_tokens and timing.completion_tokens > 0 and timing.total_duration > 0:
        tps = timing.completion_tokens / timing.total_duration

    return TokenMetrics(
        time_to_first_token=ttft,
        tokens_per_second=tps,
        prompt_tokens=timing.prompt_tokens,
        completion_tokens=timing.completion_tokens,
        total_tokens=timing.total_tokens,
    )


def aggregate(snapshots: Sequence[Snapshot],
              token_timing: Optional[TokenTiming] = None,
              start_time: Optional[datetime] = None,
              end_time: Optional[datetime] = None) -> MetricsData:
    """
    Reduce a completed snapshot sequence into MetricsData.

    Args:
        snapshots: Snapshots in temporal order
        token_timing: Optional provider timing markers and token counts
        start_time: Run start; defaults to the first snapshot (or now)
        end_time: Run end; defaults to the last snapshot (or start_time)

    Returns:
        MetricsData with per-channel statistics
    """
    snapshots = tuple(snapshots)
    if start_time is None:
        start_time = snapshots[0].timestamp if snapshots else datetime.now(timezone.utc)
    if end_time is None:
        end_time = snapshots[-1].timestamp if snapshots else start_time

    return MetricsData(
        start_time=start_time,
        end_time=end_time,
        snapshots=snapshots,
        cpu=channel_stats(s.cpu_percent for s in snapshots),
        memory=channel_stats(s.memory_used_mb for s in snapshots),
        gpu=channel_stats(s.gpu_percent for s in snapshots),
        npu=channel_stats(s.npu_percent for s in snapshots),
        evaluator_memory=channel_stats(s.evaluator_memory_mb for s in snapshots),
        provider_memory=_keyed_stats(snapshots, lambda s: s.provider_memory_mb),
        provider_cpu=_keyed_stats(snapshots, lambda s: s.provider_cpu_percent),
        tokens=token_metrics(token_timing),
    )


def _run_summary(stats: List[ChannelStats]) -> RunChannelSummary:
    present = [s for s in stats if s.any_present]
    if not present:
        return RunChannelSummary()
    averages = [s.average for s in present]
    return RunChannelSummary(
        average=sum(averages) / len(averages),
        minimum=min(averages),
        maximum=max(averages),
        peak=sum(s.peak for s in present) / len(present),
        runs=len(present),
    )


def aggregate_runs(metrics: Sequence[MetricsData]) -> AggregatedMetrics:
    """
    Summarise several runs' metrics channel by channel.

    Raises:
        ValueError: If no metrics are given
    """
    if not metrics:
        raise ValueError("Metrics cannot be empty")
    return AggregatedMetrics(
        cpu=_run_summary([m.cpu for m in metrics]),
        memory=_run_summary([m.memory for m in metrics]),
        gpu=_run_summary([m.gpu for m in metrics]),
        npu=_run_summary([m.npu for m in metrics]),
    )
