"""
Tests for metrics aggregation.

Tests:
- Channel average/peak over present readings
- Absent vs. measured-zero accelerator channels
- Token throughput and time to first token
- Multi-run aggregation
"""

from datetime import datetime, timedelta, timezone

import pytest

from evaluator.models.metrics_data import TokenTiming
from evaluator.models.snapshot import Snapshot
from evaluator.service.aggregator.metrics_aggregator import (
    aggregate,
    aggregate_runs,
    channel_stats,
    token_metrics,
)

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


def make_snapshots(cpu, gpu=None, provider_memory=None):
    snapshots = []
    for i, value in enumerate(cpu):
        snapshots.append(Snapshot(
            monotonic=float(i),
            timestamp=T0 + timedelta(seconds=i),
            cpu_percent=value,
            memory_used_mb=1000.0 + i,
            evaluator_memory_mb=50.0,
            provider_memory_mb=(provider_memory[i] if provider_memory else {}),
            gpu_percent=gpu[i] if gpu else None,
        ))
    return snapshots


class TestChannelStats:

    def test_average_and_peak(self):
        stats = channel_stats([10.0, 20.0, 30.0, 40.0, 50.0])
        assert stats.average == pytest.approx(30.0)
        assert stats.peak == 50.0
        assert stats.any_present
        assert stats.samples == 5

    @pytest.mark.parametrize("values", [
        [0.0],
        [5.0, 5.0, 5.0],
        [99.0, 0.5, 12.0, 7.25],
        [0.0, 100.0],
        [0.1, 0.1, 0.1],
        [0.7] * 10,
        [4096.3] * 7,
    ])
    def test_peak_not_below_average(self, values):
        stats = channel_stats(values)
        assert stats.peak >= stats.average >= 0

    def test_all_absent(self):
        stats = channel_stats([None, None])
        assert not stats.any_present
        assert stats.average == 0.0
        assert stats.peak == 0.0
        assert stats.samples == 0

    def test_measured_zero_is_present(self):
        stats = channel_stats([0.0, 0.0])
        assert stats.any_present
        assert stats.average == 0.0

    def test_absent_readings_are_skipped(self):
        stats = channel_stats([None, 20.0, None, 40.0])
        assert stats.average == pytest.approx(30.0)
        assert stats.samples == 2


class TestTokenMetrics:

    def test_tokens_per_second(self):
        timing = TokenTiming(request_start=10.0, total_duration=2.0, completion_tokens=50)
        assert token_metrics(timing).tokens_per_second == pytest.approx(25.0)

    def test_zero_tokens_not_measured(self):
        timing = TokenTiming(request_start=10.0, total_duration=2.0, completion_tokens=0)
        assert token_metrics(timing).tokens_per_second is None

    def test_zero_duration_not_measured(self):
        timing = TokenTiming(request_start=10.0, total_duration=0.0, completion_tokens=50)
        assert token_metrics(timing).tokens_per_second is None

    def test_time_to_first_token(self):
        timing = TokenTiming(request_start=10.0, total_duration=2.0, first_token=10.25, completion_tokens=5)
        assert token_metrics(timing).time_to_first_token == pytest.approx(0.25)

    def test_no_first_token_marker(self):
        timing = TokenTiming(request_start=10.0, total_duration=2.0, completion_tokens=5)
        assert token_metrics(timing).time_to_first_token is None

    def test_no_timing(self):
        assert token_metrics(None) is None


class TestAggregate:

    def test_cpu_channel(self):
        data = aggregate(make_snapshots([10.0, 20.0, 30.0, 40.0, 50.0]))
        assert data.cpu.average == pytest.approx(30.0)
        assert data.cpu.peak == 50.0
        assert data.samples_count == 5
        assert data.start_time == T0
        assert data.end_time == T0 + timedelta(seconds=4)

    def test_gpu_absent_vs_zero(self):
        absent = aggregate(make_snapshots([10.0, 10.0]))
        zero = aggregate(make_snapshots([10.0, 10.0], gpu=[0.0, 0.0]))
        assert not absent.gpu.any_present
        assert zero.gpu.any_present
        assert zero.gpu.average == 0.0
        assert "gpu=n/a" in absent.format_resource_stats()
        assert "gpu=0.0%" in zero.format_resource_stats()

    def test_provider_channels(self):
        snapshots = make_snapshots(
            [10.0, 10.0, 10.0],
            provider_memory=[{}, {"local": 100.0}, {"local": 300.0}],
        )
        data = aggregate(snapshots)
        assert set(data.provider_memory) == {"local"}
        assert data.provider_memory["local"].average == pytest.approx(200.0)
        assert data.provider_memory["local"].peak == 300.0
        assert data.provider_memory["local"].samples == 2

    def test_constant_readings_keep_peak_not_below_average(self):
        snapshots = [
            Snapshot(
                monotonic=float(i),
                timestamp=T0 + timedelta(seconds=i),
                cpu_percent=0.1,
                memory_used_mb=0.7,
                evaluator_memory_mb=0.1,
                provider_memory_mb={"local": 0.7},
                provider_cpu_percent={"local": 0.1},
                gpu_percent=0.7,
                npu_percent=0.1,
            )
            for i in range(10)
        ]
        data = aggregate(snapshots)

        channels = [data.cpu, data.memory, data.gpu, data.npu, data.evaluator_memory,
                    *data.provider_memory.values(), *data.provider_cpu.values()]
        assert len(channels) == 7
        for stats in channels:
            assert stats.any_present
            assert stats.peak >= stats.average

    def test_empty_series(self):
        end = T0 + timedelta(seconds=3)
        data = aggregate([], start_time=T0, end_time=end)
        assert data.samples_count == 0
        assert data.duration == pytest.approx(3.0)
        assert all(not stats.any_present for stats in data.channels().values())

    def test_with_tokens_returns_copy(self):
        data = aggregate(make_snapshots([10.0]))
        tokens = token_metrics(TokenTiming(request_start=0.0, total_duration=2.0, completion_tokens=50))
        enriched = data.with_tokens(tokens)
        assert data.tokens is None
        assert enriched.tokens.tokens_per_second == pytest.approx(25.0)
        assert enriched.snapshots == data.snapshots

    def test_to_dict(self):
        data = aggregate(make_snapshots([10.0, 30.0]))
        as_dict = data.to_dict()
        assert as_dict["channels"]["cpu"]["average"] == pytest.approx(20.0)
        assert len(as_dict["snapshots"]) == 2
        assert "snapshots" not in data.to_dict(include_snapshots=False)


class TestAggregateRuns:

    def test_summary_across_runs(self):
        runs = [
            aggregate(make_snapshots([10.0, 30.0])),
            aggregate(make_snapshots([40.0, 60.0])),
        ]
        summary = aggregate_runs(runs)
        assert summary.cpu.average == pytest.approx(35.0)
        assert summary.cpu.minimum == pytest.approx(20.0)
        assert summary.cpu.maximum == pytest.approx(50.0)
        assert summary.cpu.peak == pytest.approx(45.0)
        assert summary.cpu.runs == 2

    def test_absent_channel_has_no_runs(self):
        summary = aggregate_runs([aggregate(make_snapshots([10.0]))])
        assert summary.gpu.runs == 0
        assert summary.gpu.average == 0.0

    def test_empty_raises(self):
        with pytest.raises(ValueError):
            aggregate_runs([])
