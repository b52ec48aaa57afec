import time
from datetime import datetime, timezone
from typing import Callable, Optional

from evaluator.models.metrics_data import MetricsData, TokenTiming
from evaluator.models.metrics_series import MetricsSeries
from evaluator.models.snapshot import Snapshot
from evaluator.service.aggregator.metrics_aggregator import aggregate
from evaluator.service.monitor.capability_probe import CapabilityProbe, default_gpu_probe, default_npu_probe
from evaluator.service.monitor.process_registry import ProcessRegistry
from evaluator.service.monitor.system_reader import SystemReader


class CollectionRun:
    """
    One evaluation's worth of sampling: the snapshot series plus the
    registry whose processes are attributed in it.

    Reading counters never holds the series lock; only the final append does.
    """

    def __init__(self,
                 registry: ProcessRegistry,
                 reader: Optional[SystemReader] = None,
                 gpu_probe: Optional[CapabilityProbe] = None,
                 npu_probe: Optional[CapabilityProbe] = None,
                 baseline_memory_mb: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.registry = registry
        self.reader = reader or SystemReader()
        self.gpu_probe = gpu_probe or default_gpu_probe()
        self.npu_probe = npu_probe or default_npu_probe()
        self.baseline_memory_mb = baseline_memory_mb
        self._clock = clock
        self.series = MetricsSeries()

    def read_snapshot(self) -> Snapshot:
        """
        Read every counter once and build a snapshot without appending it.

        Raises:
            psutil.Error / OSError when the system-wide read fails
        """
        monotonic = self._clock()
        timestamp = datetime.now(timezone.utc)
        system = self.reader.read()
        usage = self.registry.snapshot()

        extra = {
            "tracked_process_count": sum(u.process_count for u in usage.values()),
            "total_provider_memory_mb": round(sum(u.memory_mb for u in usage.values()), 1),
            "active_providers": sorted(usage),
        }
        details = [p.to_dict() for u in usage.values() for p in u.processes]
        if details:
            extra["process_details"] = details
        if self.baseline_memory_mb is not None:
            extra["memory_delta_mb"] = system.evaluator_memory_mb - self.baseline_memory_mb

        return Snapshot(
            monotonic=monotonic,
            timestamp=timestamp,
            cpu_percent=system.cpu_percent,
            memory_used_mb=system.memory_used_mb,
            evaluator_memory_mb=system.evaluator_memory_mb,
            provider_memory_mb={k: u.memory_mb for k, u in usage.items()},
            provider_cpu_percent={k: u.cpu_percent for k, u in usage.items()},
            gpu_percent=self.gpu_probe.read(),
            npu_percent=self.npu_probe.read(),
            extra=extra,
        )

    def tick(self) -> bool:
        """
        Read and append one snapshot.

        Raises:
            SeriesSealedError: If the run was sealed while reading
        """
        return self.series.append(self.read_snapshot())

    def seal(self, token_timing: Optional[TokenTiming] = None) -> MetricsData:
        snapshots = self.series.seal()
        return aggregate(snapshots,
                         token_timing=token_timing,
                         start_time=self.series.start_time,
                         end_time=self.series.end_time)
