"""
Metrics Collector Module

Boundary used by the orchestrator: start/stop collection, attach provider
processes, peek at current readings. Only collector state errors escape it.
"""
import os
from typing import Callable, Iterable, List, Optional

import psutil

from evaluator.consts.ProviderType import ProviderType
from evaluator.models.metrics_data import MetricsData
from evaluator.models.snapshot import Snapshot
from evaluator.models.tracked_process import TrackedProcess
from evaluator.service.monitor.capability_probe import CapabilityProbe, default_gpu_probe, default_npu_probe
from evaluator.service.monitor.collection_run import CollectionRun
from evaluator.service.monitor.process_classifier import ProcessClassifier
from evaluator.service.monitor.process_registry import ProcessRegistry
from evaluator.service.monitor.resource_sampler import DEFAULT_INTERVAL, ResourceSampler
from evaluator.service.monitor.system_reader import SystemReader
from evaluator.util.log_config import enable_debug, setup_logger

logger = setup_logger(__name__)

AZURE_AGENT_PROCESS = "inference.service.agent"
LOCAL_RUNTIME_PROCESSES = ("ollama", "llama", "python")


class SystemMetricsCollector:
    """Collects host metrics and provider process attribution during evaluations"""

    def __init__(self,
                 interval: float = DEFAULT_INTERVAL,
                 enable_debug_output: bool = False,
                 classifier: Optional[ProcessClassifier] = None,
                 process_iter: Callable[..., Iterable[psutil.Process]] = psutil.process_iter,
                 reader: Optional[SystemReader] = None,
                 gpu_probe: Optional[CapabilityProbe] = None,
                 npu_probe: Optional[CapabilityProbe] = None):
        """
        Args:
            interval: Sampling interval in seconds
            enable_debug_output: Log discovered processes and per-provider memory breakdowns
            classifier: Provider process rules (built-ins when omitted)
            process_iter: Process table enumerator, psutil.process_iter by default
            reader: System-wide counter reader
            gpu_probe: GPU utilization probe chain
            npu_probe: NPU utilization probe chain
        """
        self.enable_debug_output = enable_debug_output
        if enable_debug_output:
            enable_debug()

        self.classifier = classifier or ProcessClassifier()
        self._process_iter = process_iter
        self.registry = ProcessRegistry(self.classifier, process_iter=process_iter)
        self.reader = reader or SystemReader()
        self.gpu_probe = gpu_probe or default_gpu_probe()
        self.npu_probe = npu_probe or default_npu_probe()
        self.sampler = ResourceSampler(interval=interval)
        self.baseline_memory_mb = self._establish_baseline()

    def _establish_baseline(self) -> Optional[float]:
        try:
            return self.reader.read().evaluator_memory_mb
        except (psutil.Error, OSError) as e:
            logger.debug(f"Baseline measurement failed: {e}")
            return None

    @property
    def is_collecting(self) -> bool:
        return self.sampler.is_collecting

    def _new_run(self) -> CollectionRun:
        return CollectionRun(
            registry=self.registry,
            reader=self.reader,
            gpu_probe=self.gpu_probe,
            npu_probe=self.npu_probe,
            baseline_memory_mb=self.baseline_memory_mb,
        )

    def start_collection(self) -> None:
        """
        Raises:
            AlreadyCollectingError: If a collection run is active
        """
        self.sampler.start(self._new_run())
        logger.debug(f"Metrics collection started (interval={self.sampler.interval}s)")

    def stop_collection(self) -> MetricsData:
        """
        Raises:
            NotCollectingError: If no collection run is active
        """
        data = self.sampler.stop()
        logger.debug(f"Metrics collection stopped: {data.samples_count} samples, "
                     f"{data.format_resource_stats()}")
        return data

    def get_current_snapshot(self) -> Optional[Snapshot]:
        """
        Point-in-time reading that is not appended to any series.

        Returns:
            The snapshot, or None when the system-wide read failed
        """
        run = self.sampler.run or self._new_run()
        try:
            return run.read_snapshot()
        except (psutil.Error, OSError) as e:
            logger.debug(f"Current snapshot read failed: {e}")
            return None

    def track_provider_processes(self, provider_id: str, model_id: str) -> List[TrackedProcess]:
        """Start attributing the provider's runtime processes; returns the newly tracked ones"""
        try:
            found = self.registry.discover(provider_id)
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process tracking error for provider '{provider_id}': {e}")
            return []

        if found:
            logger.debug(f"Tracking {len(found)} processes for provider '{provider_id}', model '{model_id}'")
        return found

    def track_model_processes(self, model_id: str) -> List[TrackedProcess]:
        """Track processes for whichever local runtime appears to be serving `model_id`"""
        return self.track_provider_processes(self.provider_from_context(), model_id)

    def provider_from_context(self) -> str:
        """Guess the active local runtime from the process table"""
        own_pid = os.getpid()
        names = []
        try:
            for proc in self._process_iter(["pid", "name"]):
                info = getattr(proc, "info", None) or {}
                if info.get("pid") == own_pid:
                    continue
                names.append((info.get("name") or "").lower())
        except (psutil.Error, OSError) as e:
            logger.debug(f"Process table scan failed: {e}")
            return ProviderType.UNKNOWN.value

        if any(AZURE_AGENT_PROCESS in name for name in names):
            return ProviderType.AZURE_FOUNDRY_LOCAL.value
        if any(runtime in name for name in names for runtime in LOCAL_RUNTIME_PROCESSES):
            return ProviderType.LOCAL.value
        return ProviderType.UNKNOWN.value

    def clear_tracking(self) -> None:
        self.registry.clear()
