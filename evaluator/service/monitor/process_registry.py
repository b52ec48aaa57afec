"""
Process Registry Module

Keeps the set of OS processes attributed to providers during a collection
run. Exited processes are pruned the next time a reading fails to resolve
them; there is no exit notification.
"""
import os
import threading
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import psutil

from evaluator.models.tracked_process import ProcessUsage, ProviderUsage, TrackedProcess
from evaluator.service.monitor.process_classifier import ProcessClassifier
from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

MB = 1024 * 1024
PROCESS_ATTRS = ["pid", "name", "exe"]


class ProcessRegistry:
    """Tracked provider processes, keyed by PID"""

    def __init__(self,
                 classifier: ProcessClassifier,
                 process_iter: Callable[..., Iterable[psutil.Process]] = psutil.process_iter,
                 cpu_count: Optional[int] = None,
                 own_pid: Optional[int] = None):
        """
        Args:
            classifier: Provider rule lookup
            process_iter: Enumerates the live process table (psutil.process_iter signature)
            cpu_count: Logical CPUs used to scale per-process CPU% to the system scale
            own_pid: PID never tracked; defaults to this process
        """
        self.classifier = classifier
        self._process_iter = process_iter
        self._cpu_count = cpu_count or psutil.cpu_count() or 1
        self._own_pid = os.getpid() if own_pid is None else own_pid
        self._entries: Dict[int, Tuple[TrackedProcess, psutil.Process]] = {}
        self._tick = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def tracked(self) -> List[TrackedProcess]:
        with self._lock:
            return [entry for entry, _ in self._entries.values()]

    def discover(self, provider_id: str) -> List[TrackedProcess]:
        """
        Scan the process table and start tracking matching processes.

        Returns:
            Newly tracked processes (empty when nothing new matched)
        """
        if self.classifier.patterns_for(provider_id).empty:
            return []

        owner = self.classifier.canonical_id(provider_id)
        found: List[TrackedProcess] = []

        for proc in self._process_iter(PROCESS_ATTRS):
            info = getattr(proc, "info", None) or {}
            pid = info.get("pid", proc.pid)
            name = info.get("name") or ""
            if pid == self._own_pid:
                continue
            if not self.classifier.classify(provider_id, name, info.get("exe")):
                continue

            with self._lock:
                if pid in self._entries:
                    continue

            try:
                # first call always returns 0.0, prime it now
                proc.cpu_percent(interval=None)
            except psutil.Error:
                continue

            with self._lock:
                if pid in self._entries:
                    continue
                entry = TrackedProcess(pid=pid, name=name, provider_id=owner, created_tick=self._tick)
                self._entries[pid] = (entry, proc)
            found.append(entry)

        for entry in found:
            logger.debug(f"Tracking {entry.name} (PID: {entry.pid}) for provider '{entry.provider_id}'")
        return found

    def snapshot(self) -> Dict[str, ProviderUsage]:
        """
        Read memory and CPU of every tracked process, grouped by provider.

        Processes that no longer resolve are dropped from the registry and
        from this reading. Access-denied processes are skipped for this
        reading only.
        """
        with self._lock:
            self._tick += 1
            entries = list(self._entries.items())

        usage: Dict[str, ProviderUsage] = {}
        gone: List[int] = []

        for pid, (entry, proc) in entries:
            try:
                if not proc.is_running():
                    gone.append(pid)
                    continue
                rss = proc.memory_info().rss
                cpu = proc.cpu_percent(interval=None)
                threads = proc.num_threads()
            except psutil.NoSuchProcess:
                gone.append(pid)
                continue
            except psutil.AccessDenied:
                continue

            provider_usage = usage.setdefault(entry.provider_id, ProviderUsage())
            provider_usage.memory_mb += rss / MB
            provider_usage.cpu_percent += cpu / self._cpu_count
            provider_usage.processes.append(ProcessUsage(
                pid=pid,
                name=entry.name,
                provider_id=entry.provider_id,
                memory_mb=rss / MB,
                threads=threads,
            ))

        if gone:
            with self._lock:
                for pid in gone:
                    self._entries.pop(pid, None)
            logger.debug(f"Pruned {len(gone)} exited process(es): {gone}")

        for provider_id, provider_usage in usage.items():
            logger.debug(f"Provider '{provider_id}' total: {provider_usage.memory_mb:.1f}MB "
                         f"across {provider_usage.process_count} process(es)")
        return usage

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._tick = 0
