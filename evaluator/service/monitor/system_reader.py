from dataclasses import dataclass

import psutil

MB = 1024 * 1024


@dataclass(frozen=True)
class SystemReading:
    cpu_percent: float
    memory_used_mb: float
    evaluator_memory_mb: float


class SystemReader:
    """System-wide CPU/memory and the evaluator's own RSS, via psutil"""

    def __init__(self):
        self._own = psutil.Process()

    def prime(self) -> None:
        # first cpu_percent(None) call returns a meaningless 0.0
        psutil.cpu_percent(interval=None)

    def read(self) -> SystemReading:
        """
        Raises:
            psutil.Error / OSError on a transient read failure
        """
        cpu = psutil.cpu_percent(interval=None)
        vm = psutil.virtual_memory()
        own_rss = self._own.memory_info().rss
        return SystemReading(
            cpu_percent=cpu,
            memory_used_mb=vm.used / MB,
            evaluator_memory_mb=own_rss / MB,
        )
