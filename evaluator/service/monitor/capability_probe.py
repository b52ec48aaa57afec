"""
Best-effort accelerator probes.

A probe returns a utilization percentage or None when it cannot read one.
Probes never raise; None means "unsupported here", which is different from
a measured 0%.
"""
import shutil
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

NVIDIA_SMI_TIMEOUT_SEC = 2


class CapabilityProbe(ABC):
    name: str = "probe"

    @abstractmethod
    def read(self) -> Optional[float]:
        pass


class UnsupportedProbe(CapabilityProbe):
    """Placeholder for hardware with no query tooling (e.g. most NPUs)"""

    def __init__(self, name: str = "unsupported"):
        self.name = name

    def read(self) -> Optional[float]:
        return None


class NvidiaSmiProbe(CapabilityProbe):
    """GPU utilization via `nvidia-smi`, averaged over all visible GPUs"""

    name = "nvidia-smi"

    def __init__(self, cmd: str = "nvidia-smi", timeout: float = NVIDIA_SMI_TIMEOUT_SEC):
        self.cmd = cmd
        self.timeout = timeout
        self._path: Optional[str] = None
        self._available: Optional[bool] = None

    def _resolve(self) -> Optional[str]:
        # looked up once; a missing tool stays missing for the whole run
        if self._available is None:
            self._path = shutil.which(self.cmd)
            self._available = self._path is not None
            if not self._available:
                logger.debug(f"{self.cmd} not found, GPU utilization unavailable")
        return self._path

    def read(self) -> Optional[float]:
        path = self._resolve()
        if path is None:
            return None
        try:
            out = subprocess.run(
                [path, "--query-gpu=utilization.gpu", "--format=csv,noheader,nounits"],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.debug(f"{self.cmd} failed: {e}")
            return None
        if out.returncode != 0:
            return None
        return parse_utilization(out.stdout)


def parse_utilization(output: str) -> Optional[float]:
    """Average of the numeric lines in a utilization query, None if there are none"""
    values: List[float] = []
    for line in output.splitlines():
        line = line.strip().rstrip("%").strip()
        if not line:
            continue
        try:
            values.append(float(line))
        except ValueError:
            continue
    if not values:
        return None
    return sum(values) / len(values)


class ProbeChain(CapabilityProbe):
    """Tries probes in priority order and returns the first reading"""

    def __init__(self, probes: Sequence[CapabilityProbe], name: str = "chain"):
        self.probes = list(probes)
        self.name = name

    def read(self) -> Optional[float]:
        for probe in self.probes:
            try:
                value = probe.read()
            except Exception as e:
                logger.debug(f"Probe {probe.name} raised: {e}")
                continue
            if value is not None:
                return value
        return None


def default_gpu_probe(enabled: bool = True) -> ProbeChain:
    return ProbeChain([NvidiaSmiProbe()] if enabled else [], name="gpu")


def default_npu_probe() -> ProbeChain:
    return ProbeChain([UnsupportedProbe("npu")], name="npu")
