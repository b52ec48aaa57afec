import getpass
import os
import platform
import shutil
import subprocess
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List

import psutil

NVIDIA_SMI_TIMEOUT_SEC = 5


@dataclass
class DeviceMetadata:
    """Host description attached to an evaluation session"""
    operating_system: str = ""
    os_version: str = ""
    os_architecture: str = ""
    processor_name: str = ""
    processor_cores: int = 0
    logical_processors: int = 0
    total_memory_mb: int = 0
    available_memory_mb: int = 0
    machine_name: str = ""
    user_name: str = ""
    python_version: str = ""
    gpu_devices: List[str] = field(default_factory=list)
    additional_info: Dict[str, str] = field(default_factory=dict)
    collected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def collect(cls) -> 'DeviceMetadata':
        """
        Collect metadata from the current host.

        Never raises: a failure part way through is recorded under
        `additional_info["collection_error"]` and the partial object returned.
        """
        metadata = cls()
        try:
            metadata.operating_system = platform.system()
            metadata.os_version = platform.version()
            metadata.os_architecture = platform.machine()
            metadata.processor_name = platform.processor() or platform.machine()
            metadata.machine_name = platform.node()
            metadata.python_version = platform.python_version()
            metadata.logical_processors = psutil.cpu_count(logical=True) or 0
            metadata.processor_cores = psutil.cpu_count(logical=False) or metadata.logical_processors

            vm = psutil.virtual_memory()
            metadata.total_memory_mb = int(vm.total / (1024 * 1024))
            metadata.available_memory_mb = int(vm.available / (1024 * 1024))

            try:
                metadata.user_name = getpass.getuser()
            except (KeyError, OSError):
                metadata.user_name = os.environ.get("USER", "")

            metadata.gpu_devices = _list_nvidia_gpus()

            metadata.additional_info["platform"] = platform.platform()
            metadata.additional_info["python_implementation"] = platform.python_implementation()
            metadata.additional_info["boot_time"] = datetime.fromtimestamp(
                psutil.boot_time(), tz=timezone.utc).isoformat()
        except Exception as e:
            metadata.additional_info["collection_error"] = str(e)

        return metadata

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["collected_at"] = self.collected_at.isoformat()
        return data


def _list_nvidia_gpus() -> List[str]:
    if shutil.which("nvidia-smi") is None:
        return []
    try:
        out = subprocess.run(
            ["nvidia-smi", "-L"],
            capture_output=True,
            text=True,
            timeout=NVIDIA_SMI_TIMEOUT_SEC,
        )
    except (OSError, subprocess.SubprocessError):
        return []
    if out.returncode != 0:
        return []
    return [line.strip() for line in out.stdout.splitlines() if line.strip()]
