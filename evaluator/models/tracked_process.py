from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class TrackedProcess:
    """OS process attributed to a provider's runtime"""
    pid: int
    name: str
    provider_id: str
    created_tick: int


@dataclass(frozen=True)
class ProcessUsage:
    """One tracked process as seen in a single reading"""
    pid: int
    name: str
    provider_id: str
    memory_mb: float
    threads: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'pid': self.pid,
            'memory_mb': round(self.memory_mb, 1),
            'threads': self.threads,
            'provider_id': self.provider_id,
        }


@dataclass
class ProviderUsage:
    """Resources consumed by one provider's tracked processes in a single reading"""
    memory_mb: float = 0.0
    cpu_percent: float = 0.0
    processes: List[ProcessUsage] = field(default_factory=list)

    @property
    def process_count(self) -> int:
        return len(self.processes)
