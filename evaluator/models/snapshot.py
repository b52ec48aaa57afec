from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional


@dataclass(frozen=True)
class Snapshot:
    """
    Single point-in-time reading of system and tracked-process counters.

    `gpu_percent` / `npu_percent` are None when no probe could read them;
    0.0 is a real measurement. Provider CPU is on the same all-core 0-100
    scale as `cpu_percent` and is never folded into it.
    """
    monotonic: float
    timestamp: datetime
    cpu_percent: float
    memory_used_mb: float
    evaluator_memory_mb: float = 0.0
    provider_memory_mb: Mapping[str, float] = field(default_factory=dict)
    provider_cpu_percent: Mapping[str, float] = field(default_factory=dict)
    gpu_percent: Optional[float] = None
    npu_percent: Optional[float] = None
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        # freeze the mappings too
        for name in ("provider_memory_mb", "provider_cpu_percent", "extra"):
            object.__setattr__(self, name, MappingProxyType(dict(getattr(self, name))))

    @property
    def attributed_memory_mb(self) -> float:
        return sum(self.provider_memory_mb.values())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'timestamp': self.timestamp.isoformat(),
            'monotonic': self.monotonic,
            'cpu_percent': self.cpu_percent,
            'memory_used_mb': self.memory_used_mb,
            'evaluator_memory_mb': self.evaluator_memory_mb,
            'provider_memory_mb': dict(self.provider_memory_mb),
            'provider_cpu_percent': dict(self.provider_cpu_percent),
            'gpu_percent': self.gpu_percent,
            'npu_percent': self.npu_percent,
            'extra': dict(self.extra),
        }
