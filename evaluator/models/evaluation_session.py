import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from evaluator.models.device_metadata import DeviceMetadata
from evaluator.models.evaluation_result import EvaluationResult, utc_now


@dataclass
class EvaluationSession:
    """A batch of evaluations that end up in the same report"""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    start_time: datetime = field(default_factory=utc_now)
    end_time: Optional[datetime] = None
    results: List[EvaluationResult] = field(default_factory=list)
    configuration: Dict[str, Any] = field(default_factory=dict)
    description: Optional[str] = None
    device_info: Optional[DeviceMetadata] = None

    @property
    def duration(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds()

    @property
    def is_completed(self) -> bool:
        return self.end_time is not None

    def to_dict(self, include_snapshots: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'id': self.id,
            'description': self.description,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat() if self.end_time else None,
            'duration_seconds': self.duration,
            'configuration': self.configuration,
            'device_info': self.device_info.to_dict() if self.device_info else None,
            'results': [r.to_dict(include_snapshots) for r in self.results],
        }

    def save_to_file(self, file_path: str, include_snapshots: bool = True) -> None:
        """Save session to JSON file."""
        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(include_snapshots), f, ensure_ascii=False, indent=2, default=str)
