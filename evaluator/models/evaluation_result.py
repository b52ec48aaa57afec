"""Evaluation result data models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from evaluator.models.metrics_data import MetricsData


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EvaluationResult:
    """
    Outcome of one prompt sent to one model.

    A failed provider call is still a result: `is_success` is False, the
    error is recorded and whatever metrics were gathered are attached.
    """
    provider_id: str
    model_id: str
    prompt: str
    response: str = ""
    start_time: datetime = field(default_factory=utc_now)
    end_time: datetime = field(default_factory=utc_now)
    is_success: bool = False
    error_message: Optional[str] = None
    metrics: Optional[MetricsData] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        """Duration in seconds"""
        return (self.end_time - self.start_time).total_seconds()

    def to_dict(self, include_snapshots: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'provider_id': self.provider_id,
            'model_id': self.model_id,
            'prompt': self.prompt,
            'response': self.response,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_seconds': self.duration,
            'is_success': self.is_success,
            'error_message': self.error_message,
            'metrics': self.metrics.to_dict(include_snapshots) if self.metrics else None,
            'metadata': self.metadata,
        }
