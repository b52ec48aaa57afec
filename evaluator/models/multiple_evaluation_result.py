from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from evaluator.models.evaluation_result import EvaluationResult
from evaluator.models.metrics_data import AggregatedMetrics
from evaluator.models.stat_summary import StatSummary
from evaluator.service.aggregator.metrics_aggregator import aggregate_runs
from evaluator.util.cal_utils import calculate_stat_summary


@dataclass
class MultipleEvaluationResult:
    """Repeated runs of the same prompt against the same model"""
    provider_id: str
    model_id: str
    prompt: str
    individual_results: List[EvaluationResult]
    total_runs: int
    successful_runs: int
    failed_runs: int
    success_rate: float
    duration: StatSummary
    aggregated_metrics: Optional[AggregatedMetrics] = None
    unique_responses: List[str] = field(default_factory=list)
    response_frequency: Dict[str, int] = field(default_factory=dict)

    @property
    def all_responses_identical(self) -> bool:
        return len(self.unique_responses) <= 1

    @classmethod
    def from_results(cls, results: List[EvaluationResult]) -> 'MultipleEvaluationResult':
        """
        Aggregate individual results.

        Raises:
            ValueError: If results is empty
        """
        if not results:
            raise ValueError("Results cannot be empty")

        first = results[0]
        successful = [r for r in results if r.is_success]

        responses = [r.response for r in successful if r.response]
        frequency = Counter(responses)

        metrics = [r.metrics for r in successful if r.metrics is not None]

        return cls(
            provider_id=first.provider_id,
            model_id=first.model_id,
            prompt=first.prompt,
            individual_results=list(results),
            total_runs=len(results),
            successful_runs=len(successful),
            failed_runs=len(results) - len(successful),
            success_rate=len(successful) / len(results) * 100,
            duration=calculate_stat_summary([r.duration for r in results]),
            aggregated_metrics=aggregate_runs(metrics) if metrics else None,
            unique_responses=list(frequency.keys()),
            response_frequency=dict(frequency),
        )

    def to_summary_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            'provider_id': self.provider_id,
            'model_id': self.model_id,
            'prompt': self.prompt,
            'total_runs': self.total_runs,
            'successful_runs': self.successful_runs,
            'failed_runs': self.failed_runs,
            'success_rate': self.success_rate,
            'duration': self.duration.to_summary_dict(),
            'aggregated_metrics': self.aggregated_metrics.to_dict() if self.aggregated_metrics else None,
            'unique_responses': len(self.unique_responses),
            'all_responses_identical': self.all_responses_identical,
        }
