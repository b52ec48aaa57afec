from dataclasses import dataclass
from typing import Optional

from evaluator.models.metrics_data import TokenTiming


@dataclass
class ProviderResponse:
    """
    What a provider call hands back to the orchestrator.

    Timing markers are `time.monotonic()` values taken by the provider.
    """
    success: bool
    text: str = ""
    error: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None
    total_tokens: Optional[int] = None
    started_at: Optional[float] = None
    first_token_at: Optional[float] = None
    finished_at: Optional[float] = None

    def token_timing(self) -> Optional[TokenTiming]:
        """Build token timing input, or None when the provider did not time the call"""
        if self.started_at is None or self.finished_at is None:
            return None
        return TokenTiming(
            request_start=self.started_at,
            total_duration=max(self.finished_at - self.started_at, 0.0),
            first_token=self.first_token_at,
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_tokens=self.total_tokens,
        )
