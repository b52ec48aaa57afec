import threading
from abc import ABC, abstractmethod
from typing import List, Optional

from evaluator.models.provider_response import ProviderResponse


class ModelProvider(ABC):
    """Abstract base provider.

    A provider submits one prompt to one model and reports the text, token
    counts and timing markers. Failures are returned as an unsuccessful
    ProviderResponse; raising is reserved for bugs.
    """

    def __init__(self, provider_id: str, name: Optional[str] = None, description: str = "") -> None:
        self.id = provider_id
        self.name = name or provider_id
        self.description = description

    @abstractmethod
    def available_models(self) -> List[str]:
        pass

    @abstractmethod
    def evaluate(self, model_id: str, prompt: str,
                 cancel_event: Optional[threading.Event] = None) -> ProviderResponse:
        """
        Evaluate a prompt using the specified model.

        Implementations should give up promptly once `cancel_event` is set.
        """
        pass

    def is_available(self) -> bool:
        return True
