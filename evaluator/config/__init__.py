"""Configuration module for model evaluations."""

from .evaluator_config import EvaluatorConfig
from .provider_entry import ProviderEntry
from .config_loader import ConfigLoader

__all__ = ["ConfigLoader", "EvaluatorConfig", "ProviderEntry"]
