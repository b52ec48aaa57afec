"""
Configuration manager for model evaluations.

This module provides the ConfigLoader class for loading and validating
evaluator configuration from YAML files.
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from evaluator.config.evaluator_config import DEFAULT_SAMPLING_INTERVAL, EvaluatorConfig
from evaluator.config.provider_entry import ProviderEntry

DEBUG_ENV_VAR = "MODELEVALUATOR_DEBUG_METRICS"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() == "true"


def build_config(data: Optional[Dict[str, Any]]) -> EvaluatorConfig:
    """
    Create an EvaluatorConfig from already-parsed YAML data.

    Raises:
        ValueError: If a setting is out of range
    """
    data = data or {}
    config = EvaluatorConfig()

    metrics = data.get("metrics") or {}
    config.sampling_interval = float(metrics.get("sampling_interval", DEFAULT_SAMPLING_INTERVAL))
    config.enable_debug_output = bool(metrics.get("enable_debug_output", False)) or _env_flag(DEBUG_ENV_VAR)
    config.gpu_probe = bool(metrics.get("gpu_probe", True))

    if config.sampling_interval <= 0:
        raise ValueError(f"metrics.sampling_interval must be positive, got {config.sampling_interval}")

    timeout = data.get("request_timeout")
    config.request_timeout = float(timeout) if timeout is not None else None

    config.runs = int(data.get("runs", 1))
    if config.runs < 1:
        raise ValueError(f"runs must be at least 1, got {config.runs}")

    config.output_dir = data.get("output_dir", config.output_dir)
    config.report_formats = [fmt.lower() for fmt in data.get("report_formats", ["json"])]
    config.prompts = list(data.get("prompts", []))

    # Parse providers
    config.providers = [ProviderEntry(**entry) for entry in data.get("providers", [])]

    config.process_patterns = data.get("process_patterns", {}) or {}

    return config


class ConfigLoader:

    def __init__(self, config_path: Optional[Path] = None, env: Optional[str] = None):
        self.config_path = config_path
        self.env = env
        self.config_data = self._load_config()

    def _load_config(self) -> EvaluatorConfig:
        """
        Load and parse evaluator configuration from YAML file.
        Supports environment-specific overrides via config_<env>.yaml

        Returns:
            EvaluatorConfig: Configured evaluator configuration instance
        """
        if self.config_path is None:
            return build_config({})

        base_config_file = self.config_path / "config.yaml"
        with open(base_config_file, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}

        if self.env:
            env_config_file = self.config_path / f"config_{self.env}.yaml"
            with open(env_config_file, "r", encoding="utf-8") as f:
                env_data = yaml.safe_load(f) or {}
                # top-level keys in the env file replace the base ones
                data.update(env_data)

        return build_config(data)

    @classmethod
    def default(cls) -> EvaluatorConfig:
        return cls().config_data
