#!/usr/bin/env python3
"""
Command-line interface for the model evaluator.
"""
import argparse
from typing import List, Optional


def build_env_parser(description: Optional[str] = None) -> argparse.ArgumentParser:
    """
    Create an ArgumentParser with the common --env option.

    Args:
        description: Optional parser description shown in CLI help.

    Returns:
        argparse.ArgumentParser: parser preconfigured with the --env argument.
    """
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument(
        "--env",
        type=str,
        default=None,
        help=(
            "Environment name for configuration override (e.g., 'dev'). "
            "Loads config_<env>.yaml in addition to the base config.yaml."
        ),
    )
    return parser


def _positive_float(value: str) -> float:
    number = float(value)
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive, got {value}")
    return number


def _positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


def build_evaluate_parser(description: Optional[str] = None) -> argparse.ArgumentParser:
    parser = build_env_parser(description=description)
    parser.add_argument("--config", type=str, default=None,
                        help="Directory holding config.yaml (defaults to the bundled config)")
    parser.add_argument("--provider", type=str, default=None,
                        help="Only evaluate this provider id")
    parser.add_argument("--model", type=str, default=None,
                        help="Only evaluate this model (overrides the provider's model list)")
    parser.add_argument("--prompt", type=str, default=None,
                        help="Prompt to send instead of the configured prompts")
    parser.add_argument("--runs", type=_positive_int, default=None,
                        help="Number of runs per (provider, model, prompt)")
    parser.add_argument("--interval", type=_positive_float, default=None,
                        help="Sampling interval in seconds")
    parser.add_argument("--timeout", type=_positive_float, default=None,
                        help="Per-request timeout in seconds")
    parser.add_argument("--verbose-metrics", action="store_true",
                        help="Log discovered provider processes and per-provider memory")
    parser.add_argument("--out", type=str, default=None,
                        help="Directory for report files")
    return parser


def parse_evaluate_args(argv: Optional[List[str]] = None,
                        description: Optional[str] = None) -> argparse.Namespace:
    """
    Parse evaluator CLI arguments.

    Args:
        argv: Argument list; sys.argv[1:] when omitted.
        description: Optional parser description shown in CLI help.
    """
    return build_evaluate_parser(description=description).parse_args(argv)
