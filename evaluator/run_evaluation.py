#!/usr/bin/env python3
"""
Model evaluation runner.

This module evaluates every configured (provider, model, prompt) combination
while sampling host resources, then prints a summary and writes reports.
"""
import argparse
from pathlib import Path
from typing import List, Optional

from evaluator.cli.cli import parse_evaluate_args
from evaluator.config.config_loader import ConfigLoader
from evaluator.config.evaluator_config import EvaluatorConfig
from evaluator.service.monitor.capability_probe import default_gpu_probe
from evaluator.service.monitor.metrics_collector import SystemMetricsCollector
from evaluator.service.monitor.process_classifier import ProcessClassifier
from evaluator.service.orchestrator.evaluation_service import EvaluationService, build_report_sinks
from evaluator.service.provider.command_provider import CommandProvider
from evaluator.service.report.console_summary import format_multiple_summary, print_session_summary
from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "config" / "config_yaml"


def apply_overrides(config: EvaluatorConfig, args: argparse.Namespace) -> EvaluatorConfig:
    """Apply command-line overrides on top of the loaded configuration"""
    if args.interval is not None:
        config.sampling_interval = args.interval
    if args.timeout is not None:
        config.request_timeout = args.timeout
    if args.runs is not None:
        config.runs = args.runs
    if args.verbose_metrics:
        config.enable_debug_output = True
    if args.out is not None:
        config.output_dir = args.out
    if args.prompt is not None:
        config.prompts = [args.prompt]
    if args.provider is not None:
        config.providers = [p for p in config.providers if p.id == args.provider]
        if not config.providers:
            raise ValueError(f"Provider '{args.provider}' is not configured")
    if args.model is not None:
        for entry in config.providers:
            entry.models = [args.model]
    return config


def build_service(config: EvaluatorConfig) -> EvaluationService:
    collector = SystemMetricsCollector(
        interval=config.sampling_interval,
        enable_debug_output=config.enable_debug_output,
        classifier=ProcessClassifier.from_patterns(config.process_patterns),
        gpu_probe=default_gpu_probe(config.gpu_probe),
    )
    providers = [CommandProvider.from_entry(entry) for entry in config.providers]
    return EvaluationService(
        providers=providers,
        collector=collector,
        report_sinks=build_report_sinks(config.report_formats),
        default_timeout=config.request_timeout,
    )


def main(argv: Optional[List[str]] = None) -> None:
    """
    Main entry point for model evaluation.

    1. Load configuration and apply command-line overrides
    2. Evaluate each (provider, model, prompt), `runs` times
    3. Print summary tables and write reports
    """
    args = parse_evaluate_args(argv, "Evaluate AI models while sampling host resources")

    logger.info("=" * 60)
    logger.info("Starting Model Evaluation")
    logger.info("=" * 60)

    config_path = Path(args.config) if args.config else DEFAULT_CONFIG_PATH
    config = apply_overrides(ConfigLoader(config_path, env=args.env).config_data, args)
    if args.env:
        logger.info(f"Loaded configuration with environment override: {args.env}")
    logger.debug(f"{config}")

    if not config.prompts:
        raise ValueError("No prompts configured; pass --prompt or set 'prompts' in config.yaml")

    service = build_service(config)
    session = service.start_session(
        description=f"{len(config.providers)} provider(s), {len(config.prompts)} prompt(s)",
        configuration={
            "sampling_interval": config.sampling_interval,
            "runs": config.runs,
            "request_timeout": config.request_timeout,
        },
    )

    pairs = [(entry.id, model) for entry in config.providers for model in entry.models]
    logger.info(f"Loaded {len(pairs)} provider/model pair(s) and {len(config.prompts)} prompt(s)")
    logger.info("")

    summaries = []
    for idx, (provider_id, model_id) in enumerate(pairs, 1):
        logger.info("-" * 60)
        logger.info(f"Evaluation {idx}/{len(pairs)}: {provider_id} / {model_id}")
        logger.info("-" * 60)
        for prompt in config.prompts:
            if config.runs > 1:
                summaries.append(service.evaluate_multiple(provider_id, model_id, prompt, config.runs,
                                                           session=session))
            else:
                service.evaluate(provider_id, model_id, prompt, session=session)
        logger.info(f"✓ Evaluation {idx}/{len(pairs)} completed")
        logger.info("")

    service.complete_session(session)

    print_session_summary(session)
    for summary in summaries:
        print()
        print(format_multiple_summary(summary))

    logger.info("=" * 60)
    logger.info("Exporting Results")
    logger.info("=" * 60)
    service.generate_reports(session, Path(config.output_dir))
    logger.info("All evaluations completed!")


if __name__ == "__main__":
    main()
