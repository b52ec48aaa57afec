"""
Evaluation Service Module

Runs one prompt against one model while the metrics collector samples the
host, and turns every outcome (success, provider failure, exception,
timeout, cancellation) into an EvaluationResult carrying the metrics
gathered so far.
"""
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from evaluator.models.device_metadata import DeviceMetadata
from evaluator.models.evaluation_result import EvaluationResult, utc_now
from evaluator.models.evaluation_session import EvaluationSession
from evaluator.models.metrics_data import MetricsData
from evaluator.models.multiple_evaluation_result import MultipleEvaluationResult
from evaluator.models.provider_response import ProviderResponse
from evaluator.service.aggregator.metrics_aggregator import token_metrics
from evaluator.service.monitor.metrics_collector import SystemMetricsCollector
from evaluator.service.provider.model_provider import ModelProvider
from evaluator.service.report.chart_report_sink import ChartReportSink
from evaluator.service.report.json_report_sink import JsonReportSink
from evaluator.service.report.report_sink import ReportSink
from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

CANCEL_POLL_SEC = 0.05

REPORT_SINKS = {
    JsonReportSink.format: JsonReportSink,
    ChartReportSink.format: ChartReportSink,
}


def build_report_sinks(formats: Iterable[str]) -> List[ReportSink]:
    """
    Raises:
        ValueError: If a format has no sink
    """
    sinks = []
    for fmt in formats:
        sink_cls = REPORT_SINKS.get(fmt.lower())
        if sink_cls is None:
            raise ValueError(f"Unsupported report format: {fmt} (supported: {', '.join(sorted(REPORT_SINKS))})")
        sinks.append(sink_cls())
    return sinks


class EvaluationService:

    def __init__(self,
                 providers: Iterable[ModelProvider],
                 collector: Optional[SystemMetricsCollector] = None,
                 report_sinks: Optional[Iterable[ReportSink]] = None,
                 default_timeout: Optional[float] = None):
        self._providers: Dict[str, ModelProvider] = {p.id: p for p in providers}
        self.collector = collector or SystemMetricsCollector()
        self.report_sinks = list(report_sinks) if report_sinks is not None else [JsonReportSink()]
        self.default_timeout = default_timeout

    def get_providers(self) -> List[ModelProvider]:
        return list(self._providers.values())

    def get_provider(self, provider_id: str) -> Optional[ModelProvider]:
        """Return the provider if it is registered and reports itself available"""
        provider = self._providers.get(provider_id)
        if provider is None:
            return None
        try:
            available = provider.is_available()
        except Exception as e:
            logger.warning(f"Availability check failed for provider '{provider_id}': {e}")
            return None
        return provider if available else None

    def start_session(self, description: Optional[str] = None,
                      configuration: Optional[dict] = None) -> EvaluationSession:
        session = EvaluationSession(
            description=description,
            configuration=dict(configuration or {}),
            device_info=DeviceMetadata.collect(),
        )
        logger.info(f"Started evaluation session {session.id}")
        return session

    def complete_session(self, session: EvaluationSession) -> EvaluationSession:
        session.end_time = utc_now()
        logger.info(f"✓ Session {session.id} completed: {len(session.results)} evaluation(s) "
                    f"in {session.duration:.2f}s")
        return session

    def evaluate(self, provider_id: str, model_id: str, prompt: str,
                 session: Optional[EvaluationSession] = None,
                 timeout: Optional[float] = None,
                 cancel_event: Optional[threading.Event] = None) -> EvaluationResult:
        """
        Evaluate one prompt with metrics collection.

        The sampler is always stopped before this returns, whatever happened
        to the provider call.

        Raises:
            AlreadyCollectingError: If another evaluation is sampling on the same collector
        """
        if timeout is None:
            timeout = self.default_timeout

        result = EvaluationResult(provider_id=provider_id, model_id=model_id, prompt=prompt)

        provider = self.get_provider(provider_id)
        if provider is None:
            result.error_message = f"Provider '{provider_id}' not found or not available"
            result.end_time = utc_now()
            logger.error(result.error_message)
            self._record(result, session)
            return result

        response: Optional[ProviderResponse] = None
        metrics: Optional[MetricsData] = None
        self.collector.start_collection()
        try:
            tracked = self.collector.track_provider_processes(provider_id, model_id)
            result.metadata["tracked_processes"] = len(tracked)
            response = self._call_provider(provider, model_id, prompt, timeout, cancel_event)
        except Exception as e:
            logger.error(f"Provider '{provider_id}' raised during evaluation: {e}")
            result.error_message = f"{type(e).__name__}: {e}"
        finally:
            if self.collector.is_collecting:
                metrics = self.collector.stop_collection()
            self.collector.clear_tracking()

        result.end_time = utc_now()
        if response is not None:
            result.is_success = response.success
            result.response = response.text
            if not response.success:
                result.error_message = response.error or "Provider reported failure"
        if metrics is not None:
            timing = response.token_timing() if response is not None else None
            result.metrics = metrics.with_tokens(token_metrics(timing))

        if result.is_success:
            logger.info(f"✓ {provider_id}/{model_id}: {result.duration:.2f}s, "
                        f"{result.metrics.format_resource_stats() if result.metrics else 'no metrics'}")
        else:
            logger.warning(f"✗ {provider_id}/{model_id}: {result.error_message}")

        self._record(result, session)
        return result

    def _call_provider(self, provider: ModelProvider, model_id: str, prompt: str,
                       timeout: Optional[float],
                       cancel_event: Optional[threading.Event]) -> ProviderResponse:
        # the provider only sees this event, so a timeout never touches the caller's
        stop_event = threading.Event()
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix=f"provider-{provider.id}")
        future = executor.submit(provider.evaluate, model_id, prompt, stop_event)
        deadline = None if timeout is None else time.monotonic() + timeout
        try:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    stop_event.set()
                    return ProviderResponse(success=False, error="Evaluation cancelled")

                wait_for = CANCEL_POLL_SEC
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        stop_event.set()
                        return ProviderResponse(success=False, error=f"Evaluation timed out after {timeout}s")
                    wait_for = min(wait_for, remaining)

                try:
                    return future.result(timeout=wait_for)
                except FutureTimeoutError:
                    continue
        finally:
            executor.shutdown(wait=False)

    def _record(self, result: EvaluationResult, session: Optional[EvaluationSession]) -> None:
        if session is not None:
            session.results.append(result)

    def evaluate_multiple(self, provider_id: str, model_id: str, prompt: str, runs: int,
                          session: Optional[EvaluationSession] = None,
                          timeout: Optional[float] = None,
                          cancel_event: Optional[threading.Event] = None) -> MultipleEvaluationResult:
        """
        Run the same evaluation `runs` times.

        Raises:
            ValueError: If runs is less than 1
        """
        if runs < 1:
            raise ValueError(f"runs must be at least 1, got {runs}")

        results = []
        for i in range(runs):
            if i > 0 and cancel_event is not None and cancel_event.is_set():
                logger.info(f"  Cancelled after {i}/{runs} run(s)")
                break
            logger.info(f"  Run {i + 1}/{runs}: {provider_id}/{model_id}")
            results.append(self.evaluate(provider_id, model_id, prompt, session=session,
                                         timeout=timeout, cancel_event=cancel_event))

        summary = MultipleEvaluationResult.from_results(results)
        logger.info(f"  → {summary.successful_runs}/{summary.total_runs} ok, "
                    f"Avg={summary.duration.avg:.3f}s, P50={summary.duration.p50:.3f}s, "
                    f"P95={summary.duration.p95:.3f}s")
        return summary

    def generate_reports(self, session: EvaluationSession, output_dir: Path) -> List[Path]:
        """Write the session through every configured sink"""
        paths = []
        for sink in self.report_sinks:
            path = sink.write(session, Path(output_dir))
            logger.info(f"✓ {sink.format} report written to: {path.resolve()}")
            paths.append(path)
        return paths
