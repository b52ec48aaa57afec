from typing import List, Optional

from tabulate import tabulate

from evaluator.models.evaluation_session import EvaluationSession
from evaluator.models.metrics_data import ChannelStats
from evaluator.models.multiple_evaluation_result import MultipleEvaluationResult

HEADERS = ["provider", "model", "status", "time", "ttft", "tok/s", "cpu avg/peak", "mem avg/peak", "gpu avg/peak"]


def _fmt_channel(stats: Optional[ChannelStats], unit: str) -> str:
    if stats is None or not stats.any_present:
        return "n/a"
    return f"{stats.average:.1f}/{stats.peak:.1f}{unit}"


def _fmt_optional(value: Optional[float], unit: str = "") -> str:
    return "-" if value is None else f"{value:.2f}{unit}"


def session_rows(session: EvaluationSession) -> List[List[str]]:
    rows = []
    for result in session.results:
        metrics = result.metrics
        tokens = metrics.tokens if metrics else None
        rows.append([
            result.provider_id,
            result.model_id,
            "ok" if result.is_success else f"failed: {result.error_message or ''}"[:40],
            f"{result.duration:.2f}s",
            _fmt_optional(tokens.time_to_first_token if tokens else None, "s"),
            _fmt_optional(tokens.tokens_per_second if tokens else None),
            _fmt_channel(metrics.cpu if metrics else None, "%"),
            _fmt_channel(metrics.memory if metrics else None, "MB"),
            _fmt_channel(metrics.gpu if metrics else None, "%"),
        ])
    return rows


def format_session_summary(session: EvaluationSession) -> str:
    return tabulate(session_rows(session), headers=HEADERS, tablefmt="github", stralign="left", numalign="left")


def format_multiple_summary(result: MultipleEvaluationResult) -> str:
    rows = [
        ["runs", f"{result.successful_runs}/{result.total_runs} ok ({result.success_rate:.0f}%)"],
        ["time avg", f"{result.duration.avg:.3f}s"],
        ["time p50/p95", f"{result.duration.p50:.3f}s / {result.duration.p95:.3f}s"],
        ["responses identical", "yes" if result.all_responses_identical else f"no ({len(result.unique_responses)} distinct)"],
    ]
    agg = result.aggregated_metrics
    if agg is not None:
        for name, summary in (("cpu", agg.cpu), ("memory", agg.memory), ("gpu", agg.gpu), ("npu", agg.npu)):
            if summary.runs:
                rows.append([f"{name} avg (min-max)",
                             f"{summary.average:.1f} ({summary.minimum:.1f}-{summary.maximum:.1f}), peak {summary.peak:.1f}"])
    title = f"{result.provider_id} / {result.model_id}"
    return title + "\n" + tabulate(rows, tablefmt="github")


def print_session_summary(session: EvaluationSession) -> None:
    """Print formatted summary to console."""
    print("\n=== Summary ===")
    print(format_session_summary(session))
