"""
Time-series charts of the resource metrics gathered for each evaluation.
"""
import re
from pathlib import Path
from typing import List

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402

from evaluator.models.evaluation_result import EvaluationResult  # noqa: E402
from evaluator.models.evaluation_session import EvaluationSession  # noqa: E402
from evaluator.service.report.report_sink import ReportSink  # noqa: E402
from evaluator.util.file_utils import ensure_dir  # noqa: E402
from evaluator.util.log_config import setup_logger  # noqa: E402

logger = setup_logger(__name__)

FIGSIZE = (10, 8)
DPI = 160


def _slug(text: str) -> str:
    return re.sub(r"[^A-Za-z0-9._-]+", "_", text).strip("_") or "run"


def plot_result(result: EvaluationResult, output_path: Path) -> bool:
    """
    Plot CPU, memory and GPU of one evaluation.

    Returns:
        False when the result has no snapshots to plot
    """
    metrics = result.metrics
    if metrics is None or not metrics.snapshots:
        return False

    snapshots = metrics.snapshots
    t0 = snapshots[0].monotonic
    x = np.array([s.monotonic - t0 for s in snapshots])

    fig, (ax_cpu, ax_mem, ax_gpu) = plt.subplots(3, 1, figsize=FIGSIZE, sharex=True)

    ax_cpu.plot(x, [s.cpu_percent for s in snapshots], label="system", linewidth=1.2)
    for provider_id in metrics.provider_cpu:
        ax_cpu.plot(x, [s.provider_cpu_percent.get(provider_id, np.nan) for s in snapshots],
                    label=provider_id, linewidth=1)
    ax_cpu.set_ylabel("CPU %")
    ax_cpu.set_ylim(bottom=0)

    ax_mem.plot(x, [s.memory_used_mb for s in snapshots], label="system", linewidth=1.2)
    ax_mem.plot(x, [s.evaluator_memory_mb for s in snapshots], label="evaluator", linewidth=1)
    for provider_id in metrics.provider_memory:
        ax_mem.plot(x, [s.provider_memory_mb.get(provider_id, np.nan) for s in snapshots],
                    label=provider_id, linewidth=1)
    ax_mem.set_ylabel("Memory MB")

    if metrics.gpu.any_present:
        gpu = [np.nan if s.gpu_percent is None else s.gpu_percent for s in snapshots]
        ax_gpu.plot(x, gpu, label="gpu", linewidth=1.2)
    else:
        ax_gpu.text(0.5, 0.5, "GPU utilization not available", ha="center", va="center",
                    transform=ax_gpu.transAxes, fontsize=9)
    ax_gpu.set_ylabel("GPU %")
    ax_gpu.set_xlabel("seconds")

    for ax in (ax_cpu, ax_mem, ax_gpu):
        ax.grid(True, alpha=0.3)
        if ax.get_legend_handles_labels()[0]:
            ax.legend(loc="upper right", fontsize=8)

    status = "ok" if result.is_success else "failed"
    fig.suptitle(f"{result.provider_id} / {result.model_id} ({status}, {result.duration:.2f}s)")
    plt.tight_layout()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    plt.savefig(output_path, dpi=DPI)
    plt.close(fig)
    return True


class ChartReportSink(ReportSink):
    format = "chart"
    file_extension = ".png"

    def write(self, session: EvaluationSession, output_dir: Path) -> Path:
        """Write one PNG per evaluation with snapshots into session_<id>_charts/ and return that directory"""
        chart_dir = ensure_dir(Path(output_dir) / f"session_{session.id}_charts")
        written: List[Path] = []
        for idx, result in enumerate(session.results, 1):
            path = chart_dir / f"{idx:03d}_{_slug(result.provider_id)}_{_slug(result.model_id)}{self.file_extension}"
            if plot_result(result, path):
                written.append(path)
        logger.info(f"✓ Saved {len(written)} chart(s) to {chart_dir}")
        return chart_dir
