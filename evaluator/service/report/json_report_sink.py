from pathlib import Path

from evaluator.models.evaluation_session import EvaluationSession
from evaluator.service.report.report_sink import ReportSink
from evaluator.util.file_utils import ensure_dir


class JsonReportSink(ReportSink):
    format = "json"
    file_extension = ".json"

    def __init__(self, include_snapshots: bool = True):
        self.include_snapshots = include_snapshots

    def write(self, session: EvaluationSession, output_dir: Path) -> Path:
        ensure_dir(output_dir)
        path = self.report_path(session, output_dir)
        session.save_to_file(str(path), include_snapshots=self.include_snapshots)
        return path
