from abc import ABC, abstractmethod
from pathlib import Path

from evaluator.models.evaluation_session import EvaluationSession


class ReportSink(ABC):
    """Writes a finished session somewhere a person can read it"""

    format: str = ""
    file_extension: str = ""

    @abstractmethod
    def write(self, session: EvaluationSession, output_dir: Path) -> Path:
        """Write the report and return the path of the main file written"""
        pass

    def report_path(self, session: EvaluationSession, output_dir: Path) -> Path:
        return Path(output_dir) / f"session_{session.id}{self.file_extension}"
