import subprocess
import threading
import time
from typing import List, Optional

from evaluator.config.provider_entry import ProviderEntry
from evaluator.models.provider_response import ProviderResponse
from evaluator.service.provider.model_provider import ModelProvider
from evaluator.util.file_utils import resolve_cmd
from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

POLL_INTERVAL_SEC = 0.05
READER_JOIN_TIMEOUT_SEC = 2.0


def estimate_tokens(text: str) -> int:
    """Whitespace token estimate; CLI runtimes do not report real counts"""
    return len(text.split())


class CommandProvider(ModelProvider):
    """
    Local inference runtime driven through its command-line client,
    e.g. `ollama run {model}` with the prompt on stdin.

    Stdout is streamed; the first non-blank line marks the first token.
    """

    def __init__(self, provider_id: str, command: List[str], models: Optional[List[str]] = None,
                 name: Optional[str] = None, description: str = "", prompt_via_stdin: bool = True):
        super().__init__(provider_id, name=name, description=description)
        if not command:
            raise ValueError(f"Provider '{provider_id}' has no command configured")
        self.command = list(command)
        self.models = list(models or [])
        self.prompt_via_stdin = prompt_via_stdin

    @classmethod
    def from_entry(cls, entry: ProviderEntry) -> 'CommandProvider':
        return cls(entry.id, entry.command, models=entry.models, name=entry.name,
                   description=entry.description, prompt_via_stdin=entry.prompt_via_stdin)

    def available_models(self) -> List[str]:
        return list(self.models)

    def is_available(self) -> bool:
        try:
            resolve_cmd(self.command[0])
        except FileNotFoundError:
            return False
        return True

    def build_args(self, model_id: str, prompt: str) -> List[str]:
        args = [part.replace("{model}", model_id) for part in self.command]
        args[0] = resolve_cmd(args[0])
        if not self.prompt_via_stdin:
            args.append(prompt)
        return args

    def evaluate(self, model_id: str, prompt: str,
                 cancel_event: Optional[threading.Event] = None) -> ProviderResponse:
        started = time.monotonic()
        try:
            args = self.build_args(model_id, prompt)
            logger.debug(f"Running {self.id}: {' '.join(args)}")
            process = subprocess.Popen(
                args,
                stdin=subprocess.PIPE if self.prompt_via_stdin else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                bufsize=1,
            )
        except (OSError, ValueError) as e:
            return ProviderResponse(success=False, error=f"Failed to start {self.command[0]}: {e}",
                                    started_at=started, finished_at=time.monotonic())

        first_token_at: List[float] = []
        out_lines: List[str] = []
        err_parts: List[str] = []

        def _read_stdout() -> None:
            for line in process.stdout:
                if not first_token_at and line.strip():
                    first_token_at.append(time.monotonic())
                out_lines.append(line)

        def _read_stderr() -> None:
            err_parts.append(process.stderr.read())

        readers = [threading.Thread(target=_read_stdout, daemon=True),
                   threading.Thread(target=_read_stderr, daemon=True)]
        for reader in readers:
            reader.start()

        if self.prompt_via_stdin:
            try:
                process.stdin.write(prompt)
                process.stdin.close()
            except (BrokenPipeError, OSError) as e:
                logger.debug(f"Could not write prompt to {self.id}: {e}")

        cancelled = False
        while True:
            try:
                process.wait(timeout=POLL_INTERVAL_SEC)
                break
            except subprocess.TimeoutExpired:
                if cancel_event is not None and cancel_event.is_set():
                    process.kill()
                    process.wait()
                    cancelled = True
                    break

        for reader in readers:
            reader.join(timeout=READER_JOIN_TIMEOUT_SEC)
        finished = time.monotonic()

        text = "".join(out_lines).strip()
        if cancelled:
            return ProviderResponse(success=False, text=text, error="Evaluation cancelled",
                                    started_at=started, first_token_at=first_token_at[0] if first_token_at else None,
                                    finished_at=finished)
        if process.returncode != 0:
            stderr = "".join(err_parts).strip()
            return ProviderResponse(success=False, text=text,
                                    error=f"{self.command[0]} exited with code {process.returncode}: {stderr}",
                                    started_at=started, finished_at=finished)

        prompt_tokens = estimate_tokens(prompt)
        completion_tokens = estimate_tokens(text)
        return ProviderResponse(
            success=True,
            text=text,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=prompt_tokens + completion_tokens,
            started_at=started,
            first_token_at=first_token_at[0] if first_token_at else None,
            finished_at=finished,
        )
