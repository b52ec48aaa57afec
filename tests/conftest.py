"""
Pytest configuration and shared fixtures for model evaluator tests.

Nothing here touches real inference runtimes or GPUs: the process table,
system counters and accelerator probes are all replaced by fakes.
"""

import itertools
import sys
import threading
import time
from pathlib import Path
from types import SimpleNamespace

import psutil
import pytest

# Add the project root to the path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from evaluator.models.provider_response import ProviderResponse  # noqa: E402
from evaluator.service.monitor.capability_probe import CapabilityProbe  # noqa: E402
from evaluator.service.monitor.metrics_collector import SystemMetricsCollector  # noqa: E402
from evaluator.service.monitor.process_classifier import ProcessClassifier  # noqa: E402
from evaluator.service.monitor.system_reader import SystemReading  # noqa: E402
from evaluator.service.provider.model_provider import ModelProvider  # noqa: E402

MB = 1024 * 1024


class FakeProcess:
    """Stand-in for psutil.Process with controllable liveness and counters."""

    def __init__(self, pid, name, exe=None, rss_mb=100.0, cpu=0.0, threads=4):
        self.pid = pid
        self.info = {"pid": pid, "name": name, "exe": exe}
        self.rss_mb = rss_mb
        self.cpu = cpu
        self.threads = threads
        self.alive = True
        self.vanished = False
        self.denied = False
        self.prime_denied = False

    def kill(self):
        """Process exited; is_running() reports it."""
        self.alive = False

    def vanish(self):
        """Process exited between is_running() and the read."""
        self.vanished = True

    def _check(self):
        if self.vanished:
            raise psutil.NoSuchProcess(self.pid)
        if self.denied:
            raise psutil.AccessDenied(self.pid)

    def is_running(self):
        return self.alive

    def cpu_percent(self, interval=None):
        if self.prime_denied:
            raise psutil.AccessDenied(self.pid)
        self._check()
        return self.cpu

    def memory_info(self):
        self._check()
        return SimpleNamespace(rss=int(self.rss_mb * MB))

    def num_threads(self):
        self._check()
        return self.threads


class FakeProcessTable:
    """Callable with the psutil.process_iter signature."""

    def __init__(self, processes=()):
        self.processes = list(processes)
        self.calls = 0

    def add(self, *processes):
        self.processes.extend(processes)

    def __call__(self, attrs=None, ad_value=None):
        self.calls += 1
        return iter(list(self.processes))


class FakeReader:
    """Scripted system counters; the last value repeats once the script runs out."""

    def __init__(self, cpu=(10.0,), memory_mb=8000.0, evaluator_mb=50.0):
        self.cpu = list(cpu)
        self.memory_mb = memory_mb
        self.evaluator_mb = evaluator_mb
        self.primed = 0
        self.reads = 0
        self.error = None
        self._lock = threading.Lock()

    def prime(self):
        self.primed += 1

    def read(self):
        with self._lock:
            if self.error is not None:
                raise self.error
            idx = min(self.reads, len(self.cpu) - 1)
            self.reads += 1
            return SystemReading(
                cpu_percent=self.cpu[idx],
                memory_used_mb=self.memory_mb,
                evaluator_memory_mb=self.evaluator_mb,
            )


class StaticProbe(CapabilityProbe):
    def __init__(self, value=None, name="static"):
        self.value = value
        self.name = name
        self.reads = 0

    def read(self):
        self.reads += 1
        return self.value


class StepClock:
    """Monotonic clock advancing one second per call, safe across threads."""

    def __init__(self, start=100.0):
        self._counter = itertools.count()
        self._start = start
        self._lock = threading.Lock()

    def __call__(self):
        with self._lock:
            return self._start + next(self._counter)


class EchoProvider(ModelProvider):
    """Answers instantly with the prompt echoed back and fixed timings."""

    def __init__(self, provider_id="local", completion_tokens=50, duration=2.0, first_token_after=0.5):
        super().__init__(provider_id, name="Echo")
        self.completion_tokens = completion_tokens
        self.duration = duration
        self.first_token_after = first_token_after
        self.calls = []

    def available_models(self):
        return ["echo-1"]

    def evaluate(self, model_id, prompt, cancel_event=None):
        self.calls.append((model_id, prompt))
        started = 1000.0
        return ProviderResponse(
            success=True,
            text=f"echo: {prompt}",
            prompt_tokens=len(prompt.split()),
            completion_tokens=self.completion_tokens,
            total_tokens=len(prompt.split()) + self.completion_tokens,
            started_at=started,
            first_token_at=started + self.first_token_after,
            finished_at=started + self.duration,
        )


class FailingProvider(EchoProvider):
    def evaluate(self, model_id, prompt, cancel_event=None):
        self.calls.append((model_id, prompt))
        return ProviderResponse(success=False, error="model not loaded")


class RaisingProvider(EchoProvider):
    def evaluate(self, model_id, prompt, cancel_event=None):
        self.calls.append((model_id, prompt))
        raise RuntimeError("connection reset")


class SlowProvider(EchoProvider):
    """Blocks until cancelled or `delay` seconds pass."""

    def __init__(self, provider_id="local", delay=5.0):
        super().__init__(provider_id)
        self.delay = delay
        self.saw_cancel = threading.Event()

    def evaluate(self, model_id, prompt, cancel_event=None):
        self.calls.append((model_id, prompt))
        deadline = time.monotonic() + self.delay
        while time.monotonic() < deadline:
            if cancel_event is not None and cancel_event.wait(0.01):
                self.saw_cancel.set()
                return ProviderResponse(success=False, error="stopped")
        return ProviderResponse(success=True, text="late answer")


class UnavailableProvider(EchoProvider):
    def is_available(self):
        return False


class BrokenAvailabilityProvider(EchoProvider):
    def is_available(self):
        raise OSError("runtime socket missing")


@pytest.fixture
def process_table():
    """Process table with a local runtime, an Azure agent and unrelated processes."""
    return FakeProcessTable([
        FakeProcess(71001, "ollama", exe="/usr/local/bin/ollama", rss_mb=400.0, cpu=40.0, threads=12),
        FakeProcess(71002, "llama-server", exe="/opt/llama/llama-server", rss_mb=200.0, cpu=20.0),
        FakeProcess(72001, "Inference.Service.Agent", exe="C:\\Program Files\\Foundry\\Inference.Service.Agent.exe",
                    rss_mb=300.0, cpu=10.0),
        FakeProcess(73001, "chrome", exe="/opt/google/chrome/chrome", rss_mb=900.0, cpu=5.0),
        FakeProcess(73002, "bash", exe="/bin/bash", rss_mb=5.0, cpu=0.0),
    ])


@pytest.fixture
def reader():
    return FakeReader(cpu=[10.0, 20.0, 30.0, 40.0, 50.0])


@pytest.fixture
def classifier():
    return ProcessClassifier()


@pytest.fixture
def collector(process_table, reader, classifier):
    """Collector whose background thread never ticks on its own; tests sample manually."""
    return SystemMetricsCollector(
        interval=60.0,
        classifier=classifier,
        process_iter=process_table,
        reader=reader,
        gpu_probe=StaticProbe(None, name="gpu"),
        npu_probe=StaticProbe(None, name="npu"),
    )


@pytest.fixture
def output_dir(tmp_path):
    """Create a temporary report directory."""
    out = tmp_path / "reports"
    out.mkdir()
    return out
