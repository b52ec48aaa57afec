"""
Resource Sampler Module

Drives a CollectionRun from a background thread at a fixed interval while an
evaluation is in flight.
"""
import threading
from typing import Optional

import psutil

from evaluator.consts.CollectorState import CollectorState
from evaluator.models.metrics_data import MetricsData
from evaluator.service.monitor.collection_run import CollectionRun
from evaluator.service.monitor.errors import AlreadyCollectingError, NotCollectingError, SeriesSealedError
from evaluator.util.log_config import setup_logger

logger = setup_logger(__name__)

DEFAULT_INTERVAL = 0.1  # seconds
JOIN_TIMEOUT = 2.0  # seconds


class ResourceSampler:
    """Samples a collection run in a background thread"""

    def __init__(self, interval: float = DEFAULT_INTERVAL):
        """
        Initialize resource sampler.

        Args:
            interval: Sampling interval in seconds (default: 0.1s = 100ms)
        """
        if interval <= 0:
            raise ValueError(f"Sampling interval must be positive, got {interval}")
        self.interval = interval
        self.run: Optional[CollectionRun] = None
        self.thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._state_lock = threading.Lock()
        self.missed_ticks = 0

    @property
    def state(self) -> CollectorState:
        return CollectorState.COLLECTING if self.run is not None else CollectorState.IDLE

    @property
    def is_collecting(self) -> bool:
        return self.state is CollectorState.COLLECTING

    def start(self, run: CollectionRun) -> None:
        """
        Start sampling `run` in a background thread.

        Raises:
            AlreadyCollectingError: If a run is already being sampled
        """
        with self._state_lock:
            if self.run is not None:
                raise AlreadyCollectingError()
            try:
                run.reader.prime()
            except (psutil.Error, OSError) as e:
                logger.debug(f"Could not prime CPU counters: {e}")
            self.run = run
            self.missed_ticks = 0
            self._stop_event = threading.Event()
            self.thread = threading.Thread(target=self._monitor_loop,
                                           args=(run, self._stop_event),
                                           name="resource-sampler",
                                           daemon=True)
            self.thread.start()

    def stop(self) -> MetricsData:
        """
        Stop sampling, seal the run and return its aggregated metrics.

        Raises:
            NotCollectingError: If no run is being sampled
        """
        with self._state_lock:
            run = self.run
            if run is None:
                raise NotCollectingError()
            self._stop_event.set()
            if self.thread and self.thread is not threading.current_thread():
                self.thread.join(timeout=JOIN_TIMEOUT)
                if self.thread.is_alive():
                    logger.warning("Sampler thread still busy after stop; sealing anyway")
            self.thread = None
            self.run = None
            data = run.seal()

        if self.missed_ticks:
            logger.debug(f"{self.missed_ticks} tick(s) skipped due to read errors")
        return data

    def sample_once(self) -> bool:
        """
        Take one sample of the active run now.

        Returns:
            True if a snapshot was appended

        Raises:
            NotCollectingError: If no run is being sampled
        """
        run = self.run
        if run is None:
            raise NotCollectingError()
        return self._tick(run)

    def _tick(self, run: CollectionRun) -> bool:
        try:
            return run.tick()
        except SeriesSealedError:
            raise
        except (psutil.Error, OSError) as e:
            self.missed_ticks += 1
            logger.debug(f"Tick skipped: {e}")
        except Exception as e:
            self.missed_ticks += 1
            logger.warning(f"Sampler error: {e}")
        return False

    def _monitor_loop(self, run: CollectionRun, stop_event: threading.Event) -> None:
        """Main sampling loop (runs in background thread)"""
        while not stop_event.wait(self.interval):
            try:
                self._tick(run)
            except SeriesSealedError:
                # stop() sealed the run while this tick was reading
                break
