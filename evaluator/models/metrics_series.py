import threading
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from evaluator.models.snapshot import Snapshot
from evaluator.service.monitor.errors import SeriesSealedError


class MetricsSeries:
    """
    Ordered snapshot buffer for one collection run.

    The lock only guards append/seal; nothing slow happens while it is held.
    """

    def __init__(self, start_time: Optional[datetime] = None):
        self.start_time = start_time or datetime.now(timezone.utc)
        self.end_time: Optional[datetime] = None
        self._snapshots: List[Snapshot] = []
        self._sealed = False
        self._lock = threading.Lock()

    @property
    def sealed(self) -> bool:
        with self._lock:
            return self._sealed

    def __len__(self) -> int:
        with self._lock:
            return len(self._snapshots)

    def snapshots(self) -> Tuple[Snapshot, ...]:
        with self._lock:
            return tuple(self._snapshots)

    def append(self, snapshot: Snapshot) -> bool:
        """
        Append a snapshot.

        Returns:
            False if the snapshot is not strictly newer than the last one

        Raises:
            SeriesSealedError: If the series has been sealed
        """
        with self._lock:
            if self._sealed:
                raise SeriesSealedError()
            if self._snapshots and snapshot.monotonic <= self._snapshots[-1].monotonic:
                return False
            self._snapshots.append(snapshot)
            return True

    def seal(self) -> Tuple[Snapshot, ...]:
        """
        Freeze the series and stamp its end time.

        Raises:
            SeriesSealedError: If the series was already sealed
        """
        with self._lock:
            if self._sealed:
                raise SeriesSealedError()
            self._sealed = True
            self.end_time = datetime.now(timezone.utc)
            return tuple(self._snapshots)
