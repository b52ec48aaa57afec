"""
Collector state errors.

These are the only errors that cross the metrics collector boundary. Read
failures and vanished processes are absorbed and show up as missing data.
"""


class CollectorStateError(RuntimeError):
    """A collection operation was invoked out of sequence."""


class AlreadyCollectingError(CollectorStateError):
    def __init__(self, message: str = "Metrics collection is already running"):
        super().__init__(message)


class NotCollectingError(CollectorStateError):
    def __init__(self, message: str = "Metrics collection is not running"):
        super().__init__(message)


class SeriesSealedError(CollectorStateError):
    def __init__(self, message: str = "Metrics series is sealed"):
        super().__init__(message)
