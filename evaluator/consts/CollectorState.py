from enum import Enum


class CollectorState(Enum):
    IDLE = "idle"
    COLLECTING = "collecting"
