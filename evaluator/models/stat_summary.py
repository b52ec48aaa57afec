import dataclasses


@dataclasses.dataclass
class StatSummary:
    """Statistical summary of a list of numeric values"""
    raw_data: list[float]
    min: float
    max: float
    p50: float
    p95: float
    p99: float
    avg: float

    def to_summary_dict(self):
        """Convert to dictionary for JSON serialization"""
        data = dataclasses.asdict(self)
        data.pop("raw_data")
        return data

    def to_raw_data_dict(self):
        """Convert only raw data to dictionary for JSON serialization"""
        return {"raw_data": self.raw_data}
