"""Model evaluator: prompt latency plus host resource sampling and attribution."""

__version__ = "0.1.0"
