"""BenchHub: HTTP framework benchmark results aggregation and rankings."""

__version__ = "0.1.0"
