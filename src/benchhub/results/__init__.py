"""Benchmark result snapshots, storage and index aggregation."""

from .aggregate import MergeReport, merge_results, run_aggregation
from .models import (
    BenchmarkMetric,
    Environment,
    IndexEntry,
    IndexFile,
    LatencyMs,
    ResultSnapshot,
    SnapshotError,
)
from .store import SnapshotStore

__all__ = [
    "BenchmarkMetric",
    "Environment",
    "IndexEntry",
    "IndexFile",
    "LatencyMs",
    "MergeReport",
    "ResultSnapshot",
    "SnapshotError",
    "SnapshotStore",
    "merge_results",
    "run_aggregation",
]
