"""Flattened per-framework rows with sorting, filtering and ranking.

Each row carries one :class:`ScenarioValue` per scenario. A scenario the
framework never ran shows zeros for display but has ``measured=False``, and
every ordering helper here keeps unmeasured values behind measured ones.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from benchhub.results.models import BenchmarkMetric, IndexFile, ResultSnapshot, parse_timestamp

SCENARIOS = ("plaintext", "json", "echo", "search", "user")

# Longest suffix first so "_projected_rps" wins over "_rps"
METRIC_SUFFIXES = ("projected_rps", "rps", "p50", "p95", "p99", "errors")
STRING_KEYS = ("framework", "language")
DATE_KEYS = ("measured_at",)
KEY_ALIASES = {
    "latency_p95": "plaintext_p95",
    "latency_p99": "plaintext_p99",
}

ASC = "asc"
DESC = "desc"

STATUS_OK = "ok"
STATUS_NO_DATA = "no_data"
STATUS_FILTERED_EMPTY = "filtered_empty"


def project_throughput(requests_per_sec: float) -> float:
    """Estimated production-scale throughput: (rps / 1000)^2 * 100.

    A presentation heuristic, not a measurement. It is only ever shown next
    to the measured value and never written back into result data.
    """
    return (requests_per_sec / 1000) ** 2 * 100


@dataclass(frozen=True)
class ScenarioValue:
    """Display values for one scenario of one framework."""

    measured: bool
    requests_per_sec: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0
    errors: int = 0

    @property
    def projected_rps(self) -> float:
        return project_throughput(self.requests_per_sec) if self.measured else 0.0

    @classmethod
    def from_metric(cls, metric: Optional[BenchmarkMetric]) -> "ScenarioValue":
        if metric is None:
            return cls(measured=False)
        return cls(
            measured=True,
            requests_per_sec=metric.requests_per_sec,
            p50=metric.latency_ms.p50,
            p95=metric.latency_ms.p95,
            p99=metric.latency_ms.p99,
            errors=metric.errors,
        )

    def get(self, metric: str) -> float:
        if metric == "rps":
            return self.requests_per_sec
        return getattr(self, metric)


@dataclass(frozen=True)
class FrameworkRow:
    """One framework's latest results, flattened for sorting and display."""

    id: str
    framework: str
    language: str
    measured_at: str
    url: Optional[str] = None
    scenarios: Dict[str, ScenarioValue] = field(default_factory=dict)

    @classmethod
    def from_snapshot(cls, framework_id: str, snapshot: ResultSnapshot) -> "FrameworkRow":
        names = list(SCENARIOS) + sorted(set(snapshot.benchmarks) - set(SCENARIOS))
        return cls(
            id=framework_id,
            framework=snapshot.framework,
            language=snapshot.language,
            measured_at=snapshot.measured_at,
            url=snapshot.url,
            scenarios={name: ScenarioValue.from_metric(snapshot.scenario(name)) for name in names},
        )

    def scenario(self, name: str) -> ScenarioValue:
        return self.scenarios.get(name) or ScenarioValue(measured=False)

    def value(self, key: str) -> Tuple[Any, bool]:
        """Return ``(value, measured)`` for a flattened sort key."""
        kind, scenario, metric = resolve_key(key)
        if kind == "string":
            return getattr(self, key), True
        if kind == "date":
            return parse_timestamp(self.measured_at), True
        sv = self.scenario(scenario)
        return sv.get(metric), sv.measured


@dataclass(frozen=True)
class RankedRow:
    rank: int
    row: FrameworkRow


def resolve_key(key: str) -> Tuple[str, Optional[str], Optional[str]]:
    """Split a sort key into (kind, scenario, metric).

    Raises:
        ValueError: If the key names no known column
    """
    key = KEY_ALIASES.get(key, key)
    if key in STRING_KEYS:
        return "string", None, None
    if key in DATE_KEYS:
        return "date", None, None
    for suffix in METRIC_SUFFIXES:
        scenario, sep, rest = key.rpartition("_" + suffix)
        if sep and not rest and scenario:
            return "number", scenario, suffix
    raise ValueError(f"Unknown sort key: {key!r}")


def default_direction(key: str) -> str:
    """Throughput sorts high-to-low by default; everything else low-to-high."""
    return DESC if key.endswith("rps") else ASC


def build_rows(index: IndexFile, snapshots: Dict[str, ResultSnapshot]) -> List[FrameworkRow]:
    """Rows in index order; entries without a fetched snapshot are omitted."""
    return [
        FrameworkRow.from_snapshot(entry.id, snapshots[entry.id])
        for entry in index.frameworks
        if entry.id in snapshots
    ]


def sort_rows(rows: List[FrameworkRow], key: str, direction: Optional[str] = None) -> List[FrameworkRow]:
    """Stable sort by a flattened key.

    Strings compare case-insensitively, numbers numerically and dates as
    points in time. Rows whose value was not measured keep their relative
    order and always come last.
    """
    direction = direction or default_direction(key)
    if direction not in (ASC, DESC):
        raise ValueError(f"direction must be 'asc' or 'desc', got {direction!r}")
    kind = resolve_key(key)[0]
    reverse = direction == DESC

    if kind == "string":
        return sorted(rows, key=lambda r: r.value(key)[0].lower(), reverse=reverse)

    measured = [r for r in rows if r.value(key)[1]]
    unmeasured = [r for r in rows if not r.value(key)[1]]
    return sorted(measured, key=lambda r: r.value(key)[0], reverse=reverse) + unmeasured


def filter_rows(
    rows: List[FrameworkRow],
    query: Optional[str] = None,
    language: Optional[str] = None,
) -> List[FrameworkRow]:
    """Rows whose name or language contains ``query`` and whose language is ``language``."""
    needle = (query or "").strip().lower()
    result = []
    for row in rows:
        if language and row.language != language:
            continue
        if needle and needle not in row.framework.lower() and needle not in row.language.lower():
            continue
        result.append(row)
    return result


@dataclass
class RankingView:
    """Sort/filter state over a fixed set of rows.

    ``rows`` is never modified; every read derives a fresh filtered, sorted
    and ranked list from it.
    """

    rows: List[FrameworkRow] = field(default_factory=list)
    sort_key: str = "plaintext_rps"
    direction: str = DESC
    query: Optional[str] = None
    language: Optional[str] = None

    def __post_init__(self):
        self.rows = list(self.rows)
        resolve_key(self.sort_key)

    def toggle_sort(self, key: str) -> "RankingView":
        resolve_key(key)
        if key == self.sort_key:
            self.direction = ASC if self.direction == DESC else DESC
        else:
            self.sort_key = key
            self.direction = default_direction(key)
        return self

    def set_filter(self, query: Optional[str] = None, language: Optional[str] = None) -> "RankingView":
        self.query = query
        self.language = language
        return self

    def with_sort(self, key: str, direction: Optional[str] = None) -> "RankingView":
        resolve_key(key)
        return replace(self, sort_key=key, direction=direction or default_direction(key))

    def visible(self) -> List[FrameworkRow]:
        return sort_rows(filter_rows(self.rows, self.query, self.language), self.sort_key, self.direction)

    def ranked(self) -> List[RankedRow]:
        return [RankedRow(rank=i, row=row) for i, row in enumerate(self.visible(), start=1)]

    @property
    def status(self) -> str:
        if not self.rows:
            return STATUS_NO_DATA
        if not filter_rows(self.rows, self.query, self.language):
            return STATUS_FILTERED_EMPTY
        return STATUS_OK

    def languages(self) -> List[str]:
        return sorted({row.language for row in self.rows}, key=str.lower)

    def best(self, scenario: str) -> Optional[FrameworkRow]:
        """Highest measured throughput for a scenario within the current filter."""
        candidates = [
            r for r in filter_rows(self.rows, self.query, self.language)
            if r.scenario(scenario).measured
        ]
        if not candidates:
            return None
        return sort_rows(candidates, f"{scenario}_rps", DESC)[0]


def scenario_names(rows: List[FrameworkRow]) -> List[str]:
    """Known scenarios first, then any extra ones seen in the rows."""
    extra = sorted({name for row in rows for name in row.scenarios} - set(SCENARIOS))
    return list(SCENARIOS) + extra


def relative_throughput(rows: List[FrameworkRow], scenario: str) -> List[Optional[float]]:
    """Each row's throughput as a fraction of the best measured one (None if unmeasured)."""
    values = [row.scenario(scenario) for row in rows]
    measured = np.array([v.requests_per_sec for v in values if v.measured], dtype=float)
    best = measured.max() if measured.size else 0.0
    return [
        (float(v.requests_per_sec / best) if best > 0 else 0.0) if v.measured else None
        for v in values
    ]


def to_frame(rows: List[FrameworkRow]) -> pd.DataFrame:
    """Flatten rows into a DataFrame with ``<scenario>_measured`` flag columns."""
    names = scenario_names(rows)
    records = []
    for row in rows:
        record = {
            "id": row.id,
            "framework": row.framework,
            "language": row.language,
            "measured_at": row.measured_at,
            "url": row.url,
        }
        for name in names:
            sv = row.scenario(name)
            record[f"{name}_measured"] = sv.measured
            record[f"{name}_rps"] = sv.requests_per_sec
            record[f"{name}_projected_rps"] = sv.projected_rps
            record[f"{name}_p50"] = sv.p50
            record[f"{name}_p95"] = sv.p95
            record[f"{name}_p99"] = sv.p99
            record[f"{name}_errors"] = sv.errors
        records.append(record)

    columns = ["id", "framework", "language", "measured_at", "url"]
    for name in names:
        columns += [
            f"{name}_measured",
            f"{name}_rps",
            f"{name}_projected_rps",
            f"{name}_p50",
            f"{name}_p95",
            f"{name}_p99",
            f"{name}_errors",
        ]
    return pd.DataFrame(records, columns=columns)


def ranked_frame(view: RankingView) -> pd.DataFrame:
    """The current view as a DataFrame with a leading ``rank`` column."""
    ranked = view.ranked()
    df = to_frame([r.row for r in ranked])
    df.insert(0, "rank", [r.rank for r in ranked])
    return df
