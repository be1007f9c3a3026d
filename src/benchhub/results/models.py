"""Benchmark result data structures."""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional


FRAMEWORK_ID_PATTERN = re.compile(r"^[a-z0-9][a-z0-9._-]*$")


class SnapshotError(ValueError):
    """A result snapshot (or index) is malformed or missing a required field."""

    def __init__(self, message: str, framework_id: Optional[str] = None, path: Optional[Path] = None):
        self.framework_id = framework_id
        self.path = path
        context = []
        if framework_id:
            context.append(f"framework={framework_id}")
        if path:
            context.append(f"path={path}")
        if context:
            message = f"{message} ({', '.join(context)})"
        super().__init__(message)


def validate_framework_id(framework_id: Any) -> str:
    """Return the framework id if it is a valid slug, else raise SnapshotError."""
    if not isinstance(framework_id, str) or not FRAMEWORK_ID_PATTERN.match(framework_id):
        raise SnapshotError(f"Invalid framework id: {framework_id!r}")
    return framework_id


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime (naive values are UTC)."""
    if not isinstance(value, str):
        raise SnapshotError(f"Timestamp must be a string, got {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise SnapshotError(f"Unparseable timestamp: {value!r}") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with a trailing Z and millisecond precision."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _require(data: Dict[str, Any], key: str, kind, what: str):
    if not isinstance(data, dict):
        raise SnapshotError(f"{what} must be an object")
    if key not in data:
        raise SnapshotError(f"Missing required field '{key}' in {what}")
    value = data[key]
    # bool is an int subclass
    if isinstance(value, bool) or not isinstance(value, kind):
        raise SnapshotError(f"Field '{key}' in {what} has wrong type")
    return value


@dataclass(frozen=True)
class Environment:
    """Where a benchmark ran."""

    os: str
    ci: str = ""
    oha_version: str = ""

    @property
    def in_ci(self) -> bool:
        return bool(self.ci)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Environment":
        ci = data.get("ci") if isinstance(data, dict) else None
        return cls(
            os=_require(data, "os", str, "environment"),
            ci=ci or "",
            oha_version=_require(data, "oha_version", str, "environment"),
        )

    def to_dict(self) -> dict:
        return {"os": self.os, "ci": self.ci, "oha_version": self.oha_version}


@dataclass(frozen=True)
class LatencyMs:
    """Latency distribution in milliseconds."""

    p50: float
    p95: float
    p99: float

    def __post_init__(self):
        if min(self.p50, self.p95, self.p99) < 0:
            raise SnapshotError("Latency percentiles must be non-negative")
        if not (self.p50 <= self.p95 <= self.p99):
            raise SnapshotError(
                f"Latency percentiles out of order: p50={self.p50} p95={self.p95} p99={self.p99}"
            )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LatencyMs":
        number = (int, float)
        return cls(
            p50=_require(data, "p50", number, "latency_ms"),
            p95=_require(data, "p95", number, "latency_ms"),
            p99=_require(data, "p99", number, "latency_ms"),
        )

    def to_dict(self) -> dict:
        return {"p50": self.p50, "p95": self.p95, "p99": self.p99}


@dataclass(frozen=True)
class BenchmarkMetric:
    """Measurements for one scenario (route) of one run."""

    duration_seconds: float
    requests_per_sec: float
    latency_ms: LatencyMs
    errors: int = 0

    def __post_init__(self):
        if self.requests_per_sec < 0:
            raise SnapshotError("requests_per_sec must be non-negative")
        if self.errors < 0:
            raise SnapshotError("errors must be non-negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], scenario: str = "benchmark") -> "BenchmarkMetric":
        number = (int, float)
        what = f"benchmarks.{scenario}"
        return cls(
            duration_seconds=_require(data, "duration_seconds", number, what),
            requests_per_sec=_require(data, "requests_per_sec", number, what),
            latency_ms=LatencyMs.from_dict(_require(data, "latency_ms", dict, what)),
            errors=_require(data, "errors", int, what),
        )

    def to_dict(self) -> dict:
        return {
            "duration_seconds": self.duration_seconds,
            "requests_per_sec": self.requests_per_sec,
            "latency_ms": self.latency_ms.to_dict(),
            "errors": self.errors,
        }


@dataclass(frozen=True)
class ResultSnapshot:
    """One immutable measurement of one framework at one point in time.

    Scenarios missing from ``benchmarks`` were not measured. Use
    :meth:`scenario` to read them; it returns ``None`` rather than a zeroed
    metric so callers cannot mistake "not measured" for "measured as zero".
    """

    framework_id: str
    language: str
    framework: str
    measured_at: str
    contract_version: int
    runner_version: str
    environment: Environment
    benchmarks: Dict[str, BenchmarkMetric] = field(default_factory=dict)
    url: Optional[str] = None

    @property
    def measured_at_dt(self) -> datetime:
        return parse_timestamp(self.measured_at)

    def scenario(self, name: str) -> Optional[BenchmarkMetric]:
        return self.benchmarks.get(name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], path: Optional[Path] = None) -> "ResultSnapshot":
        """Build a snapshot from its JSON object, validating every field.

        Args:
            data: Decoded JSON object written by the benchmark runner
            path: File the data came from, used only for error context

        Returns:
            ResultSnapshot instance

        Raises:
            SnapshotError: If a field is missing, mistyped or out of range
        """
        framework_id = data.get("framework_id") if isinstance(data, dict) else None
        try:
            validate_framework_id(_require(data, "framework_id", str, "snapshot"))
            measured_at = _require(data, "measured_at", str, "snapshot")
            parse_timestamp(measured_at)

            raw_benchmarks = _require(data, "benchmarks", dict, "snapshot")
            benchmarks = {
                name: BenchmarkMetric.from_dict(metric, name)
                for name, metric in raw_benchmarks.items()
            }

            url = data.get("url")
            if url is not None and not isinstance(url, str):
                raise SnapshotError("Field 'url' in snapshot has wrong type")

            return cls(
                framework_id=framework_id,
                language=_require(data, "language", str, "snapshot"),
                framework=_require(data, "framework", str, "snapshot"),
                measured_at=measured_at,
                contract_version=_require(data, "contract_version", int, "snapshot"),
                runner_version=_require(data, "runner_version", str, "snapshot"),
                environment=Environment.from_dict(_require(data, "environment", dict, "snapshot")),
                benchmarks=benchmarks,
                url=url,
            )
        except SnapshotError as e:
            if e.framework_id or e.path:
                raise
            raise SnapshotError(str(e), framework_id=framework_id, path=path) from None

    @classmethod
    def loads(cls, text: str, path: Optional[Path] = None) -> "ResultSnapshot":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Malformed JSON: {e}", path=path) from None
        return cls.from_dict(data, path=path)

    def to_dict(self) -> dict:
        data = {
            "framework_id": self.framework_id,
            "language": self.language,
            "framework": self.framework,
            "measured_at": self.measured_at,
            "contract_version": self.contract_version,
            "runner_version": self.runner_version,
            "environment": self.environment.to_dict(),
            "benchmarks": {name: metric.to_dict() for name, metric in self.benchmarks.items()},
        }
        if self.url is not None:
            data["url"] = self.url
        return data

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"


@dataclass(frozen=True)
class IndexEntry:
    """Summary of one framework in the index."""

    id: str
    language: str
    framework: str
    measured_at: str
    latest: str

    @classmethod
    def from_snapshot(cls, snapshot: ResultSnapshot, latest: str) -> "IndexEntry":
        return cls(
            id=snapshot.framework_id,
            language=snapshot.language,
            framework=snapshot.framework,
            measured_at=snapshot.measured_at,
            latest=latest,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexEntry":
        return cls(
            id=_require(data, "id", str, "index entry"),
            language=_require(data, "language", str, "index entry"),
            framework=_require(data, "framework", str, "index entry"),
            measured_at=_require(data, "measured_at", str, "index entry"),
            latest=_require(data, "latest", str, "index entry"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "language": self.language,
            "framework": self.framework,
            "measured_at": self.measured_at,
            "latest": self.latest,
        }


@dataclass
class IndexFile:
    """Consolidated index of every framework's latest snapshot."""

    generated_at: str
    contract_version: int
    frameworks: List[IndexEntry] = field(default_factory=list)

    def __post_init__(self):
        self.frameworks = sorted(self.frameworks, key=lambda entry: entry.id)

    @property
    def is_empty(self) -> bool:
        return not self.frameworks

    def get(self, framework_id: str) -> Optional[IndexEntry]:
        for entry in self.frameworks:
            if entry.id == framework_id:
                return entry
        return None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexFile":
        entries = _require(data, "frameworks", list, "index")
        generated_at = _require(data, "generated_at", str, "index")
        parse_timestamp(generated_at)
        return cls(
            generated_at=generated_at,
            contract_version=_require(data, "contract_version", int, "index"),
            frameworks=[IndexEntry.from_dict(entry) for entry in entries],
        )

    @classmethod
    def loads(cls, text: str) -> "IndexFile":
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Malformed index JSON: {e}") from None
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {
            "generated_at": self.generated_at,
            "contract_version": self.contract_version,
            "frameworks": [entry.to_dict() for entry in self.frameworks],
        }

    def dumps(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"
