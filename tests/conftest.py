"""Shared fixtures: snapshot factories and on-disk results trees."""

import copy
import json
from pathlib import Path

import pytest


def make_metric(rps=1000.0, p50=0.5, p95=1.0, p99=2.0, errors=0):
    return {
        "duration_seconds": 6,
        "requests_per_sec": rps,
        "latency_ms": {"p50": p50, "p95": p95, "p99": p99},
        "errors": errors,
    }


def make_snapshot(
    framework_id="bun-http",
    framework="Bun HTTP",
    language="TypeScript",
    measured_at="2024-01-01T00:00:00Z",
    contract_version=1,
    benchmarks=None,
    url=None,
):
    data = {
        "framework_id": framework_id,
        "language": language,
        "framework": framework,
        "measured_at": measured_at,
        "contract_version": contract_version,
        "runner_version": "0.3.0",
        "environment": {"os": "ubuntu-22.04", "ci": "github-actions", "oha_version": "1.4.0"},
        "benchmarks": copy.deepcopy(benchmarks) if benchmarks is not None else {
            "plaintext": make_metric(5000),
            "json": make_metric(4000),
        },
    }
    if url is not None:
        data["url"] = url
    return data


def write_snapshot(results_dir: Path, data: dict, filename: str = None, framework_dir: str = None) -> Path:
    """Write a snapshot dict under results_dir/frameworks/<id>/<filename>."""
    if filename is None:
        filename = data["measured_at"].replace(":", "-").replace("Z", "") + ".json"
    path = results_dir / "frameworks" / (framework_dir or data["framework_id"]) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2))
    return path


@pytest.fixture
def results_dir(tmp_path):
    """Empty site root layout: <tmp>/results."""
    path = tmp_path / "results"
    path.mkdir()
    return path


@pytest.fixture
def contract_file(tmp_path):
    path = tmp_path / "contract.json"
    path.write_text(json.dumps({"version": 1}))
    return path
