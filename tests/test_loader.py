"""Test read-only result loading from disk and over HTTP."""

import json
import logging

import httpx
import pytest

from benchhub.report.loader import ResultsSource, ResultsUnavailable, load_snapshots
from benchhub.results.aggregate import merge_results
from benchhub.results.models import IndexEntry, IndexFile
from conftest import make_snapshot, write_snapshot


def test_local_source_reads_merged_results(results_dir):
    write_snapshot(results_dir, make_snapshot(framework_id="hono", framework="Hono"))
    write_snapshot(results_dir, make_snapshot(framework_id="elysia", framework="Elysia"))
    merge_results(results_dir, contract_version=1)

    source = ResultsSource(results_dir.parent)
    index = source.fetch_index()
    snapshots = load_snapshots(source, index)

    assert sorted(snapshots) == ["elysia", "hono"]
    assert snapshots["hono"].framework == "Hono"


def test_missing_index_is_unavailable(tmp_path):
    with pytest.raises(ResultsUnavailable):
        ResultsSource(tmp_path).fetch_index()


def test_malformed_index_is_unavailable(results_dir):
    (results_dir / "index.json").write_text("<html>")
    with pytest.raises(ResultsUnavailable):
        ResultsSource(results_dir.parent).fetch_index()


def test_failed_fetch_omitted(results_dir, caplog):
    write_snapshot(results_dir, make_snapshot(framework_id="hono"))
    merge_results(results_dir, contract_version=1)
    index = ResultsSource(results_dir.parent).fetch_index()
    index.frameworks.append(
        IndexEntry("ghost", "Go", "Ghost", "2024-01-01T00:00:00Z", "results/frameworks/ghost/latest.json")
    )

    with caplog.at_level(logging.WARNING):
        snapshots = load_snapshots(ResultsSource(results_dir.parent), index, max_concurrency=2)

    assert list(snapshots) == ["hono"]
    assert "ghost" in caplog.text


def test_undecodable_snapshot_omitted(results_dir, caplog):
    write_snapshot(results_dir, make_snapshot(framework_id="hono"))
    write_snapshot(results_dir, make_snapshot(framework_id="fiber", framework="Fiber", language="Go"))
    merge_results(results_dir, contract_version=1)
    (results_dir / "frameworks" / "fiber" / "latest.json").write_bytes(b"\xff\xfe")
    source = ResultsSource(results_dir.parent)

    with caplog.at_level(logging.WARNING):
        snapshots = load_snapshots(source, source.fetch_index(), max_concurrency=2)

    assert list(snapshots) == ["hono"]
    assert "fiber" in caplog.text


def test_undecodable_index_is_unavailable(results_dir):
    (results_dir / "index.json").write_bytes(b"\xff\xfe")
    with pytest.raises(ResultsUnavailable):
        ResultsSource(results_dir.parent).fetch_index()


def test_index_with_bad_timestamp_is_unavailable(results_dir):
    (results_dir / "index.json").write_text(
        json.dumps({"generated_at": "yesterday", "contract_version": 1, "frameworks": []})
    )
    with pytest.raises(ResultsUnavailable):
        ResultsSource(results_dir.parent).fetch_index()


def test_empty_index_loads_nothing(tmp_path):
    index = IndexFile(generated_at="2024-01-01T00:00:00.000Z", contract_version=1)
    assert load_snapshots(ResultsSource(tmp_path), index) == {}


def _mock_client(routes):
    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(request.url.path)
        if body is None:
            return httpx.Response(404)
        return httpx.Response(200, text=body)

    return httpx.Client(transport=httpx.MockTransport(handler))


def test_http_source_with_failures():
    index = {
        "generated_at": "2024-03-01T00:00:00.000Z",
        "contract_version": 1,
        "frameworks": [
            {"id": "express", "language": "JavaScript", "framework": "Express",
             "measured_at": "2024-01-01T00:00:00Z", "latest": "results/frameworks/express/latest.json"},
            {"id": "fastify", "language": "JavaScript", "framework": "Fastify",
             "measured_at": "2024-01-01T00:00:00Z", "latest": "results/frameworks/fastify/latest.json"},
            {"id": "fiber", "language": "Go", "framework": "Fiber",
             "measured_at": "2024-01-01T00:00:00Z", "latest": "results/frameworks/fiber/latest.json"},
        ],
    }
    routes = {
        "/bench/results/index.json": json.dumps(index),
        "/bench/results/frameworks/express/latest.json": json.dumps(
            make_snapshot(framework_id="express", framework="Express", language="JavaScript")
        ),
        # fastify: 404; fiber: malformed body
        "/bench/results/frameworks/fiber/latest.json": "{",
    }
    source = ResultsSource("https://example.test/bench/", client=_mock_client(routes))

    fetched_index = source.fetch_index()
    snapshots = load_snapshots(source, fetched_index)

    assert [e.id for e in fetched_index.frameworks] == ["express", "fastify", "fiber"]
    assert list(snapshots) == ["express"]


def test_http_index_error_is_unavailable():
    source = ResultsSource("https://example.test", client=_mock_client({}))
    with pytest.raises(ResultsUnavailable):
        source.fetch_index()
