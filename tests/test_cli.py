"""Test the benchhub command line."""

import json

import pytest

from benchhub.cli import build_parser, main
from conftest import make_metric, make_snapshot, write_snapshot


@pytest.fixture
def populated(results_dir, contract_file):
    write_snapshot(results_dir, make_snapshot(
        framework_id="express", framework="Express", language="JavaScript",
        benchmarks={"plaintext": make_metric(15000), "json": make_metric(12000)},
    ))
    write_snapshot(results_dir, make_snapshot(
        framework_id="fiber", framework="Fiber", language="Go",
        benchmarks={"plaintext": make_metric(90000)},
    ))
    assert main(["aggregate", "--results-dir", str(results_dir), "--contract", str(contract_file)]) == 0
    return results_dir


def test_parser_subcommands():
    parser = build_parser()
    args = parser.parse_args(["rank", "--sort", "json_rps", "--language", "Go"])
    assert args.command == "rank"
    assert args.sort == "json_rps"
    assert args.direction is None


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage" in capsys.readouterr().out


def test_aggregate_writes_index(populated, capsys):
    index = json.loads((populated / "index.json").read_text())
    assert [e["id"] for e in index["frameworks"]] == ["express", "fiber"]


def test_aggregate_missing_contract(results_dir, tmp_path):
    assert main(["aggregate", "--results-dir", str(results_dir), "--contract", str(tmp_path / "nope.json")]) == 1


def test_rank_markdown(populated, capsys):
    assert main(["rank", "--results-dir", str(populated)]) == 0
    out = capsys.readouterr().out
    assert out.index("Fiber") < out.index("Express")


def test_rank_filter_and_csv(populated, capsys):
    assert main(["rank", "--results-dir", str(populated), "--sort", "json_rps", "--format", "csv"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0].startswith("rank,id,framework")
    assert lines[1].startswith("1,express,")
    assert lines[2].startswith("2,fiber,")


def test_rank_no_matches(populated, capsys):
    assert main(["rank", "--results-dir", str(populated), "--search", "django"]) == 0
    assert "No frameworks match the current filters." in capsys.readouterr().out


def test_rank_no_results(tmp_path, capsys):
    assert main(["rank", "--results-dir", str(tmp_path / "results")]) == 1
    assert "No benchmark results available yet." in capsys.readouterr().out


def test_rank_bad_sort_key(populated):
    assert main(["rank", "--results-dir", str(populated), "--sort", "nonsense"]) == 2


def test_show(populated, capsys):
    assert main(["show", "fiber", "--results-dir", str(populated)]) == 0
    assert "# Fiber (Go)" in capsys.readouterr().out

    assert main(["show", "rails", "--results-dir", str(populated)]) == 1


def test_ingest(results_dir, tmp_path, capsys):
    runner_output = tmp_path / "out.json"
    runner_output.write_text(json.dumps(make_snapshot(framework_id="hono", measured_at="2024-04-01T10:00:00Z")))
    bad = tmp_path / "bad.json"
    bad.write_text("{")

    assert main(["ingest", str(runner_output), "--results-dir", str(results_dir)]) == 0
    assert (results_dir / "frameworks" / "hono" / "2024-04-01T10-00-00.json").exists()
    assert main(["ingest", str(bad), "--results-dir", str(results_dir)]) == 1


def test_report(populated, tmp_path):
    output = tmp_path / "out" / "report.md"
    assert main(["report", "--results-dir", str(populated), "--output", str(output)]) == 0
    text = output.read_text()
    assert "## Rankings" in text
    assert "Fiber" in text


def test_show_rejects_path_like_id(populated, capsys):
    assert main(["show", "../..", "--results-dir", str(populated)]) == 2
    assert main(["show", "Fiber", "--results-dir", str(populated)]) == 2
