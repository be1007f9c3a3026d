"""CLI for BenchHub."""

import argparse
import logging
import sys
from pathlib import Path

from benchhub.config import AppConfig, ContractError
from benchhub.report.loader import ResultsSource, ResultsUnavailable, load_snapshots
from benchhub.report.ranking import RankingView, build_rows, ranked_frame
from benchhub.report.render_md import (
    NO_RESULTS_MESSAGE,
    render_framework_detail,
    render_leaderboard,
    render_markdown_report,
)
from benchhub.results.aggregate import merge_results
from benchhub.results.models import SnapshotError, validate_framework_id
from benchhub.results.store import SnapshotStore

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _config(args) -> AppConfig:
    overrides = {}
    if getattr(args, "results_dir", None):
        overrides["results_dir"] = args.results_dir
    if getattr(args, "contract", None):
        overrides["contract_file"] = args.contract
    if getattr(args, "max_concurrency", None):
        overrides["max_concurrency"] = args.max_concurrency
    if getattr(args, "strict_contract", False):
        overrides["strict_contract"] = True
    return AppConfig(**overrides)


def _source(args, config: AppConfig) -> ResultsSource:
    # Index references are relative to the directory containing results/
    return ResultsSource(args.source or config.results_dir.parent)


def _load_view(args, config: AppConfig):
    source = _source(args, config)
    index = source.fetch_index()
    snapshots = load_snapshots(source, index, config.max_concurrency)
    return index, RankingView(build_rows(index, snapshots))


def cmd_aggregate(args) -> int:
    """Merge snapshots into latest pointers and index.json."""
    config = _config(args)
    try:
        contract_version = config.contract_version()
    except ContractError as e:
        logger.error(str(e))
        return 1

    report = merge_results(
        config.results_dir,
        contract_version=contract_version,
        latest_prefix=config.latest_prefix,
        strict_contract=config.strict_contract,
        max_concurrency=config.max_concurrency,
    )

    print(f"✓ Index generated with {len(report.index.frameworks)} frameworks")
    print(f"  - Updated: {', '.join(report.updated) or '-'}")
    if report.skipped:
        print(f"  - Skipped (no results): {', '.join(report.skipped)}")
    if report.failed:
        print(f"  - Failed: {', '.join(sorted(report.failed))}")
    if report.version_mismatches:
        print(f"  - Contract version mismatch: {', '.join(report.version_mismatches)}")
    print(f"  - Saved to: {report.index_path}")
    return 0 if report.ok else 1


def cmd_ingest(args) -> int:
    """Store runner output files as immutable snapshots."""
    config = _config(args)
    store = SnapshotStore(config.frameworks_dir)
    failures = 0
    for path in args.files:
        try:
            stored = store.ingest_file(path)
            print(f"✓ {path} -> {stored}")
        except SnapshotError as e:
            logger.error(f"Rejected {path}: {e}")
            failures += 1
    return 1 if failures else 0


def cmd_rank(args) -> int:
    """Print the ranked, filtered view."""
    config = _config(args)
    try:
        _, view = _load_view(args, config)
    except ResultsUnavailable as e:
        logger.debug(str(e))
        print(NO_RESULTS_MESSAGE)
        return 1

    view = view.with_sort(args.sort, args.direction)
    view.set_filter(query=args.search, language=args.language)

    if args.format == "csv":
        ranked_frame(view).to_csv(sys.stdout, index=False)
    else:
        print(render_leaderboard(view))
    return 0


def cmd_show(args) -> int:
    """Print one framework's detail page."""
    config = _config(args)
    validate_framework_id(args.framework_id)
    store = SnapshotStore(config.frameworks_dir)
    if not store.framework_dir(args.framework_id).is_dir():
        print(f"Framework not found: {args.framework_id}")
        return 1

    history = store.history(args.framework_id)
    if not history:
        print(f"No results for {args.framework_id}")
        return 1

    print(render_framework_detail(history[0], history))
    return 0


def cmd_report(args) -> int:
    """Generate the Markdown benchmark report."""
    config = _config(args)
    try:
        index, view = _load_view(args, config)
    except ResultsUnavailable as e:
        logger.warning(str(e))
        index, view = None, RankingView()

    report_md = render_markdown_report(view, index)

    args.output.parent.mkdir(parents=True, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as f:
        f.write(report_md + "\n")

    print(f"✓ Report generated: {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="BenchHub: aggregate and rank HTTP framework benchmark results"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # aggregate
    parser_agg = subparsers.add_parser("aggregate", help="Update latest.json files and index.json")
    parser_agg.add_argument("--results-dir", type=Path, default=None, help="Results directory")
    parser_agg.add_argument("--contract", type=Path, default=None, help="Contract file with the current version")
    parser_agg.add_argument("--strict-contract", action="store_true",
                            help="Skip snapshots whose contract version differs")
    parser_agg.add_argument("--max-concurrency", type=int, default=None, help="Frameworks processed at once")
    parser_agg.set_defaults(func=cmd_aggregate)

    # ingest
    parser_ing = subparsers.add_parser("ingest", help="Store runner output files")
    parser_ing.add_argument("files", nargs="+", type=Path, help="Result snapshot JSON files")
    parser_ing.add_argument("--results-dir", type=Path, default=None, help="Results directory")
    parser_ing.set_defaults(func=cmd_ingest)

    # rank
    parser_rank = subparsers.add_parser("rank", help="Print rankings")
    parser_rank.add_argument("--results-dir", type=Path, default=None, help="Results directory")
    parser_rank.add_argument("--source", default=None, help="Site root directory or URL (contains results/)")
    parser_rank.add_argument("--sort", default="plaintext_rps", help="Sort key, e.g. json_rps, plaintext_p95, framework")
    parser_rank.add_argument("--direction", choices=["asc", "desc"], default=None, help="Sort direction")
    parser_rank.add_argument("--search", default=None, help="Substring of framework name or language")
    parser_rank.add_argument("--language", default=None, help="Exact language label")
    parser_rank.add_argument("--format", choices=["markdown", "csv"], default="markdown", help="Output format")
    parser_rank.set_defaults(func=cmd_rank)

    # show
    parser_show = subparsers.add_parser("show", help="Show one framework")
    parser_show.add_argument("framework_id", help="Framework id")
    parser_show.add_argument("--results-dir", type=Path, default=None, help="Results directory")
    parser_show.set_defaults(func=cmd_show)

    # report
    parser_report = subparsers.add_parser("report", help="Generate benchmark report")
    parser_report.add_argument("--results-dir", type=Path, default=None, help="Results directory")
    parser_report.add_argument("--source", default=None, help="Site root directory or URL (contains results/)")
    parser_report.add_argument("--output", type=Path, default=Path("results/report.md"), help="Output report file")
    parser_report.set_defaults(func=cmd_report)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    if args.command is None:
        parser.print_help()
        return 0

    try:
        return args.func(args)
    except ValueError as e:
        # Bad sort key or configuration value
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
