"""Render rankings and framework details to Markdown."""

from typing import List, Optional

from benchhub.report.formatting import (
    NOT_MEASURED,
    format_date,
    format_datetime,
    format_latency,
    format_number,
)
from benchhub.report.ranking import (
    STATUS_FILTERED_EMPTY,
    STATUS_NO_DATA,
    RankingView,
    project_throughput,
    relative_throughput,
    resolve_key,
)
from benchhub.results.models import IndexFile, ResultSnapshot

NO_RESULTS_MESSAGE = "No benchmark results available yet."
NO_MATCHES_MESSAGE = "No frameworks match the current filters."

RANKING_VIEWS = [
    ("plaintext_rps", "Plaintext (req/s)"),
    ("json_rps", "JSON (req/s)"),
    ("echo_rps", "Echo POST (req/s)"),
    ("search_rps", "Query Params (req/s)"),
    ("user_rps", "Path Params (req/s)"),
    ("latency_p95", "Latency (p95)"),
    ("latency_p99", "Latency (p99)"),
]


def _format_value(metric: str, value: float, measured: bool) -> str:
    if not measured:
        return NOT_MEASURED
    if metric in ("rps", "projected_rps"):
        return format_number(value)
    if metric == "errors":
        return str(value)
    return format_latency(value)


def _empty_message(view: RankingView) -> Optional[str]:
    if view.status == STATUS_NO_DATA:
        return NO_RESULTS_MESSAGE
    if view.status == STATUS_FILTERED_EMPTY:
        return NO_MATCHES_MESSAGE
    return None


def render_leaderboard(view: RankingView, title: Optional[str] = None) -> str:
    """Markdown table of the view's current ranking.

    Throughput views also show the projected value and each framework's share
    of the best measured throughput; unmeasured scenarios show ``n/a``.
    """
    lines = [f"### {title}", ""] if title else []

    message = _empty_message(view)
    if message:
        lines.append(f"_{message}_")
        return "\n".join(lines)

    _, scenario, metric = resolve_key(view.sort_key)
    ranked = view.ranked()

    if metric in ("rps", "projected_rps"):
        relative = relative_throughput([r.row for r in ranked], scenario)
        lines.extend([
            "| Rank | Framework | Language | req/s | Projected | p95 | Relative | Measured |",
            "|------|-----------|----------|-------|-----------|-----|----------|----------|",
        ])
        for item, share in zip(ranked, relative):
            sv = item.row.scenario(scenario)
            share_str = f"{share * 100:.0f}%" if share is not None else NOT_MEASURED
            lines.append(
                f"| {item.rank} | {item.row.framework} | {item.row.language} "
                f"| {_format_value('rps', sv.requests_per_sec, sv.measured)} "
                f"| {_format_value('projected_rps', sv.projected_rps, sv.measured)} "
                f"| {_format_value('p95', sv.p95, sv.measured)} "
                f"| {share_str} | {format_date(item.row.measured_at)} |"
            )
    elif scenario is not None:
        lines.extend([
            "| Rank | Framework | Language | p50 | p95 | p99 | Errors | Measured |",
            "|------|-----------|----------|-----|-----|-----|--------|----------|",
        ])
        for item in ranked:
            sv = item.row.scenario(scenario)
            lines.append(
                f"| {item.rank} | {item.row.framework} | {item.row.language} "
                f"| {_format_value('p50', sv.p50, sv.measured)} "
                f"| {_format_value('p95', sv.p95, sv.measured)} "
                f"| {_format_value('p99', sv.p99, sv.measured)} "
                f"| {_format_value('errors', sv.errors, sv.measured)} "
                f"| {format_date(item.row.measured_at)} |"
            )
    else:
        return "\n".join(lines + [render_all_metrics(view)])

    return "\n".join(lines)


def render_all_metrics(view: RankingView) -> str:
    """The home page table: plaintext and JSON throughput/p95 side by side."""
    message = _empty_message(view)
    if message:
        return f"_{message}_"

    lines = [
        "| Rank | Framework | Language | Plaintext req/s | Plaintext p95 | JSON req/s | JSON p95 | Measured |",
        "|------|-----------|----------|-----------------|---------------|------------|----------|----------|",
    ]
    for item in view.ranked():
        plaintext = item.row.scenario("plaintext")
        json_sv = item.row.scenario("json")
        lines.append(
            f"| {item.rank} | {item.row.framework} | {item.row.language} "
            f"| {_format_value('rps', plaintext.requests_per_sec, plaintext.measured)} "
            f"| {_format_value('p95', plaintext.p95, plaintext.measured)} "
            f"| {_format_value('rps', json_sv.requests_per_sec, json_sv.measured)} "
            f"| {_format_value('p95', json_sv.p95, json_sv.measured)} "
            f"| {format_date(item.row.measured_at)} |"
        )
    return "\n".join(lines)


def render_framework_detail(snapshot: ResultSnapshot, history: Optional[List[ResultSnapshot]] = None) -> str:
    """Markdown detail page for one framework.

    Args:
        snapshot: The framework's latest snapshot
        history: All snapshots, newest first; shown when there is more than one

    Returns:
        Markdown as string
    """
    title = f"# {snapshot.framework} ({snapshot.language})"
    lines = [title, ""]
    if snapshot.url:
        lines.append(f"[Documentation]({snapshot.url})")
        lines.append("")
    lines.append(f"Last measured: {format_datetime(snapshot.measured_at)}")
    lines.append("")

    for route_id, benchmark in snapshot.benchmarks.items():
        latency = benchmark.latency_ms
        lines.extend([
            f"## {route_id.capitalize()} Route",
            "",
            f"- **Requests/sec:** {format_number(project_throughput(benchmark.requests_per_sec))} "
            f"(measured: {format_number(benchmark.requests_per_sec)})",
            f"- **p50:** {format_latency(latency.p50)}",
            f"- **p95:** {format_latency(latency.p95)}",
            f"- **p99:** {format_latency(latency.p99)}",
        ])
        if benchmark.errors > 0:
            lines.append(f"- **Warning:** {benchmark.errors} errors during benchmark")
        lines.append("")

    env = snapshot.environment
    lines.extend([
        "## Environment Details",
        "",
        "| OS | CI | oha version | Contract version |",
        "|----|----|-------------|------------------|",
        f"| {env.os} | {env.ci or 'N/A'} | {env.oha_version} | {snapshot.contract_version} |",
    ])

    if history and len(history) > 1:
        lines.extend(["", "## History", ""])
        for entry in history:
            routes = ", ".join(
                f"{route_id}: {format_number(bm.requests_per_sec)} req/s"
                for route_id, bm in entry.benchmarks.items()
            )
            lines.append(f"- {format_datetime(entry.measured_at)}: {routes}")

    return "\n".join(lines)


def render_markdown_report(view: RankingView, index: Optional[IndexFile]) -> str:
    """Full benchmark report: every ranking view plus the all-metrics table.

    Args:
        view: Rows and active filters; its sort state is not changed
        index: Index the rows came from, or None when it was unavailable

    Returns:
        Markdown report as string
    """
    report_lines = [
        "# HTTP Framework Benchmarks",
        "",
    ]

    if index is None or view.status == STATUS_NO_DATA:
        report_lines.extend([
            f"_{NO_RESULTS_MESSAGE}_ Benchmarks run automatically when frameworks are added or updated.",
        ])
        return "\n".join(report_lines)

    report_lines.extend([
        f"**Generated:** {format_datetime(index.generated_at)}",
        f"**Frameworks:** {len(view.rows)}",
        f"**Contract version:** {index.contract_version}",
        "",
        "> **Note:** Results were measured at different times and may not be directly comparable.",
        "> Each framework is benchmarked when its code changes.",
        "",
        "## Rankings",
        "",
    ])

    for key, title in RANKING_VIEWS:
        report_lines.append(render_leaderboard(view.with_sort(key), title))
        report_lines.append("")

    report_lines.extend([
        "## All Metrics",
        "",
        render_all_metrics(view),
        "",
        "---",
        "",
        "*Report generated by BenchHub*",
    ])

    return "\n".join(report_lines)
