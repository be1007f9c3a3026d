"""Benchmark rankings and reporting."""

from .loader import ResultsSource, ResultsUnavailable, load_snapshots
from .ranking import RankingView, build_rows, filter_rows, project_throughput, sort_rows
from .render_md import render_framework_detail, render_leaderboard, render_markdown_report

__all__ = [
    "RankingView",
    "ResultsSource",
    "ResultsUnavailable",
    "build_rows",
    "filter_rows",
    "load_snapshots",
    "project_throughput",
    "render_framework_detail",
    "render_leaderboard",
    "render_markdown_report",
    "sort_rows",
]
