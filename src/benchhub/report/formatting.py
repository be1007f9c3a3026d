"""Human-readable formatting of throughput, latency and dates."""

from datetime import timezone

from benchhub.results.models import parse_timestamp

NOT_MEASURED = "n/a"

_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_number(num: float) -> str:
    if num >= 1_000_000:
        return f"{num / 1_000_000:.2f}M"
    if num >= 1000:
        return f"{num / 1000:.1f}K"
    return f"{num:.0f}"


def format_latency(ms: float) -> str:
    if ms < 1:
        return f"{ms * 1000:.0f}μs"
    return f"{ms:.2f}ms"


def format_date(timestamp: str) -> str:
    """``2024-02-01T00:00:00Z`` -> ``Feb 1, 2024`` (UTC)."""
    dt = parse_timestamp(timestamp).astimezone(timezone.utc)
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}"


def format_datetime(timestamp: str) -> str:
    """``2024-02-01T09:30:00Z`` -> ``Feb 1, 2024, 09:30`` (UTC)."""
    dt = parse_timestamp(timestamp).astimezone(timezone.utc)
    return f"{format_date(timestamp)}, {dt.hour:02d}:{dt.minute:02d}"
