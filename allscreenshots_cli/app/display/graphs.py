"""Usage and quota rendering: bars, a sparkline and the summary views."""

from __future__ import annotations

from typing import Sequence

from rich.console import Console
from rich.markup import escape

from allscreenshots_cli.app.core.formatting import format_number
from allscreenshots_cli.app.services.models import BandwidthQuota, QuotaStatus, ScreenshotQuota, UsageReport

BAR_WIDTH = 40
SPARK_CHARS = " ▁▂▃▄▅▆▇█"


def usage_color(percent: float) -> str:
    if percent >= 90:
        return "red"
    if percent >= 75:
        return "yellow"
    return "green"


def quota_bar(used: int, limit: int, width: int = BAR_WIDTH) -> str:
    """Markup for a ``[█████░░░]`` bar; an unknown (zero) limit renders empty."""
    filled = min(width, int(width * used / limit)) if limit > 0 else 0
    percent = used / limit * 100 if limit > 0 else 0
    color = usage_color(percent)
    return f"\\[[{color}]{'█' * filled}[/][dim]{'░' * (width - filled)}[/]]"


def percent_of(used: int, limit: int) -> int:
    return int(used / limit * 100) if limit > 0 else 0


def sparkline(values: Sequence[int]) -> str:
    if not values:
        return ""
    peak = max(values)
    if peak <= 0:
        return SPARK_CHARS[0] * len(values)
    top = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[min(top, int(value / peak * top))] for value in values)


def render_screenshot_quota(console: Console, quota: ScreenshotQuota) -> None:
    console.print()
    console.print("[bold]Screenshots[/]")
    console.print(
        f"{quota_bar(quota.used, quota.limit)} {format_number(quota.used)}/{format_number(quota.limit)}"
        f" ({percent_of(quota.used, quota.limit)}%)"
    )
    console.print(f"  [green]{format_number(quota.remaining)}[/] remaining")


def render_bandwidth_quota(console: Console, bandwidth: BandwidthQuota) -> None:
    console.print()
    console.print("[bold]Bandwidth[/]")
    console.print(
        f"{quota_bar(bandwidth.used_bytes, bandwidth.limit_bytes)} [green]{escape(bandwidth.used_formatted)}[/]"
        f" / {escape(bandwidth.limit_formatted)} ({percent_of(bandwidth.used_bytes, bandwidth.limit_bytes)}%)"
    )


def render_quota_status(console: Console, quota: QuotaStatus) -> None:
    console.print()
    console.print("[bold underline]Quota Status[/]")
    console.print(f"Tier: [cyan]{escape(quota.tier)}[/]")
    render_screenshot_quota(console, quota.screenshots)
    render_bandwidth_quota(console, quota.bandwidth)
    if quota.period_ends:
        console.print()
        console.print(f"Period ends: [dim]{escape(quota.period_ends)}[/]")


def render_usage_summary(console: Console, usage: UsageReport) -> None:
    rule = "═" * 50
    period = usage.current_period
    console.print()
    console.print(f"[dim]{rule}[/]")
    console.print("[bold underline]  API Usage Summary[/]")
    console.print(f"[dim]{rule}[/]")
    console.print()
    console.print(f"[bold]Tier[/]: [cyan]{escape(usage.tier)}[/]")
    console.print()
    console.print(f"[bold]Period[/]: [dim]{escape(period.period_start)}[/] to [dim]{escape(period.period_end)}[/]")
    console.print()
    console.print("[bold]Current Period[/]")
    console.print(f"  Screenshots: [cyan]{format_number(period.screenshots_count)}[/]")
    console.print(f"  Bandwidth: [cyan]{escape(period.bandwidth_formatted)}[/]")

    if usage.quota is not None:
        render_screenshot_quota(console, usage.quota.screenshots)
        render_bandwidth_quota(console, usage.quota.bandwidth)

    if usage.history:
        console.print()
        console.print("[bold]Usage History (last periods)[/]")
        console.print(f"[cyan]{sparkline([entry.screenshots_count for entry in usage.history])}[/]")

    if usage.totals is not None:
        console.print()
        console.print("[bold]All-Time Totals[/]")
        console.print(f"  Screenshots: [cyan]{format_number(usage.totals.screenshots_count)}[/]")
        console.print(f"  Bandwidth: [cyan]{escape(usage.totals.bandwidth_formatted)}[/]")

    console.print()
    console.print(f"[dim]{rule}[/]")


def render_usage_table(console: Console, usage: UsageReport) -> None:
    period = usage.current_period
    console.print()
    console.print("[bold underline]API Usage[/]")
    console.print()
    console.print(f"{'Tier:':<20} [cyan]{escape(usage.tier)}[/]")
    console.print()
    console.print("[bold]Current Period[/]")
    console.print(f"{'  Start:':<20} {escape(period.period_start)}")
    console.print(f"{'  End:':<20} {escape(period.period_end)}")
    console.print(f"{'  Screenshots:':<20} {format_number(period.screenshots_count)}")
    console.print(f"{'  Bandwidth:':<20} {escape(period.bandwidth_formatted)}")

    if usage.quota is not None:
        shots = usage.quota.screenshots
        bandwidth = usage.quota.bandwidth
        console.print()
        console.print("[bold]Quota[/]")
        console.print(
            f"{'  Screenshots:':<20} {format_number(shots.used)} / {format_number(shots.limit)}"
            f" ({shots.percent_used:g}% used)"
        )
        console.print(f"{'  Remaining:':<20} [green]{format_number(shots.remaining)}[/]")
        console.print(
            f"{'  Bandwidth:':<20} {escape(bandwidth.used_formatted)} / {escape(bandwidth.limit_formatted)}"
            f" ({bandwidth.percent_used:g}% used)"
        )

    if usage.totals is not None:
        console.print()
        console.print("[bold]All-Time Totals[/]")
        console.print(f"{'  Screenshots:':<20} {format_number(usage.totals.screenshots_count)}")
        console.print(f"{'  Bandwidth:':<20} {escape(usage.totals.bandwidth_formatted)}")
    console.print()
