import io

from rich.console import Console

from allscreenshots_cli.app.display.graphs import (
    percent_of,
    quota_bar,
    render_quota_status,
    render_usage_summary,
    sparkline,
    usage_color,
)
from allscreenshots_cli.app.services.models import QuotaStatus, UsageReport


def plain(render, *args) -> str:
    buffer = io.StringIO()
    render(Console(file=buffer, width=120, no_color=True), *args)
    return buffer.getvalue()


def test_quota_bar_fills_in_proportion():
    bar = quota_bar(25, 100, width=8)
    assert "██" + "[/]" in bar
    assert "░" * 6 in bar
    assert quota_bar(5, 0, width=4).count("░") == 4


def test_usage_color_thresholds():
    assert [usage_color(p) for p in (10, 75, 89.9, 90)] == ["green", "yellow", "yellow", "red"]
    assert percent_of(1, 3) == 33
    assert percent_of(1, 0) == 0


def test_sparkline_scales_to_the_peak():
    assert sparkline([0, 4, 8]) == " ▄█"
    assert sparkline([0, 0]) == "  "
    assert sparkline([]) == ""


def test_quota_status_shows_bars_and_remaining():
    quota = QuotaStatus.model_validate(
        {
            "tier": "starter",
            "screenshots": {"used": 1500, "limit": 2000, "remaining": 500},
            "bandwidth": {"usedBytes": 10, "limitBytes": 100, "usedFormatted": "10 MB", "limitFormatted": "100 MB"},
            "periodEnds": "2024-06-01",
        }
    )

    out = plain(render_quota_status, quota)

    assert "Tier: starter" in out
    assert "1,500/2,000 (75%)" in out
    assert "500 remaining" in out
    assert "10 MB / 100 MB (10%)" in out
    assert "Period ends: 2024-06-01" in out


def test_usage_summary_includes_history_and_totals():
    usage = UsageReport.model_validate(
        {
            "tier": "pro",
            "currentPeriod": {"periodStart": "2024-05-01", "periodEnd": "2024-05-31", "screenshotsCount": 1234},
            "history": [{"screenshotsCount": 0}, {"screenshotsCount": 10}],
            "totals": {"screenshotsCount": 98765, "bandwidthFormatted": "2 GB"},
        }
    )

    out = plain(render_usage_summary, usage)

    assert "2024-05-01 to 2024-05-31" in out
    assert "Screenshots: 1,234" in out
    assert " █" in out
    assert "98,765" in out
    assert "Screenshots\n" not in out
