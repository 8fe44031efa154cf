import json

import pytest

from allscreenshots_cli.app import cli
from allscreenshots_cli.app.commands import compose, schedule, usage
from allscreenshots_cli.app.core.settings import API_KEY_ENV, settings
from allscreenshots_cli.app.services.models import (
    ComposeResult,
    ImageFormat,
    LayoutType,
    QuotaStatus,
    Schedule,
    ScheduleExecution,
    ScheduleHistory,
    UsageReport,
)

HOME = Schedule(id="sch_1", name="Homepage", url="https://example.com", schedule="0 9 * * *")


class FakeRemote:
    def __init__(self):
        self.calls = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return None

    async def compose(self, request):
        self.calls.append(("compose", request))
        return ComposeResult(url="https://cdn/c.png", width=800, height=600, file_size=4096)

    async def list_schedules(self):
        self.calls.append(("list", None))
        return [HOME, Schedule(id="sch_2", name="Pricing", url="https://p.com", schedule="@daily", status="PAUSED")]

    async def create_schedule(self, request):
        self.calls.append(("create", request))
        return HOME.model_copy(update={"next_execution_at": "2024-05-02T09:00:00Z"})

    async def update_schedule(self, schedule_id, update):
        self.calls.append(("update", update))
        return HOME

    async def delete_schedule(self, schedule_id):
        self.calls.append(("delete", schedule_id))

    async def schedule_action(self, schedule_id, action):
        self.calls.append((action, schedule_id))
        return HOME

    async def schedule_history(self, schedule_id, limit=None):
        self.calls.append(("history", limit))
        return ScheduleHistory(
            total_executions=2,
            executions=[
                ScheduleExecution(executed_at="2024-05-01T09:00:00Z", status="COMPLETED", render_time_ms=1500),
                ScheduleExecution(executed_at="2024-04-30T09:00:00Z", status="FAILED", error_message="Timeout"),
            ],
        )

    async def get_usage(self):
        self.calls.append(("usage", None))
        return UsageReport(tier="pro")

    async def get_quota(self):
        self.calls.append(("quota", None))
        return QuotaStatus(tier="free")


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "config_path", tmp_path / "config.yaml")
    monkeypatch.delenv(API_KEY_ENV, raising=False)


@pytest.fixture
def remote(monkeypatch):
    fake = FakeRemote()
    for module in (compose, schedule, usage):
        monkeypatch.setattr(module, "build_client", lambda config: fake)
    return fake


def run(*argv):
    return cli.main(["-k", "as_test", *argv])


def test_compose_builds_one_request_for_all_urls(remote, capsys):
    code = run("compose", "a.com", "b.com", "--layout", "Grid", "--columns", "2", "-d", "iPhone 14", "--format", "jpg")

    assert code == 0
    (_, request), = remote.calls
    assert [item.url for item in request.captures] == ["https://a.com", "https://b.com"]
    assert {item.device for item in request.captures} == {"iPhone 14"}
    assert request.output.layout is LayoutType.GRID
    assert request.output.format is ImageFormat.JPEG
    out = capsys.readouterr().out
    assert "Composition complete!" in out
    assert "800x600" in out
    assert "https://cdn/c.png" in out


@pytest.mark.parametrize(
    "argv, message",
    [
        (["compose", "a.com"], "between 2 and 20 URLs"),
        (["compose", "a.com", "b.com", "--layout", "spiral"], "Invalid layout 'spiral'"),
        (["compose", "a.com", "b.com", "--background", "red"], "Invalid background 'red'"),
        (["compose", "a.com", "b.com", "--quality", "0"], "--quality must be between 1 and 100"),
        (["compose", "a.com", "b.com", "--format", "pdf"], "png, jpeg, or webp"),
    ],
)
def test_compose_validates_before_any_request(remote, capsys, argv, message):
    assert run(*argv) == 1
    assert message in capsys.readouterr().err
    assert remote.calls == []


def test_schedule_create_normalizes_url(remote, capsys):
    code = run("schedule", "create", "example.com", "--name", "Homepage", "--cron", "0 9 * * *", "--retention-days", "30")

    assert code == 0
    (_, request), = remote.calls
    assert request.url == "https://example.com"
    assert request.schedule == "0 9 * * *"
    assert request.retention_days == 30
    out = capsys.readouterr().out
    assert "Schedule created!" in out
    assert "2024-05-02T09:00:00Z" in out


def test_schedule_create_rejects_out_of_range_retention(remote, capsys):
    code = run("schedule", "create", "example.com", "--name", "x", "--cron", "* * * * *", "--retention-days", "400")
    assert code == 1
    assert "--retention-days must be between 1 and 365" in capsys.readouterr().err
    assert remote.calls == []


def test_schedule_update_needs_a_change(remote, capsys):
    assert run("schedule", "update", "sch_1") == 1
    assert "Nothing to update" in capsys.readouterr().err
    assert remote.calls == []

    assert run("schedule", "update", "sch_1", "--cron", "@hourly") == 0
    assert remote.calls[0][1].to_payload() == {"schedule": "@hourly"}


def test_schedule_list_marks_paused_schedules(remote, capsys):
    assert run("schedule", "list") == 0
    out = capsys.readouterr().out
    assert "Homepage" in out
    assert "Status: PAUSED" in out
    assert "0 total (0 success, 0 failed)" in out


@pytest.mark.parametrize("action, verb", [("pause", "paused"), ("resume", "resumed"), ("trigger", "triggered")])
def test_schedule_actions(remote, capsys, action, verb):
    assert run("schedule", action, "sch_1") == 0
    assert remote.calls == [(action, "sch_1")]
    assert f"Schedule Homepage {verb}" in capsys.readouterr().out


def test_schedule_history_lists_executions(remote, capsys):
    assert run("schedule", "history", "sch_1", "--limit", "5") == 0
    assert remote.calls == [("history", 5)]
    out = capsys.readouterr().out
    assert "(2 total)" in out
    assert "Render time: 1.5s" in out
    assert "Error: Timeout" in out


def test_schedule_delete(remote, capsys):
    assert run("schedule", "delete", "sch_1") == 0
    assert remote.calls == [("delete", "sch_1")]
    assert "Schedule sch_1 deleted" in capsys.readouterr().out


def test_usage_json_is_machine_readable(remote, capsys):
    assert run("usage", "--format", "json") == 0
    data = json.loads(capsys.readouterr().out)
    assert data["tier"] == "pro"
    assert data["currentPeriod"]["screenshotsCount"] == 0


def test_usage_quota_only(remote, capsys):
    assert run("usage", "--quota-only") == 0
    assert remote.calls == [("quota", None)]
    assert "Quota Status" in capsys.readouterr().out


def test_usage_table(remote, capsys):
    assert run("usage", "--format", "table") == 0
    assert "API Usage" in capsys.readouterr().out
