"""Tests for the procwarden inspector application."""

import threading

import pytest
from textual.widgets import DataTable
from typer.testing import CliRunner

from procwarden import app as app_module
from procwarden.actuator import PosixCommands, ProcessActuator
from procwarden.app import InspectorApp, RecordTable, cli, format_args
from procwarden.errors import ProcessNotFoundError
from procwarden.locator import ProcessLocator
from procwarden.models import ActionKind, ProcessRecord

RECORD = ProcessRecord(
    pid=1234,
    exe="/tmp/evil",
    root="/",
    cwd="/tmp",
    cmdline="evil\0--flag\0",
    environ="SECRET=hunter2\0",
)


class FakeLocator(ProcessLocator):
    """Returns RECORD for pid 1234, fails for anything else."""

    def __init__(self) -> None:
        self.calls = 0

    def _locate(self, pid: int) -> ProcessRecord:
        self.calls += 1
        if pid != RECORD.pid:
            raise ProcessNotFoundError(pid, "does not exist")
        return RECORD


class FakeStatusRunner:
    def __init__(self, **statuses: int) -> None:
        self._statuses = statuses
        self.calls: list[list[str]] = []

    def __call__(self, program, args):
        self.calls.append([program, *args])
        return self._statuses.get(program, 0)


async def settle(pilot) -> None:
    """Wait for lookup and action workers to finish and their UI updates to land."""
    await pilot.app.workers.wait_for_complete()
    await pilot.pause()


def make_app(pid: int = 1234, **statuses: int) -> tuple[InspectorApp, FakeStatusRunner]:
    runner = FakeStatusRunner(**statuses)
    actuator = ProcessActuator(PosixCommands(), "quarantine", runner=runner)
    return InspectorApp(pid, locator=FakeLocator(), actuator=actuator), runner


def test_format_args_joins_on_nul():
    """Test NUL separators are rendered as spaces."""
    assert format_args("evil\0--flag\0") == "evil --flag"


def test_format_args_truncates():
    """Test long argument lines are cut to width."""
    result = format_args("a" * 50 + "\0", width=10)
    assert len(result) == 10
    assert result.endswith("…")


def test_format_args_empty():
    """Test an empty argument vector renders as nothing."""
    assert format_args("") == ""


@pytest.mark.asyncio
async def test_app_creation():
    """Test InspectorApp can be instantiated."""
    app, _ = make_app()
    assert app.title == "procwarden"
    assert app.sub_title == "Process Inspector"
    assert app.pending is None


@pytest.mark.asyncio
async def test_app_shows_record_on_mount():
    """Test the record is located and displayed when the app starts."""
    app, _ = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        table = pilot.app.query_one("#record-table", DataTable)
        assert table.get_cell("pid", "value") == "1234"
        assert table.get_cell("exe", "value") == "/tmp/evil"
        assert table.get_cell("cmdline", "value") == "evil --flag"
        assert pilot.app.query_one(RecordTable).record == RECORD


@pytest.mark.asyncio
async def test_app_never_shows_environment():
    """Test the environment dump stays out of the display and log."""
    app, _ = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        assert not any("hunter2" in line for line in app.history)


@pytest.mark.asyncio
async def test_app_lookup_failure_is_displayed():
    """Test a failed lookup is reported without crashing the app."""
    app, _ = make_app(pid=99999)
    async with app.run_test() as pilot:
        await settle(pilot)
        assert pilot.app.query_one(RecordTable).record is None
        assert any("99999" in line for line in app.history)


@pytest.mark.asyncio
async def test_terminate_requires_confirmation():
    """Test 'k' only records a pending request; 'y' runs it."""
    app, runner = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        await pilot.press("k")
        assert app.pending is not None
        assert app.pending.kind is ActionKind.TERMINATE
        assert runner.calls == []

        await pilot.press("y")
        await settle(pilot)
        assert app.pending is None
        assert runner.calls == [["kill", "-9", "1234"]]
        assert app.history[-1] == "terminate PID 1234: ok"


@pytest.mark.asyncio
async def test_cancel_drops_pending_action():
    """Test 'n' discards the request without running it."""
    app, runner = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        await pilot.press("x")
        assert app.pending.kind is ActionKind.QUARANTINE

        await pilot.press("n")
        assert app.pending is None
        assert runner.calls == []


@pytest.mark.asyncio
async def test_quarantine_reports_each_step():
    """Test both quarantine steps are reported separately."""
    app, runner = make_app(mv=0, chmod=1)
    async with app.run_test() as pilot:
        await settle(pilot)
        await pilot.press("x")
        await pilot.press("y")
        await settle(pilot)

        assert runner.calls == [
            ["mv", "/tmp/evil", "quarantine"],
            ["chmod", "444", "/tmp/evil"],
        ]
        assert "quarantine move: ok" in app.history
        assert "quarantine chmod: Failed to chmod exe /tmp/evil" in app.history


@pytest.mark.asyncio
async def test_no_action_without_record():
    """Test actions are refused when the lookup failed."""
    app, runner = make_app(pid=99999)
    async with app.run_test() as pilot:
        await settle(pilot)
        await pilot.press("k")
        await pilot.press("y")
        await settle(pilot)
        assert app.pending is None
        assert runner.calls == []


@pytest.mark.asyncio
async def test_reload_locates_again():
    """Test 'r' takes a fresh snapshot."""
    app, _ = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        before = app._locator.calls
        await pilot.press("r")
        await settle(pilot)
        assert app._locator.calls == before + 1


@pytest.mark.asyncio
async def test_app_quit_binding():
    """Test that 'q' binding triggers quit."""
    app, _ = make_app()
    async with app.run_test() as pilot:
        await settle(pilot)
        await pilot.press("q")
        assert pilot.app._exit


def test_cli_print(monkeypatch):
    """Test --print writes the pipe-delimited record."""
    monkeypatch.setattr(app_module, "locate", FakeLocator().locate)

    result = CliRunner().invoke(cli, ["1234", "--print"])

    assert result.exit_code == 0
    assert "1234 | /tmp/evil | / | /tmp | evil" in result.output


def test_cli_print_lookup_failure(monkeypatch):
    """Test --print exits non-zero when the lookup fails."""
    monkeypatch.setattr(app_module, "locate", FakeLocator().locate)

    result = CliRunner().invoke(cli, ["99999", "--print"])

    assert result.exit_code == 1


class BlockingLocator(FakeLocator):
    """A locator whose lookup hangs until released, like a stuck procstat."""

    def __init__(self) -> None:
        super().__init__()
        self.release = threading.Event()

    def _locate(self, pid: int) -> ProcessRecord:
        self.release.wait(timeout=10)
        return super()._locate(pid)


@pytest.mark.asyncio
async def test_slow_lookup_keeps_ui_responsive():
    """Test key bindings are handled while a lookup is still running."""
    slow = BlockingLocator()
    runner = FakeStatusRunner()
    actuator = ProcessActuator(PosixCommands(), "quarantine", runner=runner)
    app = InspectorApp(1234, locator=slow, actuator=actuator)
    async with app.run_test() as pilot:
        try:
            await pilot.press("k")
            assert app.pending is None
            assert pilot.app.query_one(RecordTable).record is None
        finally:
            slow.release.set()
        await settle(pilot)
        assert pilot.app.query_one(RecordTable).record == RECORD
