"""procwarden - Textual inspector for a single process."""

import logging

import typer
from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.logging import TextualHandler
from textual.widgets import DataTable, Footer, Log, Static

from procwarden.actuator import ProcessActuator, default_actuator
from procwarden.config import settings
from procwarden.errors import LocateError
from procwarden.evidence import fingerprint
from procwarden.locator import ProcessLocator, default_locator, locate
from procwarden.models import ActionKind, ActionRequest, ProcessRecord, UNAVAILABLE


def format_args(raw: str, width: int | None = None) -> str:
    """Render a NUL-joined argument vector as a space-separated line."""
    text = " ".join(part for part in raw.split("\0") if part)
    if width is not None and len(text) > width:
        return text[: width - 1] + "…"
    return text


class StatusLine(Static):
    """One-line summary of the inspected process and any pending action."""

    DEFAULT_CSS = """
    StatusLine {
        height: auto;
        padding: 0 1;
        background: $surface;
    }
    """

    def show(self, text: str) -> None:
        """Replace the status text."""
        self.update(text)


class RecordTable(Container):
    """Container for the field/value table of one ProcessRecord."""

    DEFAULT_CSS = """
    RecordTable {
        height: auto;
        border: solid $primary;
    }
    """

    FIELDS = ("pid", "exe", "root", "cwd", "cmdline", "sha1")

    def __init__(self, *args, **kwargs) -> None:
        """Initialize RecordTable."""
        super().__init__(*args, **kwargs)
        self._record: ProcessRecord | None = None

    @property
    def record(self) -> ProcessRecord | None:
        """The record currently displayed, if any."""
        return self._record

    def compose(self) -> ComposeResult:
        """Compose the record table."""
        yield DataTable(id="record-table", show_cursor=False)

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        self._table()

    def _table(self) -> DataTable:
        """The record table, with its columns and one row per field."""
        table = self.query_one("#record-table", DataTable)
        if not table.columns:
            table.add_column("Field", key="field", width=8)
            table.add_column("Value", key="value")
            for name in self.FIELDS:
                table.add_row(name, "", key=name)
        return table

    def update_record(self, record: ProcessRecord, sha1: str | None = None) -> None:
        """Show ``record``; the environment is never displayed."""
        self._record = record
        values = {
            "pid": str(record.pid),
            "exe": record.exe,
            "root": record.root,
            "cwd": record.cwd,
            "cmdline": format_args(record.cmdline, width=200),
            "sha1": sha1 or UNAVAILABLE,
        }
        self._fill(values)

    def clear_record(self) -> None:
        """Blank every value after a failed lookup."""
        self._record = None
        self._fill({name: "" for name in self.FIELDS})

    def _fill(self, values: dict[str, str]) -> None:
        table = self._table()
        for name, value in values.items():
            table.update_cell(name, "value", value)


class InspectorApp(App):
    """Shows one process and offers terminate and quarantine actions."""

    TITLE = "procwarden"
    SUB_TITLE = "Process Inspector"

    CSS = """
    Screen {
        layout: vertical;
    }

    #status-line {
        dock: top;
    }

    #outcome-log {
        height: 1fr;
        border: solid $secondary;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "reload", "Reload"),
        ("k", "terminate", "Kill"),
        ("x", "quarantine", "Quarantine"),
        ("y", "confirm", "Confirm"),
        ("n", "cancel", "Cancel"),
    ]

    def __init__(
        self,
        pid: int,
        locator: ProcessLocator | None = None,
        actuator: ProcessActuator | None = None,
    ) -> None:
        """Initialize the InspectorApp for ``pid``."""
        super().__init__()
        self._pid = pid
        self._locator = locator if locator is not None else default_locator()
        self._actuator = actuator if actuator is not None else default_actuator()
        self._pending: ActionRequest | None = None
        self.history: list[str] = []

    @property
    def pending(self) -> ActionRequest | None:
        """The action waiting for confirmation, if any."""
        return self._pending

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield StatusLine(id="status-line")
        yield RecordTable()
        yield Log(id="outcome-log")
        yield Footer()

    def on_mount(self) -> None:
        """Look the process up as soon as the app is mounted."""
        self.action_reload()

    def _write(self, message: str) -> None:
        self.history.append(message)
        self.query_one("#outcome-log", Log).write_line(message)

    def _status(self, text: str) -> None:
        self.query_one("#status-line", StatusLine).show(text)

    def action_reload(self) -> None:
        """Take a fresh snapshot of the process."""
        self._pending = None
        self._status(f"PID {self._pid}: looking up...")
        self._lookup()

    @work(thread=True, exclusive=True, group="lookup")
    def _lookup(self) -> None:
        """Locate and fingerprint the process off the UI thread."""
        try:
            record = self._locator.locate(self._pid)
        except LocateError as e:
            self.call_from_thread(self._show_failure, str(e))
            return
        self.call_from_thread(self._show_record, record, fingerprint(record))

    def _show_record(self, record: ProcessRecord, sha1: str | None) -> None:
        self.query_one(RecordTable).update_record(record, sha1)
        self._status(f"PID {record.pid}: {record.exe}")
        self._write(f"located {record}".replace("\0", " "))

    def _show_failure(self, message: str) -> None:
        self.query_one(RecordTable).clear_record()
        self._status(f"PID {self._pid}: lookup failed")
        self._write(message)

    def _request(self, kind: ActionKind) -> None:
        record = self.query_one(RecordTable).record
        if record is None:
            self.notify("No record to act on", severity="warning")
            return
        self._pending = ActionRequest(kind=kind, record=record)
        self._status(f"{self._pending.describe()} (y/n)")

    def action_terminate(self) -> None:
        """Ask for confirmation to kill the process."""
        self._request(ActionKind.TERMINATE)

    def action_quarantine(self) -> None:
        """Ask for confirmation to quarantine the executable."""
        self._request(ActionKind.QUARANTINE)

    def action_confirm(self) -> None:
        """Run the pending action."""
        request = self._pending
        if request is None:
            return
        self._pending = None
        self._status(f"{request.kind.value} PID {request.record.pid}: running...")
        self._run_action(request)

    @work(thread=True, group="action")
    def _run_action(self, request: ActionRequest) -> None:
        """Run a confirmed action off the UI thread; kill and mv can block."""
        if request.kind is ActionKind.TERMINATE:
            outcome = self._actuator.terminate(request.record)
            messages = [
                f"terminate PID {request.record.pid}: "
                + ("ok" if outcome.success else outcome.diagnostic)
            ]
        else:
            result = self._actuator.quarantine(request.record)
            messages = [
                "quarantine move: " + ("ok" if result.move.success else result.move.diagnostic),
                "quarantine chmod: " + ("ok" if result.chmod.success else result.chmod.diagnostic),
            ]
        self.call_from_thread(self._show_outcome, request, messages)

    def _show_outcome(self, request: ActionRequest, messages: list[str]) -> None:
        for message in messages:
            self._write(message)
        self._status(f"PID {request.record.pid}: {request.record.exe}")

    def action_cancel(self) -> None:
        """Drop the pending action."""
        request = self._pending
        if request is None:
            return
        self._pending = None
        self._write(f"cancelled: {request.describe()}")
        self._status(f"PID {request.record.pid}: {request.record.exe}")

    def action_quit(self) -> None:
        """Handle quit action."""
        self.exit()


cli = typer.Typer(
    name="procwarden",
    help="Inspect a process, then terminate it or quarantine its executable.",
    add_completion=False,
)


@cli.command()
def inspect(
    pid: int = typer.Argument(help="Process id to inspect"),
    print_only: bool = typer.Option(
        False, "--print", help="Print the record on one line instead of opening the inspector"
    ),
) -> None:
    """Inspect PID."""
    if print_only:
        logging.basicConfig(level=settings.log_level)
        try:
            record = locate(pid)
        except LocateError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(1)
        typer.echo(str(record))
        return

    logging.basicConfig(level=settings.log_level, handlers=[TextualHandler()])
    InspectorApp(pid).run()


def main() -> None:
    """Entry point for procwarden."""
    cli()


if __name__ == "__main__":
    main()
