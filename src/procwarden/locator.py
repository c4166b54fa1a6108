"""Process lookup: turn a pid into a ProcessRecord.

Each operating system family exposes process metadata through a different
transport, so there is one locator per family behind a common interface.
The family is fixed when this module is imported; callers never see which
strategy ran.

A lookup is all-or-nothing: if any facet cannot be read the whole lookup
fails with a LocateError and no partial record escapes.
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Sequence

import psutil

from procwarden import gateway, parser
from procwarden.config import settings
from procwarden.errors import (
    AccessDeniedError,
    CommandSpawnError,
    LocateError,
    MalformedOutputError,
    ProcessNotFoundError,
    ToolFailedError,
    UnsupportedPlatformError,
)
from procwarden.gateway import CommandResult
from procwarden.models import UNAVAILABLE, ProcessRecord

_logger = logging.getLogger(__name__)

Runner = Callable[[str, Sequence[str]], CommandResult]


class ProcessLocator(ABC):
    """Produces a normalized record for a pid."""

    def locate(self, pid: int) -> ProcessRecord:
        """
        Look up ``pid``.

        Raises:
            LocateError: The process could not be fully described.
        """
        try:
            return self._locate(pid)
        except LocateError as e:
            _logger.warning("lookup failed: %s", e)
            raise

    @abstractmethod
    def _locate(self, pid: int) -> ProcessRecord:
        ...


class ProcfsLocator(ProcessLocator):
    """Reads the Linux /proc pseudo-filesystem directly."""

    def __init__(self, proc_root: Path | str = Path("/proc")) -> None:
        self._proc_root = Path(proc_root)

    def _locate(self, pid: int) -> ProcessRecord:
        # Every facet is read relative to one open directory handle, so a pid
        # that exits and is reused mid-lookup fails instead of mixing processes.
        base = self._proc_root / str(pid)
        try:
            dir_fd = os.open(base, os.O_RDONLY | os.O_DIRECTORY)
        except OSError as e:
            raise _os_error(pid, base, e) from e
        try:
            return ProcessRecord(
                pid=pid,
                exe=self._read_link(pid, base, "exe", dir_fd),
                root=self._read_link(pid, base, "root", dir_fd),
                cwd=self._read_link(pid, base, "cwd", dir_fd),
                cmdline=self._read_file(pid, base, "cmdline", dir_fd),
                environ=self._read_file(pid, base, "environ", dir_fd),
            )
        finally:
            os.close(dir_fd)

    def _read_link(self, pid: int, base: Path, name: str, dir_fd: int) -> str:
        try:
            return os.readlink(name, dir_fd=dir_fd)
        except OSError as e:
            raise _os_error(pid, base / name, e) from e

    def _read_file(self, pid: int, base: Path, name: str, dir_fd: int) -> str:
        try:
            fd = os.open(name, os.O_RDONLY, dir_fd=dir_fd)
        except OSError as e:
            raise _os_error(pid, base / name, e) from e
        try:
            with open(fd, "rb") as f:
                return os.fsdecode(f.read())
        except OSError as e:
            raise _os_error(pid, base / name, e) from e


def _os_error(pid: int, path: Path, e: OSError) -> LocateError:
    if isinstance(e, (FileNotFoundError, ProcessLookupError)):
        return ProcessNotFoundError(pid, f"{path} does not exist")
    if isinstance(e, PermissionError):
        return AccessDeniedError(pid, f"permission denied reading {path}")
    return LocateError(pid, f"cannot read {path}: {e}")


class ProcstatLocator(ProcessLocator):
    """Queries the FreeBSD procstat(1) utility, one invocation per facet."""

    def __init__(self, procstat: str = "procstat", runner: Runner | None = None) -> None:
        self._procstat = procstat
        self._run = runner if runner is not None else gateway.run_output

    def _locate(self, pid: int) -> ProcessRecord:
        return ProcessRecord(
            pid=pid,
            exe=self._binary(pid),
            root=UNAVAILABLE,
            cwd=self._cwd(pid),
            cmdline=_nul_join(self._values(pid, "pargs")),
            environ=_nul_join(self._values(pid, "penv")),
        )

    def _query(self, pid: int, subcommand: str) -> list[str]:
        try:
            result = self._run(self._procstat, [subcommand, str(pid)])
        except CommandSpawnError as e:
            raise ToolFailedError(pid, str(e)) from e
        if not result.success:
            raise ToolFailedError(
                pid,
                f"{self._procstat} {subcommand} exited {result.returncode}: {result.stderr.strip()}",
            )
        return parser.split_lines(result.stdout)

    def _binary(self, pid: int) -> str:
        # "  PID COMM  OSREL PATH" header, then one row ending in the path.
        rows = parser.drop_header(self._query(pid, "-b"))
        path = parser.last_field(rows[0]) if rows else None
        if path is None:
            raise MalformedOutputError(pid, "procstat -b returned no binary path")
        return path

    def _cwd(self, pid: int) -> str:
        # Single "<pid>: <path>" line.
        lines = self._query(pid, "pwdx")
        pair = parser.split_label(lines[-1]) if lines else None
        if pair is None:
            raise MalformedOutputError(pid, "procstat pwdx returned no working directory")
        return pair[1]

    def _values(self, pid: int, subcommand: str) -> list[str]:
        # "<pid>: <comm>" header, then "argv[i]: value" / "envp[i]: value" lines.
        lines = parser.drop_header(self._query(pid, subcommand))
        return [value for _, value in parser.parse_pairs(lines)]


def _nul_join(values: list[str]) -> str:
    """Render a list the way /proc renders argv and environ."""
    return "".join(f"{v}\0" for v in values)


# Format-List wraps long values onto continuation lines at the console width;
# Out-String widens it so CommandLine stays on one line.
WMI_QUERY = (
    'Get-WmiObject Win32_Process -Filter "ProcessId = {pid}" '
    "| Select-Object ExecutablePath, CommandLine | Format-List | Out-String -Width 4096"
)


class WmiLocator(ProcessLocator):
    """Runs one privileged WMI query through PowerShell.

    Only the executable path and command line are available this way.
    """

    def __init__(self, powershell: str = "powershell", runner: Runner | None = None) -> None:
        self._powershell = powershell
        self._run = runner if runner is not None else gateway.run_output

    def _locate(self, pid: int) -> ProcessRecord:
        args = ["-ExecutionPolicy", "Bypass", WMI_QUERY.format(pid=pid)]
        try:
            result = self._run(self._powershell, args)
        except CommandSpawnError as e:
            raise ToolFailedError(pid, str(e)) from e
        if not result.success:
            raise ToolFailedError(
                pid, f"WMI query exited {result.returncode}: {result.stderr.strip()}"
            )

        fields: dict[str, str] = {}
        for label, value in parser.parse_pairs(parser.split_lines(result.stdout, "\r\n")):
            if label in ("ExecutablePath", "CommandLine"):
                fields[label] = value

        # An unmatched filter prints nothing and still exits 0.
        if "ExecutablePath" not in fields:
            raise ProcessNotFoundError(pid, "no Win32_Process matched")

        return ProcessRecord(
            pid=pid,
            exe=fields["ExecutablePath"] or UNAVAILABLE,
            root=UNAVAILABLE,
            cwd=UNAVAILABLE,
            cmdline=fields.get("CommandLine") or UNAVAILABLE,
            environ=UNAVAILABLE,
        )


if psutil.LINUX:
    PLATFORM = "linux"
elif psutil.FREEBSD:
    PLATFORM = "freebsd"
elif psutil.WINDOWS:
    PLATFORM = "windows"
else:
    PLATFORM = None


def default_locator() -> ProcessLocator:
    """Locator for the operating system family this module was imported on."""
    if PLATFORM == "linux":
        return ProcfsLocator(settings.proc_root)
    if PLATFORM == "freebsd":
        return ProcstatLocator(settings.procstat_bin)
    if PLATFORM == "windows":
        return WmiLocator(settings.powershell_bin)
    raise UnsupportedPlatformError("process lookup is not supported on this platform")


def locate(pid: int) -> ProcessRecord:
    """Look up ``pid`` with the platform locator."""
    return default_locator().locate(pid)
