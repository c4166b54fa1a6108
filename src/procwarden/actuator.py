"""Corrective actions on a located process: terminate and quarantine.

Actions work from a record taken at lookup time and do not re-verify it.
If the pid was reused or the binary replaced in the meantime, the action
lands on whatever now occupies that pid or path.

Failures are logged and returned, never raised: whether a failed action
should stop the host tool is the caller's decision.
"""

import logging
from pathlib import Path
from typing import Callable, Sequence

from procwarden import gateway
from procwarden.config import settings
from procwarden.errors import CommandSpawnError, UnsupportedPlatformError
from procwarden.locator import PLATFORM
from procwarden.models import UNAVAILABLE, ActionOutcome, ProcessRecord, QuarantineOutcome

_logger = logging.getLogger(__name__)

StatusRunner = Callable[[str, Sequence[str]], int]


class PosixCommands:
    """kill(1), mv(1) and chmod(1) invocations."""

    def __init__(self, mode: str = "444") -> None:
        self.mode = mode

    def kill(self, pid: int) -> list[str]:
        return ["kill", "-9", str(pid)]

    def move(self, exe: str, dest: Path) -> list[str]:
        return ["mv", exe, str(dest)]

    def strip(self, exe: str) -> list[str]:
        return ["chmod", self.mode, exe]


class WindowsCommands:
    """taskkill, cmd's move builtin, and an icacls deny entry for Everyone."""

    def kill(self, pid: int) -> list[str]:
        return ["taskkill", "/PID", str(pid), "/F"]

    def move(self, exe: str, dest: Path) -> list[str]:
        return ["cmd", "/c", "move", "/Y", exe, str(dest)]

    def strip(self, exe: str) -> list[str]:
        return ["icacls", exe, "/deny", "*S-1-1-0:(W,X)"]


class ProcessActuator:
    """Runs terminate and quarantine against a ProcessRecord."""

    def __init__(
        self,
        commands: PosixCommands | WindowsCommands,
        quarantine_dir: Path | str = Path("quarantine"),
        runner: StatusRunner | None = None,
    ) -> None:
        self._commands = commands
        self._quarantine_dir = Path(quarantine_dir)
        self._run = runner if runner is not None else gateway.run_status

    @property
    def quarantine_dir(self) -> Path:
        return self._quarantine_dir

    def terminate(self, record: ProcessRecord) -> ActionOutcome:
        """Force-kill the recorded pid."""
        if self._execute(self._commands.kill(record.pid)):
            _logger.info("terminated PID %d", record.pid)
            return ActionOutcome.ok()
        return self._fail(f"Failed to terminate PID {record.pid}")

    def quarantine(self, record: ProcessRecord) -> QuarantineOutcome:
        """
        Move the executable into the quarantine directory and strip
        write/execute permission from its original path.

        Both steps always run, and the permission step targets the original
        path even when the move failed. Nothing is rolled back.
        """
        exe = record.exe
        if not exe or exe == UNAVAILABLE:
            reason = f"executable path of PID {record.pid} is unavailable"
            return QuarantineOutcome(
                move=self._fail(f"Failed to move exe: {reason}"),
                chmod=self._fail(f"Failed to chmod exe: {reason}"),
            )

        if self._execute(self._commands.move(exe, self._quarantine_dir)):
            _logger.info("moved %s to %s", exe, self._quarantine_dir)
            move = ActionOutcome.ok()
        else:
            move = self._fail(f"Failed to move exe {exe}")

        if self._execute(self._commands.strip(exe)):
            _logger.info("stripped write/execute permission from %s", exe)
            chmod = ActionOutcome.ok()
        else:
            chmod = self._fail(f"Failed to chmod exe {exe}")

        return QuarantineOutcome(move=move, chmod=chmod)

    def _execute(self, argv: list[str]) -> bool:
        try:
            return self._run(argv[0], argv[1:]) == 0
        except CommandSpawnError as e:
            _logger.error("%s", e)
            return False

    def _fail(self, diagnostic: str) -> ActionOutcome:
        _logger.error(diagnostic)
        return ActionOutcome.failed(diagnostic)


def default_actuator() -> ProcessActuator:
    """Actuator using the commands of the operating system family in use."""
    if PLATFORM in ("linux", "freebsd"):
        commands = PosixCommands(settings.quarantine_mode)
    elif PLATFORM == "windows":
        commands = WindowsCommands()
    else:
        raise UnsupportedPlatformError("process actions are not supported on this platform")
    return ProcessActuator(commands, settings.quarantine_dir)
