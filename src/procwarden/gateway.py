"""Launch external programs with captured output.

Every caller owns its policy: the gateway never retries and never times out,
so a hung program blocks the caller until it exits.
"""

import logging
import subprocess
import sys
from dataclasses import dataclass
from typing import Sequence

from procwarden.errors import CommandSpawnError

_logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CommandResult:
    """Exit status and decoded output of a finished program."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


def spawn(program: str, args: Sequence[str], needs_stdin: bool = False) -> subprocess.Popen:
    """
    Start ``program`` with ``args``.

    stdout and stderr are always piped; stdin is piped only when
    ``needs_stdin`` is set, otherwise it is connected to the null device.

    Raises:
        CommandSpawnError: The program could not be launched.
    """
    argv = [program, *args]
    _logger.debug("spawning %s", argv)
    try:
        return subprocess.Popen(
            argv,
            stdin=subprocess.PIPE if needs_stdin else subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise CommandSpawnError(f"cannot run {program}: {e}") from e


def wait_status(handle: subprocess.Popen) -> int:
    """Wait for exit, discarding output, and return the exit status."""
    # Pipes must be drained or a chatty child blocks on a full buffer.
    handle.communicate()
    return handle.returncode


def wait_output(handle: subprocess.Popen) -> CommandResult:
    """Wait for exit and return the full output, decoded like file names."""
    stdout, stderr = handle.communicate()
    return CommandResult(
        returncode=handle.returncode,
        stdout=_decode(stdout),
        stderr=_decode(stderr),
    )


def _decode(data: bytes) -> str:
    # surrogateescape keeps undecodable bytes, so paths survive os.fsencode().
    return data.decode(sys.getfilesystemencoding(), "surrogateescape")


def run_status(program: str, args: Sequence[str]) -> int:
    """Spawn, wait, and return only the exit status."""
    with spawn(program, args) as handle:
        return wait_status(handle)


def run_output(program: str, args: Sequence[str]) -> CommandResult:
    """Spawn, wait, and return the exit status with captured output."""
    with spawn(program, args) as handle:
        return wait_output(handle)
