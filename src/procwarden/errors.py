"""Exception hierarchy for procwarden."""


class ProcwardenError(Exception):
    """Base for all procwarden errors."""


class LocateError(ProcwardenError):
    """A process lookup failed; no record was produced."""

    def __init__(self, pid: int, message: str) -> None:
        super().__init__(f"PID {pid}: {message}")
        self.pid = pid


class ProcessNotFoundError(LocateError):
    """The process does not exist (or exited during the lookup)."""


class AccessDeniedError(LocateError):
    """The process exists but its metadata cannot be read."""


class ToolFailedError(LocateError):
    """An external diagnostic tool exited with a non-zero status."""


class MalformedOutputError(LocateError):
    """An external tool succeeded but its output could not be understood."""


class CommandSpawnError(ProcwardenError):
    """An external program could not be launched."""


class UnsupportedPlatformError(ProcwardenError):
    """No lookup strategy exists for this operating system family."""
