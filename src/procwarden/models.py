"""Data models for procwarden."""

from dataclasses import dataclass
from enum import Enum

UNAVAILABLE = "N/A"


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable point-in-time snapshot of one process.

    Fields may be stale by the time an action runs on them: the pid can be
    reused and the binary replaced between lookup and action.
    """

    pid: int
    exe: str
    root: str
    cwd: str
    cmdline: str  # raw NUL-joined argument vector
    environ: str  # raw NUL-joined environment, never decomposed

    def __str__(self) -> str:
        return f"{self.pid} | {self.exe} | {self.root} | {self.cwd} | {self.cmdline}"


@dataclass(slots=True, frozen=True)
class ActionOutcome:
    """Result of one corrective step."""

    success: bool
    diagnostic: str | None = None

    @classmethod
    def ok(cls) -> "ActionOutcome":
        return cls(success=True)

    @classmethod
    def failed(cls, diagnostic: str) -> "ActionOutcome":
        return cls(success=False, diagnostic=diagnostic)

    def __bool__(self) -> bool:
        return self.success


@dataclass(slots=True, frozen=True)
class QuarantineOutcome:
    """Per-step result of a quarantine: the move and the permission change."""

    move: ActionOutcome
    chmod: ActionOutcome

    @property
    def success(self) -> bool:
        return self.move.success and self.chmod.success

    @property
    def diagnostics(self) -> list[str]:
        return [o.diagnostic for o in (self.move, self.chmod) if o.diagnostic]

    def __bool__(self) -> bool:
        return self.success


class ActionKind(Enum):
    """Corrective actions that can be requested on a process."""

    TERMINATE = "terminate"
    QUARANTINE = "quarantine"


@dataclass(slots=True, frozen=True)
class ActionRequest:
    """A corrective action awaiting a human decision."""

    kind: ActionKind
    record: ProcessRecord

    def describe(self) -> str:
        if self.kind is ActionKind.TERMINATE:
            return f"Terminate PID {self.record.pid}?"
        return f"Quarantine {self.record.exe}?"
