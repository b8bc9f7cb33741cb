"""Error taxonomy for command validation and execution."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ViolationKind(StrEnum):
    """Reason a command was rejected by the validator."""

    EMPTY_COMMAND = "empty_command"
    CONTROL_CHARACTER = "control_character"
    DENYLISTED_COMMAND = "denylisted_command"
    PATH_TRAVERSAL = "path_traversal"


class ExecutionErrorKind(StrEnum):
    """Reason a validated command failed to produce an execution record."""

    TIMEOUT = "timeout"
    SPAWN_FAILURE = "spawn_failure"
    RUNTIME_FAILURE = "runtime_failure"


@dataclass(frozen=True, slots=True)
class CommandViolation:
    """Result of a failed validation check."""

    kind: ViolationKind
    message: str
    match: str | None = None


class CommandValidationError(ValueError):
    """Raised when a command fails validation; no process is spawned."""

    def __init__(self, violation: CommandViolation) -> None:
        super().__init__(violation.message)
        self.violation = violation

    @property
    def kind(self) -> ViolationKind:
        return self.violation.kind


class CommandExecutionError(RuntimeError):
    """Raised when a spawned command times out or fails; no record is appended."""

    def __init__(self, kind: ExecutionErrorKind, message: str, *, error_type: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.error_type = error_type
