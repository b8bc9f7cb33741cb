"""Task feature - shell command tasks with validated, recorded execution."""

from .exceptions import (
    CommandExecutionError,
    CommandValidationError,
    CommandViolation,
    ExecutionErrorKind,
    ViolationKind,
)
from .executor import (
    CommandExecutor,
    ExecutionOutcome,
    ExecutionSettings,
    PosixShellAdapter,
    ShellAdapter,
    WindowsShellAdapter,
    select_shell_adapter,
)
from .manager import TaskManager
from .models import Task, TaskExecution
from .recorder import ExecutionRecorder
from .repository import TaskRepository
from .router import TaskRouter
from .schemas import TaskExecutionOut, TaskIn, TaskOut
from .validator import CommandValidator

__all__ = [
    "Task",
    "TaskExecution",
    "TaskIn",
    "TaskOut",
    "TaskExecutionOut",
    "TaskRepository",
    "TaskManager",
    "TaskRouter",
    "CommandValidator",
    "CommandExecutor",
    "ExecutionRecorder",
    "ExecutionOutcome",
    "ExecutionSettings",
    "ShellAdapter",
    "PosixShellAdapter",
    "WindowsShellAdapter",
    "select_shell_adapter",
    "CommandViolation",
    "ViolationKind",
    "ExecutionErrorKind",
    "CommandValidationError",
    "CommandExecutionError",
]
