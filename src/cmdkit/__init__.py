"""cmdkit - validated shell command tasks with recorded execution history."""

# Core framework
from cmdkit.core import (
    Base,
    BaseManager,
    BaseRepository,
    Database,
    Entity,
    EntityIn,
    EntityOut,
    Manager,
    Repository,
    ULIDType,
    UTCDateTime,
)

# Task feature
from cmdkit.modules.task import (
    CommandExecutionError,
    CommandExecutor,
    CommandValidationError,
    CommandValidator,
    ExecutionErrorKind,
    ExecutionOutcome,
    ExecutionRecorder,
    ExecutionSettings,
    Task,
    TaskExecution,
    TaskExecutionOut,
    TaskIn,
    TaskManager,
    TaskOut,
    TaskRepository,
    ViolationKind,
)

__version__ = "0.1.0"

__all__ = [
    # Core framework
    "Database",
    "Repository",
    "BaseRepository",
    "Manager",
    "BaseManager",
    "Base",
    "Entity",
    "ULIDType",
    "UTCDateTime",
    "EntityIn",
    "EntityOut",
    # Task feature
    "Task",
    "TaskExecution",
    "TaskIn",
    "TaskOut",
    "TaskExecutionOut",
    "TaskRepository",
    "TaskManager",
    "CommandValidator",
    "CommandExecutor",
    "ExecutionRecorder",
    "ExecutionOutcome",
    "ExecutionSettings",
    "ViolationKind",
    "ExecutionErrorKind",
    "CommandValidationError",
    "CommandExecutionError",
    # Version
    "__version__",
]
