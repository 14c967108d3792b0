"""
pman - Plugin lifecycle manager for Lua-scripted editors.

This is the main package that exports the public API for pman.
"""

__version__ = "0.1.0"

from pman.errors import (
    ExecutionFailure,
    InvalidInputError,
    LoadFailure,
    NotFoundError,
    PluginError,
    TransactionAlreadyOpenError,
)
from pman.host import (
    AsyncioScheduler,
    CommandExecutor,
    RecordingExecutor,
    Scheduler,
    TickScheduler,
)
from pman.plugin.applier import ApplyOutcome, ApplyStatus, RetryToken
from pman.plugin.installer import BatchReport
from pman.plugin.manager import PluginManager
from pman.plugin.registry import Plugin, PluginRegistry

__all__ = [
    "__version__",
    "ApplyOutcome",
    "ApplyStatus",
    "AsyncioScheduler",
    "BatchReport",
    "CommandExecutor",
    "ExecutionFailure",
    "InvalidInputError",
    "LoadFailure",
    "NotFoundError",
    "Plugin",
    "PluginError",
    "PluginManager",
    "PluginRegistry",
    "RecordingExecutor",
    "RetryToken",
    "Scheduler",
    "TickScheduler",
    "TransactionAlreadyOpenError",
]
