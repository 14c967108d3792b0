"""
Host Collaborators.

This module defines the two seams through which pman talks to the host:

- CommandExecutor: runs one opaque command string, reports success/failure
- Scheduler: defers a callback to a later tick of the host loop

Concrete implementations provided here:
- RecordingExecutor: keeps every command, optionally failing some of them
- TickScheduler: explicit single-threaded queue drained by run_pending()
- AsyncioScheduler: defers onto a running asyncio event loop
"""

import asyncio
import logging
from collections import deque
from collections.abc import Callable
from typing import Protocol, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandExecutor(Protocol):
    """Anything that can run a host command and say whether it worked."""

    def execute(self, command: str) -> bool: ...


@runtime_checkable
class Scheduler(Protocol):
    """Anything that can run a callback after the current tick."""

    def defer(self, callback: Callable[[], None]) -> None: ...


class RecordingExecutor:
    """
    Executor that records commands instead of sending them anywhere.

    Used to capture a host bootstrap script and as a test double.

    Args:
        fail_when: Optional predicate; commands for which it returns True
            are recorded and reported as failed
    """

    def __init__(self, fail_when: Callable[[str], bool] | None = None):
        self.commands: list[str] = []
        self.failed: list[str] = []
        self._succeeded: list[str] = []
        self._fail_when = fail_when

    def execute(self, command: str) -> bool:
        self.commands.append(command)
        if self._fail_when is not None and self._fail_when(command):
            self.failed.append(command)
            logger.debug("Command failed: %s", command)
            return False
        self._succeeded.append(command)
        logger.debug("Command ok: %s", command)
        return True

    def script(self) -> str:
        """Return successful commands as one newline-separated script."""
        return "\n".join(self._succeeded) + "\n"


class TickScheduler:
    """
    Cooperative scheduler driven by the caller's loop.

    Callbacks deferred while run_pending() is draining the queue are
    held for the following tick, never run in the same pass.
    """

    def __init__(self):
        self._queue: deque[Callable[[], None]] = deque()

    def defer(self, callback: Callable[[], None]) -> None:
        self._queue.append(callback)

    def pending(self) -> int:
        """Number of callbacks waiting for the next tick."""
        return len(self._queue)

    def run_pending(self) -> int:
        """
        Run one tick: every callback queued before this call.

        Returns:
            Number of callbacks executed
        """
        batch = list(self._queue)
        self._queue.clear()

        for callback in batch:
            callback()

        return len(batch)


class AsyncioScheduler:
    """Scheduler that defers callbacks onto an asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None):
        self._loop = loop

    def defer(self, callback: Callable[[], None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        loop.call_soon(callback)
