"""
Tests for Host Collaborators.

This test suite covers:
1. RecordingExecutor success/failure bookkeeping
2. TickScheduler tick semantics
3. AsyncioScheduler deferral onto a running loop
"""

import asyncio

from pman.host import (
    AsyncioScheduler,
    CommandExecutor,
    RecordingExecutor,
    Scheduler,
    TickScheduler,
)


class TestRecordingExecutor:
    """Test the recording executor."""

    def test_records_commands(self):
        executor = RecordingExecutor()

        assert executor.execute("packloadall") is True
        assert executor.commands == ["packloadall"]
        assert executor.failed == []

    def test_fail_predicate(self):
        executor = RecordingExecutor(fail_when=lambda c: c.startswith("bad"))

        assert executor.execute("bad command") is False
        assert executor.execute("good command") is True
        assert executor.failed == ["bad command"]
        assert executor.script() == "good command\n"

    def test_protocol(self):
        assert isinstance(RecordingExecutor(), CommandExecutor)


class TestTickScheduler:
    """Test cooperative tick scheduling."""

    def test_defer_runs_on_next_tick(self):
        scheduler = TickScheduler()
        calls = []

        scheduler.defer(lambda: calls.append("a"))

        assert calls == []
        assert scheduler.run_pending() == 1
        assert calls == ["a"]

    def test_nested_defer_waits_another_tick(self):
        """Callbacks deferred during a tick should run on the following tick."""
        scheduler = TickScheduler()
        calls = []

        def outer():
            calls.append("outer")
            scheduler.defer(lambda: calls.append("inner"))

        scheduler.defer(outer)
        scheduler.run_pending()

        assert calls == ["outer"]
        assert scheduler.pending() == 1

        scheduler.run_pending()
        assert calls == ["outer", "inner"]

    def test_protocol(self):
        assert isinstance(TickScheduler(), Scheduler)


class TestAsyncioScheduler:
    """Test asyncio-backed scheduling."""

    def test_defer_after_current_step(self):
        calls = []

        async def run():
            scheduler = AsyncioScheduler()
            scheduler.defer(lambda: calls.append("deferred"))
            calls.append("sync")
            await asyncio.sleep(0)

        asyncio.run(run())

        assert calls == ["sync", "deferred"]
