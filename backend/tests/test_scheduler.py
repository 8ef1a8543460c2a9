"""Tests for deadline timers and delayed steps."""

import pytest

from facilitator.engine.scheduler import DeadlineAlreadyArmed, StageScheduler

from conftest import settle


def _recorder(log, label):
    async def callback():
        log.append(label)
    return callback


class TestDeadlines:
    """At most one deadline per key, fired once."""

    @pytest.mark.asyncio
    async def test_fires_once_at_horizon(self, clock):
        """A deadline fires exactly once at its horizon."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []
        scheduler.arm("c1", 300, _recorder(fired, "deadline"))

        await clock.advance(299)
        assert fired == []
        await clock.advance(1)
        assert fired == ["deadline"]
        assert not scheduler.is_armed("c1")

        await clock.advance(1000)
        assert fired == ["deadline"]

    @pytest.mark.asyncio
    async def test_arming_twice_raises(self, clock):
        """A key holds at most one deadline."""
        scheduler = StageScheduler(sleep=clock.sleep)
        scheduler.arm("c1", 300, _recorder([], "x"))
        with pytest.raises(DeadlineAlreadyArmed):
            scheduler.arm("c1", 300, _recorder([], "y"))
        await scheduler.shutdown()

    @pytest.mark.asyncio
    async def test_cancel_prevents_firing_and_is_idempotent(self, clock):
        """Cancelled deadlines never fire and a second cancel is harmless."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []
        scheduler.arm("c1", 300, _recorder(fired, "deadline"))
        await settle()

        assert scheduler.cancel("c1") is True
        assert scheduler.cancel("c1") is False
        await clock.advance(400)
        assert fired == []

    @pytest.mark.asyncio
    async def test_keys_are_independent(self, clock):
        """Cancelling one key leaves the others armed."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []
        scheduler.arm("c1", 100, _recorder(fired, "c1"))
        scheduler.arm("c2", 200, _recorder(fired, "c2"))
        scheduler.cancel("c1")

        await clock.advance(200)
        assert fired == ["c2"]

    @pytest.mark.asyncio
    async def test_handler_may_rearm_same_key(self, clock):
        """The firing handler may arm the next deadline."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []

        async def rearm():
            fired.append(clock.now)
            if len(fired) < 2:
                scheduler.arm("c1", 50, rearm)

        scheduler.arm("c1", 50, rearm)
        await clock.advance(100)
        assert fired == [50, 100]

    @pytest.mark.asyncio
    async def test_failing_callback_is_contained(self, clock):
        """An exception in a callback is logged, not raised."""
        scheduler = StageScheduler(sleep=clock.sleep)

        async def boom():
            raise RuntimeError("boom")

        task = scheduler.arm("c1", 10, boom)
        await clock.advance(10)
        assert task.done() and task.exception() is None


class TestDeferred:
    """Short delayed steps tracked per key."""

    @pytest.mark.asyncio
    async def test_defer_runs_after_delay(self, clock):
        """Delayed steps run after their delay and are then forgotten."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []
        scheduler.defer("c1", 5, _recorder(fired, "step"))
        await settle()
        assert scheduler.pending("c1") == 1

        await clock.advance(5)
        assert fired == ["step"]
        assert scheduler.pending("c1") == 0

    @pytest.mark.asyncio
    async def test_cancel_all_drops_deadline_and_steps(self, clock):
        """cancel_all clears one key and leaves other keys alone."""
        scheduler = StageScheduler(sleep=clock.sleep)
        fired = []
        scheduler.arm("c1", 300, _recorder(fired, "deadline"))
        scheduler.defer("c1", 5, _recorder(fired, "step"))
        scheduler.defer("c2", 5, _recorder(fired, "other"))
        await settle()

        scheduler.cancel_all("c1")
        await clock.advance(400)
        assert fired == ["other"]
        assert not scheduler.is_armed("c1")
