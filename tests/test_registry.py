"""Tests for asynclocks.registry (named locks)."""

import asyncio

import pytest

from asynclocks.execution import execute_sync
from asynclocks.lock import LockUsageError
from asynclocks.queue_policy import LockOptions, OverflowStrategy
from asynclocks.registry import LockRegistry, get_registry


class TestLookup:
    def test_lazy_creation(self):
        reg = LockRegistry()
        assert not reg.lock_exists("a")
        lk = reg.get("a")
        assert reg.lock_exists("a")
        assert reg.get("a") is lk
        assert len(reg) == 1
        assert "a" in reg

    def test_unknown_names(self):
        reg = LockRegistry()
        assert reg.is_locked("nope") is False
        assert reg.queue_size("nope") == 0
        assert reg.get_options("nope") is None
        # queries never create locks
        assert not reg.lock_exists("nope")

    def test_default_options_propagate(self):
        reg = LockRegistry(LockOptions(max_queue_size=2, overflow_strategy="last"))
        reg.get("a")
        opts = reg.get_options("a")
        assert opts.max_queue_size == 2
        assert opts.overflow_strategy is OverflowStrategy.last

    def test_locks_get_their_own_options(self):
        reg = LockRegistry()
        reg.get("a").options.max_queue_size = 1
        assert reg.get("b").options.max_queue_size is None
        assert reg.default_options.max_queue_size is None

    def test_get_options_returns_copy(self):
        reg = LockRegistry()
        reg.get("a")
        reg.get_options("a").max_queue_size = 7
        assert reg.get_options("a").max_queue_size is None

    def test_set_options_creates_lock(self):
        reg = LockRegistry()
        reg.set_options("a", max_queue_size=4)
        assert reg.lock_exists("a")
        assert reg.get_options("a").max_queue_size == 4
        assert reg.get_options("a").overflow_strategy is OverflowStrategy.this

    def test_set_options_validates(self):
        reg = LockRegistry()
        with pytest.raises(ValueError):
            reg.set_options("a", overflow_strategy="middle")

    def test_clear(self):
        reg = LockRegistry()
        reg.get("a")
        reg.clear()
        assert not reg.lock_exists("a")

    def test_process_wide_registry(self):
        assert get_registry() is get_registry()
        get_registry().get("shared")
        assert get_registry().lock_exists("shared")


class TestCallbackLock:
    def test_leave_function(self):
        reg = LockRegistry(execute_callback=execute_sync)
        leaves = []
        reg.lock("a", leaves.append)
        reg.lock("a", leaves.append)

        assert reg.is_locked("a")
        assert reg.queue_size("a") == 1
        assert len(leaves) == 1

        leaves[0]()
        assert len(leaves) == 2
        leaves[1]()
        assert not reg.is_locked("a")

    def test_leave_twice_is_usage_error(self):
        reg = LockRegistry(execute_callback=execute_sync)
        leaves = []
        reg.lock("a", leaves.append)
        leaves[0]()
        with pytest.raises(LockUsageError):
            leaves[0]()

    def test_names_are_independent(self):
        reg = LockRegistry(execute_callback=execute_sync)
        leaves = []
        reg.lock("a", leaves.append)
        reg.lock("b", leaves.append)
        assert len(leaves) == 2
        assert reg.is_locked("a") and reg.is_locked("b")

    @pytest.mark.asyncio
    async def test_timeout(self):
        reg = LockRegistry()
        ran = []
        reg.lock("a", lambda leave: None)
        token = reg.lock("a", ran.append, timeout=0.01)
        await asyncio.sleep(0.05)
        assert token.is_canceled
        assert ran == []


class TestRun:
    @pytest.mark.asyncio
    async def test_serializes_coroutines(self):
        reg = LockRegistry()
        order = []

        async def work(i, delay):
            order.append(("start", i))
            await asyncio.sleep(delay)
            order.append(("end", i))
            return i * 10

        results = await asyncio.gather(
            reg.run("a", work, 1, 0.02),
            reg.run("a", work, 2, 0.0),
            reg.run("a", work, 3, delay=0.01),
        )
        assert results == [10, 20, 30]
        assert order == [
            ("start", 1), ("end", 1),
            ("start", 2), ("end", 2),
            ("start", 3), ("end", 3),
        ]
        assert not reg.is_locked("a")

    @pytest.mark.asyncio
    async def test_releases_on_error(self):
        reg = LockRegistry()

        async def boom():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await reg.run("a", boom)
        assert not reg.is_locked("a")

        async def ok():
            return "ok"

        assert await reg.run("a", ok) == "ok"

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_queue(self):
        reg = LockRegistry()
        gate = asyncio.Event()

        async def hold():
            await gate.wait()

        async def never():
            raise AssertionError("should not run")

        holder = asyncio.create_task(reg.run("a", hold))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(reg.run("a", never))
        await asyncio.sleep(0)
        assert reg.queue_size("a") == 1

        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        assert reg.queue_size("a") == 0

        gate.set()
        await holder
        await asyncio.sleep(0.01)
        assert not reg.is_locked("a")
        assert reg.queue_size("a") == 0

    @pytest.mark.asyncio
    async def test_cancelled_waiter_frees_slot_in_bounded_queue(self):
        reg = LockRegistry(LockOptions(max_queue_size=1))
        gate = asyncio.Event()

        async def hold():
            await gate.wait()

        async def never():
            raise AssertionError("should not run")

        async def ok():
            return "ok"

        holder = asyncio.create_task(reg.run("a", hold))
        await asyncio.sleep(0)
        waiter = asyncio.create_task(reg.run("a", never))
        await asyncio.sleep(0)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        live = asyncio.create_task(reg.run("a", ok))
        await asyncio.sleep(0)
        assert reg.queue_size("a") == 1

        gate.set()
        await holder
        assert await asyncio.wait_for(live, 1) == "ok"
        assert not reg.is_locked("a")

    @pytest.mark.asyncio
    async def test_cancelled_after_admission_releases(self):
        """Cancelled between admission and wake-up: the lock is handed back."""
        reg = LockRegistry()
        leaves = []

        async def never():
            raise AssertionError("should not run")

        reg.lock("a", leaves.append)
        await asyncio.sleep(0)
        waiter = asyncio.create_task(reg.run("a", never))
        await asyncio.sleep(0)

        leaves[0]()
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter
        await asyncio.sleep(0)
        assert not reg.is_locked("a")

    @pytest.mark.asyncio
    async def test_evicted_run_never_completes(self):
        reg = LockRegistry(LockOptions(max_queue_size=1, overflow_strategy="first"))
        gate = asyncio.Event()

        async def hold():
            await gate.wait()

        async def ok():
            return "ok"

        holder = asyncio.create_task(reg.run("a", hold))
        await asyncio.sleep(0)
        evicted = asyncio.create_task(reg.run("a", ok))
        await asyncio.sleep(0)
        newest = asyncio.create_task(reg.run("a", ok))
        await asyncio.sleep(0)

        gate.set()
        await holder
        assert await newest == "ok"
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(evicted, 0.05)
        assert reg.queue_size("a") == 0

    @pytest.mark.asyncio
    async def test_uses_process_wide_registry(self):
        async def ok():
            return get_registry().is_locked("a")

        assert await get_registry().run("a", ok) is True
