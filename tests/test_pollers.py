"""Tests for LongPoller offsets, retry backoff and MiddlewarePoller filtering."""

import asyncio
import sys
import os
import time
from unittest.mock import MagicMock

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from bot.lifecycle import StopSignal
from bot.pollers import Backoff, LongPoller, MiddlewarePoller, deliver, receive
from sdk.exceptions import FetchError
from sdk.models import Update
from conftest import ListPoller, make_bot, wait_until


def upd(update_id: int) -> Update:
    return Update(update_id=update_id)


class FakeGetUpdates:
    """Stands in for BotAPIClient.get_updates: serves batches, then empty results."""

    def __init__(self, *batches) -> None:
        self.batches = list(batches)
        self.offsets: list[int] = []

    def __call__(self, **kwargs):
        self.offsets.append(kwargs["offset"])
        if self.batches:
            batch = self.batches.pop(0)
            if isinstance(batch, Exception):
                raise batch
            return batch
        time.sleep(0.01)
        return []


def drain_queue(queue: asyncio.Queue) -> list[int]:
    ids = []
    while not queue.empty():
        ids.append(queue.get_nowait().update_id)
    return ids


async def run_until(poller, bot, queue, predicate) -> None:
    stop = StopSignal()
    task = asyncio.create_task(poller.poll(bot, queue, stop))
    await wait_until(predicate)
    stop.close()
    await asyncio.wait_for(task, timeout=2)


# ── Backoff ──────────────────────────────────────────────────────────────────


class TestBackoff:
    def test_exponential_with_cap(self) -> None:
        b = Backoff(initial=1, maximum=30, factor=2)
        assert [b.delay(n) for n in (1, 2, 3, 4)] == [1, 2, 4, 8]
        assert b.delay(10) == 30

    def test_zero_means_immediate(self) -> None:
        assert Backoff(0, 0).delay(5) == 0

    def test_no_failures_no_delay(self) -> None:
        assert Backoff().delay(0) == 0


# ── StopSignal ───────────────────────────────────────────────────────────────


class TestStopSignal:
    @pytest.mark.asyncio
    async def test_close_once(self) -> None:
        stop = StopSignal()
        assert stop.close() is True
        assert stop.close() is False
        assert stop.closed

    @pytest.mark.asyncio
    async def test_wait_for_timeout(self) -> None:
        stop = StopSignal()
        assert await stop.wait_for(0.01) is False
        stop.close()
        assert await stop.wait_for(10) is True


# ── Queue helpers ────────────────────────────────────────────────────────────


class TestQueueHelpers:
    @pytest.mark.asyncio
    async def test_deliver_gives_up_when_stopped(self) -> None:
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        stop = StopSignal()
        assert await deliver(queue, upd(1), stop) is True

        pending = asyncio.create_task(deliver(queue, upd(2), stop))
        await asyncio.sleep(0.01)
        stop.close()
        assert await pending is False
        assert drain_queue(queue) == [1]

    @pytest.mark.asyncio
    async def test_receive_returns_none_on_stop(self) -> None:
        queue: asyncio.Queue = asyncio.Queue()
        stop = StopSignal()
        waiting = asyncio.create_task(receive(queue, stop))
        await asyncio.sleep(0.01)
        stop.close()
        assert await waiting is None


# ── LongPoller ───────────────────────────────────────────────────────────────


class TestLongPoller:
    @pytest.mark.asyncio
    async def test_offsets_and_duplicates(self) -> None:
        bot = make_bot()
        fake = FakeGetUpdates([upd(1), upd(2), upd(3)], [upd(2), upd(4)])
        bot.client.get_updates = MagicMock(side_effect=fake)
        poller = LongPoller(timeout=0)
        queue: asyncio.Queue = asyncio.Queue()

        await run_until(poller, bot, queue, lambda: queue.qsize() == 4)

        assert drain_queue(queue) == [1, 2, 3, 4]
        assert poller.last_update_id == 4
        assert fake.offsets[:3] == [1, 4, 5]
        kwargs = bot.client.get_updates.call_args.kwargs
        assert kwargs["timeout"] == 0 and kwargs["allowed_updates"] is None

    @pytest.mark.asyncio
    async def test_restart_resumes_without_redelivery(self) -> None:
        bot = make_bot()
        poller = LongPoller(timeout=0)

        bot.client.get_updates = MagicMock(side_effect=FakeGetUpdates([upd(1), upd(2)]))
        first: asyncio.Queue = asyncio.Queue()
        await run_until(poller, bot, first, lambda: first.qsize() == 2)

        fake = FakeGetUpdates([upd(2), upd(3)])
        bot.client.get_updates = MagicMock(side_effect=fake)
        second: asyncio.Queue = asyncio.Queue()
        await run_until(poller, bot, second, lambda: second.qsize() == 1)

        assert drain_queue(first) == [1, 2]
        assert drain_queue(second) == [3]
        assert fake.offsets[0] == 3

    @pytest.mark.asyncio
    async def test_fetch_errors_are_reported_and_retried(self) -> None:
        bot = make_bot()
        cause = ConnectionError("offline")
        bot.client.get_updates = MagicMock(side_effect=FakeGetUpdates(cause, cause, [upd(1)]))
        poller = LongPoller(timeout=0, backoff=Backoff(0, 0))
        queue: asyncio.Queue = asyncio.Queue()

        await run_until(poller, bot, queue, lambda: queue.qsize() == 1)

        assert drain_queue(queue) == [1]
        errors = [c.args[0] for c in bot.settings.on_error.call_args_list]
        assert len(errors) == 2
        assert all(isinstance(e, FetchError) and e.cause is cause for e in errors)
        assert all(c.args[1] is None for c in bot.settings.on_error.call_args_list)

    @pytest.mark.asyncio
    async def test_stop_interrupts_backoff(self) -> None:
        bot = make_bot()
        bot.client.get_updates = MagicMock(side_effect=ConnectionError("offline"))
        poller = LongPoller(timeout=0, backoff=Backoff(initial=60, maximum=60))
        stop = StopSignal()
        task = asyncio.create_task(poller.poll(bot, asyncio.Queue(), stop))

        await wait_until(lambda: bot.settings.on_error.called)
        stop.close()
        await asyncio.wait_for(task, timeout=1)
        assert bot.client.get_updates.call_count == 1

    @pytest.mark.asyncio
    async def test_undelivered_updates_do_not_advance_offset(self) -> None:
        bot = make_bot()
        bot.client.get_updates = MagicMock(side_effect=FakeGetUpdates([upd(1), upd(2)]))
        poller = LongPoller(timeout=0)
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)

        await run_until(poller, bot, queue, lambda: queue.full())

        assert poller.last_update_id == 1
        assert drain_queue(queue) == [1]

    @pytest.mark.asyncio
    async def test_closed_stop_skips_fetch(self) -> None:
        bot = make_bot()
        stop = StopSignal()
        stop.close()
        await LongPoller().poll(bot, asyncio.Queue(), stop)
        bot.client.get_updates.assert_not_called()


# ── MiddlewarePoller ─────────────────────────────────────────────────────────


class TestMiddlewarePoller:
    @pytest.mark.asyncio
    async def test_filters_updates(self) -> None:
        bot = make_bot()
        inner = ListPoller([upd(i) for i in range(1, 7)])
        poller = MiddlewarePoller(inner, lambda u: u.update_id % 2 == 0)
        queue: asyncio.Queue = asyncio.Queue()

        await run_until(poller, bot, queue, lambda: queue.qsize() == 3)
        assert drain_queue(queue) == [2, 4, 6]
        assert inner.runs == 1

    @pytest.mark.asyncio
    async def test_inner_failure_closes_stop_and_propagates(self) -> None:
        class Failing:
            async def poll(self, bot, dest, stop) -> None:
                raise RuntimeError("source down")

        stop = StopSignal()
        with pytest.raises(RuntimeError, match="source down"):
            await asyncio.wait_for(
                MiddlewarePoller(Failing(), lambda u: True).poll(make_bot(), asyncio.Queue(), stop), timeout=2
            )
        assert stop.closed

    @pytest.mark.asyncio
    async def test_inner_failure_ends_bot_run(self) -> None:
        class Failing:
            async def poll(self, bot, dest, stop) -> None:
                raise RuntimeError("source down")

        bot = make_bot(poller=MiddlewarePoller(Failing(), lambda u: True))
        await asyncio.wait_for(bot.start(), timeout=2)

        error = bot.settings.on_error.call_args.args[0]
        assert isinstance(error, RuntimeError)

    @pytest.mark.asyncio
    async def test_inner_return_forwards_buffered_updates(self) -> None:
        class Finite:
            async def poll(self, bot, dest, stop) -> None:
                for i in (1, 2, 3):
                    await deliver(dest, upd(i), stop)

        stop = StopSignal()
        queue: asyncio.Queue = asyncio.Queue()
        await asyncio.wait_for(MiddlewarePoller(Finite(), lambda u: True, capacity=3).poll(make_bot(), queue, stop), timeout=2)
        assert drain_queue(queue) == [1, 2, 3]
        assert stop.closed
