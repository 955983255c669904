"""Update sources that feed the dispatch loop.

A poller is anything with ``async poll(bot, dest, stop)``: it puts
:class:`~sdk.models.Update` objects on the *dest* queue until the *stop*
signal closes, then returns.  Two implementations live here:

- :class:`LongPoller` drives ``getUpdates`` and owns the update offset.
- :class:`MiddlewarePoller` wraps another poller and filters what it yields.

The webhook source is in :mod:`bot.webhook`.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import TYPE_CHECKING, Callable, List, Optional, Protocol

from core.logger import TelepulseLogger
from sdk.client import call_async
from sdk.exceptions import FetchError
from sdk.models import Update

if TYPE_CHECKING:
    from bot.lifecycle import Bot, StopSignal

logger = TelepulseLogger.get_logger()


class Poller(Protocol):
    """Source of updates for :meth:`bot.lifecycle.Bot.start`."""

    async def poll(self, bot: "Bot", dest: "asyncio.Queue[Update]", stop: "StopSignal") -> None: ...  # noqa: E704


# ── Queue helpers (stop-aware) ───────────────────────────────────────────────


async def deliver(dest: "asyncio.Queue[Update]", update: Update, stop: "StopSignal") -> bool:
    """Put *update* on *dest*, giving up if *stop* closes first.

    Returns ``True`` if the update was enqueued.
    """
    if stop.closed:
        return False
    if not dest.full():
        dest.put_nowait(update)
        return True
    put = asyncio.ensure_future(dest.put(update))
    closed = asyncio.ensure_future(stop.wait())
    done, _ = await asyncio.wait({put, closed}, return_when=asyncio.FIRST_COMPLETED)
    closed.cancel()
    if put in done:
        return True
    put.cancel()
    return False


async def receive(source: "asyncio.Queue[Update]", stop: "StopSignal") -> Optional[Update]:
    """Take the next update from *source*, or ``None`` once *stop* closes."""
    if stop.closed:
        return None
    if not source.empty():
        return source.get_nowait()
    get = asyncio.ensure_future(source.get())
    closed = asyncio.ensure_future(stop.wait())
    done, _ = await asyncio.wait({get, closed}, return_when=asyncio.FIRST_COMPLETED)
    closed.cancel()
    if get in done:
        return get.result()
    get.cancel()
    return None


# ── Retry policy ─────────────────────────────────────────────────────────────


@dataclasses.dataclass
class Backoff:
    """Exponential delay between failed fetches.

    Args:
        initial: Delay in seconds after the first failure.
        maximum: Upper bound for any delay.
        factor: Multiplier applied per consecutive failure.

    ``Backoff(0, 0)`` retries immediately.
    """

    initial: float = 1.0
    maximum: float = 30.0
    factor: float = 2.0

    def delay(self, failures: int) -> float:
        """Delay before the next attempt after *failures* consecutive failures (>= 1)."""
        if failures < 1:
            return 0.0
        return min(self.maximum, self.initial * self.factor ** (failures - 1))


# ── Long polling ─────────────────────────────────────────────────────────────


class LongPoller:
    """Fetches updates with ``getUpdates`` long polling.

    ``last_update_id`` survives across runs, so restarting a bot with the
    same poller resumes after the last update that reached the queue.
    """

    def __init__(
        self,
        timeout: int = 10,
        limit: Optional[int] = None,
        allowed_updates: Optional[List[str]] = None,
        backoff: Optional[Backoff] = None,
    ) -> None:
        self.timeout = timeout
        self.limit = limit
        self.allowed_updates = allowed_updates
        self.backoff = backoff if backoff is not None else Backoff()
        self.last_update_id = 0
        self._failures = 0

    def __repr__(self) -> str:
        return f"LongPoller(timeout={self.timeout}, last_update_id={self.last_update_id})"

    async def poll(self, bot: "Bot", dest: "asyncio.Queue[Update]", stop: "StopSignal") -> None:
        logger.info("Long polling started", extra={"timeout": self.timeout, "offset": self.last_update_id + 1})
        while not stop.closed:
            try:
                updates = await call_async(
                    bot.client.get_updates,
                    offset=self.last_update_id + 1,
                    limit=self.limit,
                    timeout=self.timeout,
                    allowed_updates=self.allowed_updates,
                )
            except Exception as exc:
                self._failures += 1
                bot.debug(FetchError(exc))
                delay = self.backoff.delay(self._failures)
                logger.debug("Retrying getUpdates", extra={"delay": delay, "failures": self._failures})
                if await stop.wait_for(delay):
                    break
                continue

            self._failures = 0
            if updates:
                logger.debug("Received updates", extra={"count": len(updates)})
            for update in updates:
                if update.update_id <= self.last_update_id:
                    continue
                if not await deliver(dest, update, stop):
                    break
                self.last_update_id = update.update_id
        logger.info("Long polling stopped", extra={"last_update_id": self.last_update_id})


# ── Filtering ────────────────────────────────────────────────────────────────


class MiddlewarePoller:
    """Wraps *poller* and only forwards updates for which *filter* returns true.

    Example::

        only_private = MiddlewarePoller(
            LongPoller(timeout=10),
            lambda u: u.message is None or u.message.chat.type == "private",
        )
    """

    def __init__(self, poller: Poller, filter: Callable[[Update], bool], capacity: int = 1) -> None:
        self.poller = poller
        self.filter = filter
        self.capacity = capacity

    async def poll(self, bot: "Bot", dest: "asyncio.Queue[Update]", stop: "StopSignal") -> None:
        """Forward filtered updates until *stop* closes or the wrapped poller ends.

        When the wrapped poller returns or raises on its own, *stop* is
        closed and its exception (if any) is re-raised here.
        """
        middle: asyncio.Queue[Update] = asyncio.Queue(maxsize=self.capacity)
        inner = asyncio.create_task(self.poller.poll(bot, middle, stop), name="inner-poller")
        try:
            while True:
                update = await self._next(middle, stop, inner)
                if update is None:
                    break
                if not self.filter(update):
                    logger.debug("Update filtered out", extra={"update_id": update.update_id})
                    continue
                if not await deliver(dest, update, stop):
                    break
        finally:
            if not inner.done() and not stop.closed:
                inner.cancel()
            await asyncio.wait({inner})

        if inner.cancelled():
            return
        if stop.close():
            logger.debug("Wrapped poller ended, stopping", extra={"poller": repr(self.poller)})
        inner.result()

    @staticmethod
    async def _next(
        middle: "asyncio.Queue[Update]", stop: "StopSignal", inner: "asyncio.Task[None]"
    ) -> Optional[Update]:
        """Like :func:`receive`, but also returns ``None`` once *inner* is done and *middle* is empty."""
        if stop.closed:
            return None
        if not middle.empty():
            return middle.get_nowait()
        if inner.done():
            return None
        get = asyncio.ensure_future(middle.get())
        closed = asyncio.ensure_future(stop.wait())
        done, _ = await asyncio.wait({get, closed, inner}, return_when=asyncio.FIRST_COMPLETED)
        closed.cancel()
        if get in done:
            return get.result()
        get.cancel()
        return None
