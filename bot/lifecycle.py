"""Bot lifecycle: settings, stop signal and the :class:`Bot` run loop.

A run looks like this::

    bot = Bot(Settings(token=BOT_TOKEN))
    bot.handle("/start", on_start)
    await bot.start()          # blocks until bot.stop() is called

Each :meth:`Bot.start` allocates a fresh :class:`StopSignal` and update
queue, starts the poller as a task and consumes the queue until the signal
closes.  The bot then returns to :attr:`State.IDLE` and can be started again.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
from typing import Any, Callable, Optional

from bot.context import Context
from bot.dispatcher import Dispatcher
from bot.errors import DispatchError
from bot.pollers import LongPoller, Poller, receive
from bot.registry import HandlerFunc, HandlerRegistry, MiddlewareFunc
from core.logger import TelepulseLogger
from sdk.client import DEFAULT_API_URL, BotAPIClient, call_async
from sdk.models import Update, User

logger = TelepulseLogger.get_logger()

ErrorHandler = Callable[[Exception, Optional[Context]], Any]


class State(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPING = "stopping"


class StopSignal:
    """Close-once stop signal shared by the poller and the dispatch loop."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def closed(self) -> bool:
        return self._event.is_set()

    def close(self) -> bool:
        """Close the signal. Returns ``False`` if it was already closed."""
        if self._event.is_set():
            return False
        self._event.set()
        return True

    async def wait(self) -> None:
        await self._event.wait()

    async def wait_for(self, timeout: float) -> bool:
        """Wait up to *timeout* seconds. Returns ``True`` if the signal closed."""
        if self.closed:
            return True
        if timeout <= 0:
            await asyncio.sleep(0)
            return self.closed
        try:
            await asyncio.wait_for(self._event.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True


@dataclasses.dataclass
class Settings:
    """Bot configuration.

    Attributes:
        token: Bot API token.
        url: Bot API server URL.
        poller: Update source; defaults to ``LongPoller(timeout=10)``.
        updates: Capacity of the update queue.
        synchronous: Run handlers inline instead of one task per update.
        offline: Skip ``getMe``; the bot identity comes from *username*.
        username: Bot username used in offline mode.
        verbose: Log at DEBUG level.
        on_error: Called with ``(error, context)``; context is ``None`` for
            errors outside a handler.
        client_timeout: Transport timeout for Bot API requests, in seconds.
        shutdown_timeout: Seconds to wait for running handlers on shutdown;
            ``None`` does not wait.
        client: Preconfigured API client, mostly for tests.
    """

    token: str = ""
    url: str = DEFAULT_API_URL
    poller: Optional[Poller] = None
    updates: int = 100
    synchronous: bool = False
    offline: bool = False
    username: Optional[str] = None
    verbose: bool = False
    on_error: Optional[ErrorHandler] = None
    client_timeout: int = 10
    shutdown_timeout: Optional[float] = 10.0
    client: Optional[BotAPIClient] = None

    def __post_init__(self) -> None:
        if self.poller is None:
            self.poller = LongPoller(timeout=10)


class Bot:
    """Registry, dispatcher and run loop for one bot token.

    Unless ``settings.offline`` is set, the constructor calls ``getMe`` and
    raises :class:`~sdk.exceptions.AuthError` for a rejected token.
    """

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.poller: Poller = settings.poller
        self.client = settings.client or BotAPIClient.for_token(
            settings.token, api_url=settings.url, timeout=settings.client_timeout,
        )
        self.registry = HandlerRegistry()
        self._dispatcher = Dispatcher(self)
        self._middleware: list[MiddlewareFunc] = []
        self._state = State.IDLE
        self._stop: Optional[StopSignal] = None
        self._updates: Optional[asyncio.Queue] = None

        if settings.verbose:
            TelepulseLogger.set_level(logging.DEBUG)

        if settings.offline:
            self.me = User(id=0, is_bot=True, first_name=settings.username or "", username=settings.username)
        else:
            self.me = self.client.get_me()
            logger.info("Authorized", extra={"bot_id": self.me.id, "username": self.me.username})

    def __repr__(self) -> str:
        return f"Bot(username={self.me.username!r}, state={self._state.value})"

    @property
    def state(self) -> State:
        return self._state

    @property
    def in_flight(self) -> int:
        """Concurrent handlers that are still running."""
        return self._dispatcher.in_flight

    # ── Registration ─────────────────────────────────────────────────────

    def use(self, *middleware: MiddlewareFunc) -> None:
        """Add global middleware, applied to handlers registered afterwards."""
        self._middleware.extend(middleware)

    def handle(self, endpoint: Any, handler: HandlerFunc, *middleware: MiddlewareFunc) -> None:
        """Register *handler* for a command, an exact text, an :class:`~bot.endpoints.Endpoint` or a callback unique.

        Global middleware wraps per-handler middleware, and the first
        middleware given is the outermost.

        Raises:
            InvalidEndpointError: For unsupported keys or a non-callable handler.
        """
        wrapped = handler
        if callable(handler):
            for mw in reversed(self._middleware + list(middleware)):
                wrapped = mw(wrapped)
        self.registry.register(endpoint, wrapped)

    def on(self, endpoint: Any, *middleware: MiddlewareFunc) -> Callable[[HandlerFunc], HandlerFunc]:
        """Decorator form of :meth:`handle`.

        Example::

            @bot.on("/start")
            async def on_start(ctx):
                await ctx.send("Hello!")
        """
        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.handle(endpoint, func, *middleware)
            return func
        return decorator

    def group(self) -> "Group":
        """Return a :class:`Group` whose middleware applies only to handlers it registers."""
        return Group(self)

    # ── Errors ───────────────────────────────────────────────────────────

    def on_error(self, error: Exception, ctx: Optional[Context] = None) -> None:
        """Report *error*; delegates to ``settings.on_error`` when one is set."""
        if self.settings.on_error is not None:
            self.settings.on_error(error, ctx)
            return
        extra = {"error": str(error), "error_type": type(error).__name__}
        if ctx is not None:
            extra["update_id"] = ctx.update_id
        logger.error("Bot error", extra=extra, exc_info=error if self.settings.verbose else None)

    def debug(self, error: Exception) -> None:
        """Report an error that did not happen inside a handler."""
        self.on_error(error, None)

    # ── Dispatch ─────────────────────────────────────────────────────────

    async def process_update(self, update: Update) -> None:
        """Classify and dispatch a single update.

        Raises:
            DispatchError: When the update was not handled (see :mod:`bot.errors`).
        """
        await self._dispatcher.process_update(update)

    # ── Lifecycle ────────────────────────────────────────────────────────

    async def _run_poller(self, dest: asyncio.Queue, stop: StopSignal) -> None:
        try:
            await self.poller.poll(self, dest, stop)
        except Exception as exc:
            self.debug(exc)
        finally:
            # Without a source there is nothing left to dispatch.
            stop.close()

    async def start(self) -> None:
        """Run the bot until :meth:`stop` is called. No-op unless idle."""
        if self._state is not State.IDLE:
            logger.warning("Bot.start() called while not idle", extra={"state": self._state.value})
            return

        self._state = State.RUNNING
        stop = self._stop = StopSignal()
        queue: asyncio.Queue[Update] = asyncio.Queue(maxsize=self.settings.updates)
        self._updates = queue
        poller = asyncio.create_task(self._run_poller(queue, stop), name="poller")
        logger.info("Bot started", extra={"poller": repr(self.poller), "synchronous": self.settings.synchronous})

        try:
            while True:
                update = await receive(queue, stop)
                if update is None:
                    break
                try:
                    await self.process_update(update)
                except DispatchError as exc:
                    logger.debug(
                        "Update not handled",
                        extra={"update_id": update.update_id, "error": str(exc), "error_type": type(exc).__name__},
                    )
        finally:
            self._state = State.STOPPING
            stop.close()
            await poller
            pending = await self._dispatcher.drain(self.settings.shutdown_timeout)
            self._stop = None
            self._updates = None
            self._state = State.IDLE
            logger.info("Bot stopped", extra={"pending_handlers": pending})

    def stop(self) -> None:
        """Ask a running bot to stop. No-op when idle or already stopping."""
        if self._state is not State.RUNNING or self._stop is None:
            return
        self._state = State.STOPPING
        self._stop.close()

    async def remove_webhook(self, drop_pending_updates: bool = False) -> bool:
        """Delete the webhook so long polling can be used again."""
        return await call_async(self.client.delete_webhook, drop_pending_updates=drop_pending_updates or None)


class Group:
    """Handlers sharing a middleware chain, registered into the owning bot.

    Global middleware from :meth:`Bot.use` stays outermost, then the group's,
    then any given to :meth:`handle`::

        admin = bot.group()
        admin.use(admins_only)
        admin.handle("/ban", on_ban)
    """

    def __init__(self, bot: Bot) -> None:
        self.bot = bot
        self._middleware: list[MiddlewareFunc] = []

    def use(self, *middleware: MiddlewareFunc) -> None:
        """Add middleware for handlers registered through this group afterwards."""
        self._middleware.extend(middleware)

    def handle(self, endpoint: Any, handler: HandlerFunc, *middleware: MiddlewareFunc) -> None:
        self.bot.handle(endpoint, handler, *self._middleware, *middleware)

    def on(self, endpoint: Any, *middleware: MiddlewareFunc) -> Callable[[HandlerFunc], HandlerFunc]:
        def decorator(func: HandlerFunc) -> HandlerFunc:
            self.handle(endpoint, func, *middleware)
            return func
        return decorator
