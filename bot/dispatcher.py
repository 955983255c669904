"""Update classification and handler dispatch.

:func:`classify` maps an :class:`~sdk.models.Update` onto exactly one
:class:`~bot.endpoints.Endpoint` using fixed precedence rules and never
touches the registry.  :class:`Dispatcher` layers the registry on top:
commands, callback unique tokens, fallbacks (``photo`` → ``media``) and the
multi-user join case, then invokes the handler either inline or as an
independent :func:`asyncio.create_task`, so long-running handlers never block
the bot from receiving new updates.
"""

from __future__ import annotations

import asyncio
import inspect
import re
from typing import TYPE_CHECKING, Any, List, Optional

from bot.context import COMMAND_PATTERN, Context
from bot.endpoints import (
    CALLBACK_PREFIX,
    CONTENT_ENDPOINTS,
    ENDPOINT_PREFIX,
    FALLBACKS,
    MEDIA_ENDPOINTS,
    SERVICE_ENDPOINTS,
    UPDATE_ENDPOINTS,
    Endpoint,
)
from bot.errors import (
    ForeignCommandError,
    MaliciousInputError,
    NoHandlerError,
    PartiallyHandledError,
    SubEventsFailedError,
    UnknownUpdateError,
)
from bot.registry import HandlerFunc
from core.logger import TelepulseLogger
from sdk.models import CallbackQuery, Message, Update, User

if TYPE_CHECKING:
    from bot.lifecycle import Bot

logger = TelepulseLogger.get_logger()

CALLBACK_PATTERN = re.compile(r"\f([-\w]+)(\|(.+))?")


def _present(value: Any) -> bool:
    return value is not None and value is not False


# ── Classification (pure) ────────────────────────────────────────────────────


def classify_message(message: Message, me: Optional[User] = None) -> Optional[Endpoint]:
    """Return the event kind of a plain ``message`` payload, or ``None``.

    *me* is the bot's own user; without it a join never counts as
    :attr:`Endpoint.ADDED_TO_GROUP`.
    """
    if message.pinned_message is not None:
        return Endpoint.PINNED
    if message.text:
        return Endpoint.TEXT
    for field, endpoint in MEDIA_ENDPOINTS + CONTENT_ENDPOINTS:
        if getattr(message, field) is not None:
            return endpoint
    if message.new_chat_members:
        if me is not None and any(user.id == me.id for user in message.new_chat_members):
            return Endpoint.ADDED_TO_GROUP
        return Endpoint.USER_JOINED
    for field, endpoint in SERVICE_ENDPOINTS:
        if _present(getattr(message, field)):
            return endpoint
    return None


def classify(update: Update, me: Optional[User] = None) -> Optional[Endpoint]:
    """Return the single event kind *update* belongs to, or ``None`` if unknown.

    Precedence: ``message``, ``edited_message``, ``channel_post`` (pinned
    first), ``edited_channel_post``, ``callback_query``, then the remaining
    update kinds in :data:`~bot.endpoints.UPDATE_ENDPOINTS` order.
    """
    if update.message is not None:
        return classify_message(update.message, me)
    if update.edited_message is not None:
        return Endpoint.EDITED
    if update.channel_post is not None:
        if update.channel_post.pinned_message is not None:
            return Endpoint.PINNED
        return Endpoint.CHANNEL_POST
    if update.edited_channel_post is not None:
        return Endpoint.EDITED_CHANNEL_POST
    if update.callback_query is not None:
        return Endpoint.CALLBACK
    for field, endpoint in UPDATE_ENDPOINTS:
        if getattr(update, field) is not None:
            return endpoint
    return None


def split_callback_data(callback: CallbackQuery) -> Optional[str]:
    """Split ``"\\f<unique>|<data>"`` in place and return the unique token.

    On a match ``callback.unique`` is set and ``callback.data`` keeps only the
    part after ``|``.  Other data is left untouched and ``None`` is returned.
    """
    if not callback.data:
        return None
    match = CALLBACK_PATTERN.fullmatch(callback.data)
    if match is None:
        return None
    callback.unique = match.group(1)
    callback.data = match.group(3) or ""
    return callback.unique


# ── Dispatcher ───────────────────────────────────────────────────────────────


class Dispatcher:
    """Routes classified updates to handlers registered on a :class:`~bot.lifecycle.Bot`."""

    def __init__(self, bot: "Bot") -> None:
        self.bot = bot
        self._in_flight: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of concurrent handler tasks that have not finished yet."""
        return len(self._in_flight)

    async def process_update(self, update: Update) -> None:
        """Classify *update* and run its handler.

        Handler exceptions are reported through ``Bot.on_error`` and never
        propagate from here.

        Raises:
            MaliciousInputError: Message text starts with ``"\\a"``.
            ForeignCommandError: ``/cmd@otherbot`` addressed to another bot.
            NoHandlerError: Nothing registered for the event kind.
            PartiallyHandledError: Some per-user handlers of a multi-user join failed.
            SubEventsFailedError: Every per-user handler of a multi-user join failed.
            UnknownUpdateError: No known payload is populated.
        """
        update_id = update.update_id
        message = update.message
        if message is not None and message.text and message.text.startswith(ENDPOINT_PREFIX):
            raise MaliciousInputError(update_id)

        endpoint = classify(update, self.bot.me)
        if endpoint is None:
            raise UnknownUpdateError(update_id)
        logger.debug("Update classified", extra={"update_id": update_id, "endpoint": endpoint.label})

        ctx = Context(self.bot, update)
        registry = self.bot.registry

        if endpoint is Endpoint.TEXT and message is not None:
            handler = self._text_handler(message, update_id)
            if handler is not None:
                await self.run_handler(handler, ctx)
                return
        elif endpoint is Endpoint.CALLBACK:
            unique = split_callback_data(update.callback_query)
            if unique is not None:
                handler = registry.get(CALLBACK_PREFIX + unique)
                if handler is not None:
                    await self.run_handler(handler, ctx)
                    return
        elif endpoint is Endpoint.USER_JOINED:
            members = message.new_chat_members
            if len(members) > 1:
                await self._process_joined(ctx, members)
                return
            ctx.joined_user = members[0]

        handler = registry.get(endpoint)
        if handler is None and endpoint in FALLBACKS:
            handler = registry.get(FALLBACKS[endpoint])
        if handler is None:
            raise NoHandlerError(endpoint, update_id)
        await self.run_handler(handler, ctx)

    def _text_handler(self, message: Message, update_id: int) -> Optional[HandlerFunc]:
        """Handler for the command in *message*, else for its exact text."""
        text = message.text
        registry = self.bot.registry
        match = COMMAND_PATTERN.match(text)
        if match is not None:
            command, bot_name = match.group(1), match.group(3)
            if bot_name:
                me = self.bot.me
                own = (me.username or "") if me is not None else ""
                if bot_name.lower() != own.lower():
                    raise ForeignCommandError(command, bot_name, update_id)
            handler = registry.get("/" + command)
            if handler is not None:
                return handler
        # Keeps message text out of the callback namespace.
        if text.startswith(CALLBACK_PREFIX):
            return None
        return registry.get(text)

    async def _process_joined(self, ctx: Context, members: List[User]) -> None:
        """Run the join handler once per new member, always inline."""
        handler = self.bot.registry.get(Endpoint.USER_JOINED)
        if handler is None:
            raise NoHandlerError(Endpoint.USER_JOINED, ctx.update_id)

        failed: list[User] = []
        for user in members:
            sub = Context(self.bot, ctx.update, joined_user=user)
            try:
                await self._call(handler, sub)
            except Exception as exc:
                failed.append(user)
                self.bot.on_error(exc, sub)

        if len(failed) == len(members):
            raise SubEventsFailedError(Endpoint.USER_JOINED, failed, update_id=ctx.update_id)
        if failed:
            raise PartiallyHandledError(
                Endpoint.USER_JOINED,
                handled=len(members) - len(failed),
                total=len(members),
                failed_users=failed,
                update_id=ctx.update_id,
            )

    # ── Invocation ───────────────────────────────────────────────────────

    @staticmethod
    async def _call(handler: HandlerFunc, ctx: Context) -> None:
        result = handler(ctx)
        if inspect.isawaitable(result):
            await result

    async def _invoke(self, handler: HandlerFunc, ctx: Context) -> None:
        try:
            await self._call(handler, ctx)
        except Exception as exc:
            self.bot.on_error(exc, ctx)

    async def run_handler(self, handler: HandlerFunc, ctx: Context) -> None:
        """Run *handler* inline in synchronous mode, otherwise as a tracked task."""
        if self.bot.settings.synchronous:
            await self._invoke(handler, ctx)
            return
        task = asyncio.create_task(self._invoke(handler, ctx), name=f"handler-{ctx.update_id}")
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def drain(self, timeout: Optional[float]) -> int:
        """Wait up to *timeout* seconds for in-flight handlers. Returns how many are still running.

        ``None`` means do not wait at all.
        """
        if not self._in_flight or timeout is None:
            return len(self._in_flight)
        _, pending = await asyncio.wait(set(self._in_flight), timeout=timeout)
        if pending:
            logger.warning("Handlers still running after shutdown timeout", extra={"pending": len(pending)})
        return len(pending)
