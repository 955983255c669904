"""Per-update context handed to every handler.

A :class:`Context` binds one :class:`~sdk.models.Update` to the
:class:`~bot.lifecycle.Bot` that received it.  It exposes typed views of the
payload (``ctx.message``, ``ctx.callback`` ...), a few derived values
(``sender``, ``chat``, ``text``, ``data``, ``args``), a small key/value store
that middleware can use to pass values down to the handler, and async
helpers that reply through the bot's :class:`~sdk.client.BotAPIClient`.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, List, Optional, Tuple, Union

from bot.errors import BadContextError
from sdk.client import call_async
from sdk.models import (
    CallbackQuery,
    Chat,
    ChatJoinRequest,
    ChatMemberUpdated,
    ChosenInlineResult,
    InlineQuery,
    Message,
    Poll,
    PollAnswer,
    PreCheckoutQuery,
    ShippingQuery,
    Update,
    User,
)

if TYPE_CHECKING:
    from bot.lifecycle import Bot

COMMAND_PATTERN = re.compile(r"^/(\w+)(@(\w+))?")


class Context:
    """Everything a handler needs to react to a single update."""

    def __init__(self, bot: "Bot", update: Update, joined_user: Optional[User] = None) -> None:
        self.bot = bot
        self.update = update
        # Set for each per-user sub-event of a multi-user join.
        self.joined_user = joined_user
        self._store: dict[str, Any] = {}

    def __repr__(self) -> str:
        return f"Context(update_id={self.update.update_id})"

    # ── Payload views ────────────────────────────────────────────────────

    @property
    def update_id(self) -> int:
        return self.update.update_id

    @property
    def message(self) -> Optional[Message]:
        """The message carried by the update, including the one behind a callback."""
        u = self.update
        if u.message is not None:
            return u.message
        if u.callback_query is not None and u.callback_query.message is not None:
            return u.callback_query.message
        return u.edited_message or u.channel_post or u.edited_channel_post

    @property
    def callback(self) -> Optional[CallbackQuery]:
        return self.update.callback_query

    @property
    def query(self) -> Optional[InlineQuery]:
        return self.update.inline_query

    @property
    def inline_result(self) -> Optional[ChosenInlineResult]:
        return self.update.chosen_inline_result

    @property
    def shipping_query(self) -> Optional[ShippingQuery]:
        return self.update.shipping_query

    @property
    def pre_checkout_query(self) -> Optional[PreCheckoutQuery]:
        return self.update.pre_checkout_query

    @property
    def poll(self) -> Optional[Poll]:
        return self.update.poll

    @property
    def poll_answer(self) -> Optional[PollAnswer]:
        return self.update.poll_answer

    @property
    def chat_member(self) -> Optional[ChatMemberUpdated]:
        return self.update.chat_member or self.update.my_chat_member

    @property
    def chat_join_request(self) -> Optional[ChatJoinRequest]:
        return self.update.chat_join_request

    # ── Derived values ───────────────────────────────────────────────────

    @property
    def sender(self) -> Optional[User]:
        """The user that triggered the update, whatever its kind."""
        u = self.update
        if u.callback_query is not None:
            return u.callback_query.from_field
        for payload in (u.inline_query, u.chosen_inline_result, u.shipping_query,
                        u.pre_checkout_query, u.my_chat_member, u.chat_member,
                        u.chat_join_request):
            if payload is not None:
                return payload.from_field
        if u.poll_answer is not None:
            return u.poll_answer.user
        message = self.message
        return message.from_field if message is not None else None

    @property
    def chat(self) -> Optional[Chat]:
        message = self.message
        if message is not None:
            return message.chat
        for payload in (self.update.my_chat_member, self.update.chat_member, self.update.chat_join_request):
            if payload is not None:
                return payload.chat
        return None

    @property
    def text(self) -> str:
        message = self.message
        if message is None:
            return ""
        return message.text or message.caption or ""

    @property
    def payload(self) -> str:
        """Text following a leading command (``"/start ref42"`` → ``"ref42"``)."""
        message = self.message
        if message is None or not message.text:
            return ""
        match = COMMAND_PATTERN.match(message.text)
        if match is None:
            return ""
        return message.text[match.end():].strip()

    @property
    def data(self) -> str:
        """The most relevant free-form string of the update.

        * message: the command payload when there is one, else the text
        * callback: the data after the unique token (``"\\fmenu|42"`` → ``"42"``)
        * inline query: the query text; chosen result: the query it answered
        * shipping / pre-checkout query: the invoice payload
        """
        u = self.update
        if u.callback_query is not None:
            return u.callback_query.data or ""
        if u.message is not None:
            return self.payload or self.text
        if u.inline_query is not None:
            return u.inline_query.query
        if u.chosen_inline_result is not None:
            return u.chosen_inline_result.query
        if u.shipping_query is not None:
            return u.shipping_query.invoice_payload
        if u.pre_checkout_query is not None:
            return u.pre_checkout_query.invoice_payload
        return ""

    @property
    def args(self) -> List[str]:
        """:attr:`data` split into arguments (by ``|`` for callbacks, whitespace otherwise)."""
        if self.update.callback_query is not None:
            data = self.data
            return data.split("|") if data else []
        return self.data.split() if self.update.message is not None or self.update.inline_query is not None else []

    @property
    def migration(self) -> Tuple[int, int]:
        """``(from_chat_id, to_chat_id)`` for a group-to-supergroup migration message.

        Raises:
            BadContextError: If the update is not a migration message.
        """
        message = self.message
        if message is None or message.migrate_to_chat_id is None:
            raise BadContextError("update is not a chat migration")
        return message.chat.id, message.migrate_to_chat_id

    @property
    def user_joined(self) -> Optional[User]:
        """The joined user for membership events (one user per sub-event)."""
        if self.joined_user is not None:
            return self.joined_user
        message = self.message
        if message is not None and message.new_chat_members:
            return message.new_chat_members[0]
        return None

    # ── Store ────────────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        return self._store.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._store[key] = value

    # ── Outbound helpers ─────────────────────────────────────────────────

    def _require_chat(self) -> Chat:
        chat = self.chat
        if chat is None:
            raise BadContextError(f"update {self.update_id} has no chat to send to")
        return chat

    async def send(self, text: str, **options: Any) -> Message:
        """Send *text* to the update's chat. *options* go straight to ``sendMessage``."""
        chat = self._require_chat()
        return await call_async(self.bot.client.send_message, chat.id, text, **options)

    async def reply(self, text: str, **options: Any) -> Message:
        """Send *text* as a reply to the update's message."""
        message = self.message
        if message is None:
            raise BadContextError(f"update {self.update_id} has no message to reply to")
        options.setdefault("reply_to_message_id", message.message_id)
        return await call_async(self.bot.client.send_message, message.chat.id, text, **options)

    async def edit(self, text: str, **options: Any) -> Union[Message, bool]:
        """Edit the update's message (or the inline message behind a callback)."""
        callback = self.callback
        if callback is not None and callback.inline_message_id:
            return await call_async(
                self.bot.client.edit_message_text, text,
                inline_message_id=callback.inline_message_id, **options,
            )
        message = self.message
        if message is None:
            raise BadContextError(f"update {self.update_id} has no message to edit")
        return await call_async(
            self.bot.client.edit_message_text, text,
            chat_id=message.chat.id, message_id=message.message_id, **options,
        )

    async def delete(self) -> bool:
        message = self.message
        if message is None:
            raise BadContextError(f"update {self.update_id} has no message to delete")
        return await call_async(self.bot.client.delete_message, message.chat.id, message.message_id)

    async def notify(self, action: str) -> bool:
        """Show a chat action such as ``"typing"``."""
        chat = self._require_chat()
        return await call_async(self.bot.client.send_chat_action, chat.id, action)

    async def respond(self, text: Optional[str] = None, show_alert: bool = False) -> bool:
        """Answer the callback query so the client stops showing a spinner."""
        callback = self.callback
        if callback is None:
            raise BadContextError(f"update {self.update_id} is not a callback query")
        return await call_async(
            self.bot.client.answer_callback_query, callback.id,
            text=text, show_alert=show_alert or None,
        )

    async def answer(self, results: List[Any], **options: Any) -> bool:
        """Answer the inline query with *results*."""
        query = self.query
        if query is None:
            raise BadContextError(f"update {self.update_id} is not an inline query")
        return await call_async(self.bot.client.answer_inline_query, query.id, results, **options)

    async def accept(self, error_message: Optional[str] = None) -> bool:
        """Confirm a shipping or pre-checkout query; pass *error_message* to decline it."""
        ok = error_message is None
        if self.shipping_query is not None:
            return await call_async(
                self.bot.client.answer_shipping_query, self.shipping_query.id,
                ok, error_message=error_message,
            )
        if self.pre_checkout_query is not None:
            return await call_async(
                self.bot.client.answer_pre_checkout_query, self.pre_checkout_query.id,
                ok, error_message=error_message,
            )
        raise BadContextError(f"update {self.update_id} is neither a shipping nor a pre-checkout query")
