"""BotAPIClient -- service layer wrapping the Telegram Bot API calls Telepulse makes.

All methods accept plain values or Pydantic models and return Pydantic models
(or plain scalars where the API returns ``True``).  HTTP calls use the
``requests`` library; the dispatch layer offloads them from the event loop
with :func:`call_async`.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, BinaryIO, Callable, Dict, List, Optional, TypeVar, Union

import requests
from pydantic import BaseModel

from core.logger import TelepulseLogger
from sdk.exceptions import APIException, AuthError
from sdk.models import (
    BotCommand,
    InlineKeyboardMarkup,
    Message,
    MessageEntity,
    ReplyMarkupType,
    Update,
    User,
    WebhookInfo,
)

logger = TelepulseLogger.get_logger()

T = TypeVar("T")

DEFAULT_API_URL = "https://api.telegram.org"


def _serialize(value: Any) -> Any:
    """Turn Pydantic models (and lists of them) into JSON-ready structures."""
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, exclude_none=True)
    if isinstance(value, (list, tuple)):
        return [_serialize(item) for item in value]
    if isinstance(value, dict):
        return {key: _serialize(item) for key, item in value.items()}
    return value


class BotAPIClient:
    """Client-side service layer for the Telegram Bot API.

    Each public method corresponds to a Telegram Bot API endpoint.
    The client validates responses with Pydantic models and raises
    :class:`APIException` for non-2xx status codes or ``ok: false`` bodies.
    """

    _DEFAULT_TIMEOUT: int = 10

    def __init__(self, base_url: str, timeout: int = _DEFAULT_TIMEOUT) -> None:
        """Create a new client bound to *base_url*.

        Args:
            base_url: Full Bot API base URL (e.g. ``https://api.telegram.org/bot<token>``).
            timeout: Default request timeout in seconds.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @classmethod
    def for_token(cls, token: str, api_url: str = DEFAULT_API_URL, timeout: int = _DEFAULT_TIMEOUT) -> "BotAPIClient":
        """Build a client for *token* against *api_url*."""
        return cls(f"{api_url.rstrip('/')}/bot{token}", timeout=timeout)

    # ------------------------------------------------------------------
    #  Internal helpers
    # ------------------------------------------------------------------

    def _post(
        self,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, BinaryIO]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Send a POST request and return the parsed JSON body.

        With *files* the request is sent as ``multipart/form-data`` and
        non-string payload values are JSON-encoded, as the API requires.

        Raises:
            AuthError: If the API rejects the token (HTTP 401).
            APIException: If the response status code is not 2xx or the body says ``ok: false``.
            requests.RequestException: On transport-level failures.
        """
        url = f"{self._base_url}/{endpoint.lstrip('/')}"
        body_payload = _serialize(payload or {})
        if files:
            form = {
                key: value if isinstance(value, str) else json.dumps(value)
                for key, value in body_payload.items()
            }
            response = requests.post(url, data=form, files=files, timeout=timeout or self._timeout)
        else:
            response = requests.post(url, json=body_payload, timeout=timeout or self._timeout)
        try:
            body = response.json()
        except ValueError:
            body = {}
        if response.status_code == 401:
            raise AuthError(response.status_code, body)
        if not response.ok or body.get("ok") is False:
            raise APIException(response.status_code, body)
        return body

    def _result(self, endpoint: str, payload: Optional[Dict[str, Any]] = None, **kwargs: Any) -> Any:
        """Call *endpoint* and unwrap the ``result`` field of the response."""
        return self._post(endpoint, payload, **kwargs).get("result")

    # ------------------------------------------------------------------
    #  Getting updates
    # ------------------------------------------------------------------

    def get_updates(self, offset: Optional[int] = None, limit: Optional[int] = 100, timeout: Optional[int] = 0, allowed_updates: Optional[List[str]] = None) -> List[Update]:
        """Receive incoming updates using long polling. An empty list means there was nothing new."""
        payload: Dict[str, Any] = {}
        if offset is not None:
            payload["offset"] = offset
        if limit is not None:
            payload["limit"] = limit
        if timeout is not None:
            payload["timeout"] = timeout
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates
        # The server may hold the request for `timeout` seconds; give the transport room on top.
        result = self._result("getUpdates", payload, timeout=(timeout or 0) + self._timeout)
        return [Update.model_validate(item) for item in result or []]

    def set_webhook(self, url: str, certificate: Optional[BinaryIO] = None, ip_address: Optional[str] = None, max_connections: Optional[int] = None, allowed_updates: Optional[List[str]] = None, drop_pending_updates: Optional[bool] = None, secret_token: Optional[str] = None) -> bool:
        """Specify a url and receive incoming updates via an outgoing webhook.

        A self-signed *certificate* is uploaded as a multipart file.
        """
        payload: Dict[str, Any] = {}
        payload["url"] = url
        if ip_address is not None:
            payload["ip_address"] = ip_address
        if max_connections is not None:
            payload["max_connections"] = max_connections
        if allowed_updates is not None:
            payload["allowed_updates"] = allowed_updates
        if drop_pending_updates is not None:
            payload["drop_pending_updates"] = drop_pending_updates
        if secret_token is not None:
            payload["secret_token"] = secret_token
        files = {"certificate": certificate} if certificate is not None else None
        return bool(self._result("setWebhook", payload, files=files))

    def delete_webhook(self, drop_pending_updates: Optional[bool] = None) -> bool:
        """Remove webhook integration so that getUpdates can be used again."""
        payload: Dict[str, Any] = {}
        if drop_pending_updates is not None:
            payload["drop_pending_updates"] = drop_pending_updates
        return bool(self._result("deleteWebhook", payload))

    def get_webhook_info(self) -> WebhookInfo:
        """Get current webhook status."""
        return WebhookInfo.model_validate(self._result("getWebhookInfo"))

    # ------------------------------------------------------------------
    #  Bot identity
    # ------------------------------------------------------------------

    def get_me(self) -> User:
        """A simple method for testing your bot's auth token. Returns basic information about the bot."""
        return User.model_validate(self._result("getMe"))

    def set_my_commands(self, commands: List[BotCommand]) -> bool:
        """Change the list of the bot's commands."""
        return bool(self._result("setMyCommands", {"commands": commands}))

    # ------------------------------------------------------------------
    #  Messages
    # ------------------------------------------------------------------

    def send_message(self, chat_id: Union[int, str], text: str, parse_mode: Optional[str] = None, entities: Optional[List[MessageEntity]] = None, disable_web_page_preview: Optional[bool] = None, disable_notification: Optional[bool] = None, reply_to_message_id: Optional[int] = None, allow_sending_without_reply: Optional[bool] = None, reply_markup: Optional[ReplyMarkupType] = None) -> Message:
        """Send a text message. On success, the sent Message is returned."""
        payload: Dict[str, Any] = {}
        payload["chat_id"] = chat_id
        payload["text"] = text
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        if entities is not None:
            payload["entities"] = entities
        if disable_web_page_preview is not None:
            payload["disable_web_page_preview"] = disable_web_page_preview
        if disable_notification is not None:
            payload["disable_notification"] = disable_notification
        if reply_to_message_id is not None:
            payload["reply_to_message_id"] = reply_to_message_id
        if allow_sending_without_reply is not None:
            payload["allow_sending_without_reply"] = allow_sending_without_reply
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        return Message.model_validate(self._result("sendMessage", payload))

    def edit_message_text(self, text: str, chat_id: Optional[Union[int, str]] = None, message_id: Optional[int] = None, inline_message_id: Optional[str] = None, parse_mode: Optional[str] = None, reply_markup: Optional[InlineKeyboardMarkup] = None) -> Union[Message, bool]:
        """Edit text messages. Returns the edited Message, or ``True`` for inline messages."""
        payload: Dict[str, Any] = {}
        payload["text"] = text
        if chat_id is not None:
            payload["chat_id"] = chat_id
        if message_id is not None:
            payload["message_id"] = message_id
        if inline_message_id is not None:
            payload["inline_message_id"] = inline_message_id
        if parse_mode is not None:
            payload["parse_mode"] = parse_mode
        if reply_markup is not None:
            payload["reply_markup"] = reply_markup
        result = self._result("editMessageText", payload)
        if isinstance(result, dict):
            return Message.model_validate(result)
        return bool(result)

    def delete_message(self, chat_id: Union[int, str], message_id: int) -> bool:
        """Delete a message, including service messages."""
        return bool(self._result("deleteMessage", {"chat_id": chat_id, "message_id": message_id}))

    def send_chat_action(self, chat_id: Union[int, str], action: str) -> bool:
        """Tell the user that something is happening on the bot's side (``typing``, ``upload_photo``...)."""
        return bool(self._result("sendChatAction", {"chat_id": chat_id, "action": action}))

    # ------------------------------------------------------------------
    #  Query answers
    # ------------------------------------------------------------------

    def answer_callback_query(self, callback_query_id: str, text: Optional[str] = None, show_alert: Optional[bool] = None, url: Optional[str] = None, cache_time: Optional[int] = None) -> bool:
        """Send an answer to a callback query sent from an inline keyboard."""
        payload: Dict[str, Any] = {}
        payload["callback_query_id"] = callback_query_id
        if text is not None:
            payload["text"] = text
        if show_alert is not None:
            payload["show_alert"] = show_alert
        if url is not None:
            payload["url"] = url
        if cache_time is not None:
            payload["cache_time"] = cache_time
        return bool(self._result("answerCallbackQuery", payload))

    def answer_inline_query(self, inline_query_id: str, results: List[Any], cache_time: Optional[int] = None, is_personal: Optional[bool] = None, next_offset: Optional[str] = None) -> bool:
        """Send answers to an inline query. No more than 50 results per query are allowed."""
        payload: Dict[str, Any] = {}
        payload["inline_query_id"] = inline_query_id
        payload["results"] = results
        if cache_time is not None:
            payload["cache_time"] = cache_time
        if is_personal is not None:
            payload["is_personal"] = is_personal
        if next_offset is not None:
            payload["next_offset"] = next_offset
        return bool(self._result("answerInlineQuery", payload))

    def answer_shipping_query(self, shipping_query_id: str, ok: bool, shipping_options: Optional[List[Any]] = None, error_message: Optional[str] = None) -> bool:
        """Reply to a shipping query sent for an invoice with a flexible price."""
        payload: Dict[str, Any] = {}
        payload["shipping_query_id"] = shipping_query_id
        payload["ok"] = ok
        if shipping_options is not None:
            payload["shipping_options"] = shipping_options
        if error_message is not None:
            payload["error_message"] = error_message
        return bool(self._result("answerShippingQuery", payload))

    def answer_pre_checkout_query(self, pre_checkout_query_id: str, ok: bool, error_message: Optional[str] = None) -> bool:
        """Respond to a pre-checkout query. Must be answered within 10 seconds."""
        payload: Dict[str, Any] = {}
        payload["pre_checkout_query_id"] = pre_checkout_query_id
        payload["ok"] = ok
        if error_message is not None:
            payload["error_message"] = error_message
        return bool(self._result("answerPreCheckoutQuery", payload))

    # ------------------------------------------------------------------
    #  Chat join requests
    # ------------------------------------------------------------------

    def approve_chat_join_request(self, chat_id: Union[int, str], user_id: int) -> bool:
        """Approve a chat join request."""
        return bool(self._result("approveChatJoinRequest", {"chat_id": chat_id, "user_id": user_id}))

    def decline_chat_join_request(self, chat_id: Union[int, str], user_id: int) -> bool:
        """Decline a chat join request."""
        return bool(self._result("declineChatJoinRequest", {"chat_id": chat_id, "user_id": user_id}))


# ── Async bridge ─────────────────────────────────────────────────────────────
#
# The client is synchronous; the dispatch layer runs on asyncio.  Blocking
# calls are offloaded via :func:`asyncio.to_thread` so the event loop is
# never blocked.


async def call_async(func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking :class:`BotAPIClient` call inside a thread.

    Example::

        me = await call_async(client.get_me)
    """
    api_endpoint = getattr(func, "__name__", repr(func))
    logger.debug("Calling Bot API", extra={"api_endpoint": api_endpoint})
    return await asyncio.to_thread(func, *args, **kwargs)
