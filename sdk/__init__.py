"""Telegram Bot API SDK: Pydantic models, the HTTP client and its exceptions.

The :class:`BotAPIClient` class wraps the Bot API endpoints with synchronous
methods; :func:`sdk.client.call_async` runs them off the event loop for the
dispatch layer.

Usage::

    from sdk import BotAPIClient, APIException
    from sdk.models import User, Message, Update
    from sdk.client import call_async
"""

from sdk.client import BotAPIClient
from sdk.exceptions import APIException, AuthError, FetchError, WebhookRegistrationError

__all__ = [
    "BotAPIClient",
    "APIException",
    "AuthError",
    "FetchError",
    "WebhookRegistrationError",
]
