"""Update dispatch core: update sources, dispatcher, handler registry and bot lifecycle.

This package may import from ``sdk/`` and ``core/`` only.
"""

from bot.context import Context
from bot.dispatcher import classify
from bot.endpoints import CallbackUnique, Endpoint
from bot.errors import (
    BadContextError,
    DispatchError,
    ForeignCommandError,
    InvalidEndpointError,
    MaliciousInputError,
    NoHandlerError,
    PartiallyHandledError,
    SubEventsFailedError,
    UnknownUpdateError,
)
from bot.lifecycle import Bot, Group, Settings, State, StopSignal
from bot.markup import InlineButton, ReplyMarkup
from bot.pollers import Backoff, LongPoller, MiddlewarePoller, Poller
from bot.webhook import Webhook, WebhookEndpoint, WebhookTLS

__all__ = [
    # Lifecycle
    "Bot",
    "Group",
    "Settings",
    "State",
    "StopSignal",
    # Dispatch
    "Context",
    "Endpoint",
    "CallbackUnique",
    "classify",
    # Update sources
    "Poller",
    "LongPoller",
    "MiddlewarePoller",
    "Backoff",
    "Webhook",
    "WebhookTLS",
    "WebhookEndpoint",
    # Keyboards
    "InlineButton",
    "ReplyMarkup",
    # Errors
    "DispatchError",
    "NoHandlerError",
    "PartiallyHandledError",
    "SubEventsFailedError",
    "MaliciousInputError",
    "ForeignCommandError",
    "UnknownUpdateError",
    "InvalidEndpointError",
    "BadContextError",
]
