"""Classification-level errors raised by :meth:`bot.lifecycle.Bot.process_update`.

They describe what happened to an update, not a failure of the bot: the
polling loop logs them and moves on, while a caller driving dispatch by hand
can branch on the concrete type.
"""

from __future__ import annotations

from typing import Optional, Sequence

from bot.endpoints import Endpoint
from sdk.models import User


class DispatchError(Exception):
    """Base class for every classification outcome other than "handled"."""

    def __init__(self, message: str, update_id: Optional[int] = None) -> None:
        self.update_id = update_id
        super().__init__(message)


class NoHandlerError(DispatchError):
    """The update was classified, but nothing is registered for its event kind."""

    def __init__(self, endpoint: Endpoint | str, update_id: Optional[int] = None) -> None:
        self.endpoint = endpoint
        name = endpoint.label if isinstance(endpoint, Endpoint) else endpoint
        super().__init__(f"no handler registered for {name!r}", update_id)


class PartiallyHandledError(DispatchError):
    """A compound update (several users joined at once) was only partly handled.

    At least one sub-event succeeded; see :class:`SubEventsFailedError` otherwise.

    Attributes:
        endpoint: The per-user event kind.
        handled: Number of per-user sub-events whose handler completed.
        total: Number of per-user sub-events.
        failed_users: Users whose sub-event handler raised.
    """

    def __init__(
        self,
        endpoint: Endpoint,
        handled: int,
        total: int,
        failed_users: Sequence[User] = (),
        update_id: Optional[int] = None,
    ) -> None:
        self.endpoint = endpoint
        self.handled = handled
        self.total = total
        self.failed_users = list(failed_users)
        super().__init__(
            f"{endpoint.label}: handled {handled} of {total} sub-events",
            update_id,
        )


class SubEventsFailedError(DispatchError):
    """Every per-user sub-event of a compound update failed; nothing was handled.

    Attributes:
        endpoint: The per-user event kind.
        total: Number of per-user sub-events.
        failed_users: Users whose sub-event handler raised (all of them).
    """

    def __init__(
        self,
        endpoint: Endpoint,
        failed_users: Sequence[User],
        update_id: Optional[int] = None,
    ) -> None:
        self.endpoint = endpoint
        self.failed_users = list(failed_users)
        self.total = len(self.failed_users)
        super().__init__(f"{endpoint.label}: all {self.total} sub-events failed", update_id)


class MaliciousInputError(DispatchError):
    """The message text starts with a reserved control byte and was rejected."""

    def __init__(self, update_id: Optional[int] = None) -> None:
        super().__init__("message text starts with a reserved control character", update_id)


class ForeignCommandError(DispatchError):
    """A command was addressed to another bot (``/cmd@otherbot``) and ignored."""

    def __init__(self, command: str, bot_name: str, update_id: Optional[int] = None) -> None:
        self.command = command
        self.bot_name = bot_name
        super().__init__(f"command /{command} is addressed to @{bot_name}", update_id)


class UnknownUpdateError(DispatchError):
    """None of the known payload fields are populated."""

    def __init__(self, update_id: Optional[int] = None, reason: str = "no known payload field is set") -> None:
        super().__init__(f"unknown update type: {reason}", update_id)


class InvalidEndpointError(TypeError):
    """``Bot.handle`` was given a key or handler it cannot register."""


class BadContextError(ValueError):
    """A :class:`~bot.context.Context` helper was used on an update it does not apply to."""
