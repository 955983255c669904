"""Exception hierarchy for the Telepulse Telegram SDK."""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from sdk.models import Error


class APIException(Exception):
    """Base exception for non-2xx (or ``ok: false``) responses from the Telegram Bot API.

    Attributes:
        status_code: HTTP status code returned by the API.
        response_body: Raw response body as a dict, when available.
        error: The body parsed as an :class:`~sdk.models.Error` envelope.
    """

    def __init__(self, status_code: int, response_body: Optional[Dict[str, Any]] = None) -> None:
        """Initialise with the HTTP status code and optional body."""
        self.status_code = status_code
        self.response_body = response_body or {}
        defaults = {"error_code": status_code, "description": "Unknown error"}
        try:
            self.error = Error.model_validate({**defaults, **self.response_body})
        except ValidationError:
            self.error = Error.model_validate(defaults)
        self.description = self.error.description
        super().__init__(f"API error {status_code}: {self.description}")

    @property
    def retry_after(self) -> Optional[int]:
        """Seconds Telegram asked us to wait (flood control), if any."""
        parameters = self.error.parameters
        return parameters.retry_after if parameters is not None else None


class AuthError(APIException):
    """The bot token was rejected by the API (HTTP 401)."""


class FetchError(Exception):
    """Something went wrong while fetching updates.

    Wraps the underlying transport or API error in :attr:`cause`.
    """

    def __init__(self, cause: Exception) -> None:
        self.cause = cause
        super().__init__(f"getUpdates failed: {cause}")


class WebhookRegistrationError(Exception):
    """``setWebhook`` failed, so the webhook listener cannot be started."""

    def __init__(self, description: str, cause: Optional[Exception] = None) -> None:
        self.description = description
        self.cause = cause
        super().__init__(f"cannot register webhook: {description}")
