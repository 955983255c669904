"""Handler registry: the mapping from event kinds to handlers.

Design:
- ``HandlerFunc`` is a :class:`Protocol` describing a handler: a callable
  taking a :class:`~bot.context.Context`, either ``async def`` or plain.
- ``HandlerRegistry`` stores ``HandlerEntry`` records keyed by a normalised
  string: a command (``"/start"``), a literal message text (``"Hello"``),
  an :class:`~bot.endpoints.Endpoint` value (``"\\atext"``), or a callback
  unique token (``"\\fmenu"``).
- Re-registering a key replaces the previous handler (last write wins).
- A re-entrant lock guards the mapping so handlers may be registered while
  the dispatch loop is already running.
"""

from __future__ import annotations

import dataclasses
import threading
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Optional,
    Protocol,
    Union,
    runtime_checkable,
)

from bot.endpoints import Endpoint
from bot.errors import InvalidEndpointError
from core.logger import TelepulseLogger

if TYPE_CHECKING:
    from bot.context import Context

logger = TelepulseLogger.get_logger()

# ── Handler protocol ─────────────────────────────────────────────────────────


@runtime_checkable
class HandlerFunc(Protocol):
    """A handler invoked with the per-update context."""
    def __call__(self, ctx: "Context") -> Union[Awaitable[Any], Any]: ...  # noqa: E704


# Wraps a handler into another handler (logging, access checks, ...).
MiddlewareFunc = Callable[[HandlerFunc], HandlerFunc]


@runtime_checkable
class CallbackUniqueKey(Protocol):
    """Anything that can name a callback-unique handler (buttons, CallbackUnique)."""
    def callback_unique(self) -> str: ...  # noqa: E704


# ── Registry entry ───────────────────────────────────────────────────────────


@dataclasses.dataclass(frozen=True, slots=True)
class HandlerEntry:
    """A single registered handler."""
    key: str                  # normalised registry key
    handler: HandlerFunc      # handler with middleware already applied
    source: Any = None        # what the caller passed to register()


def normalize_key(endpoint: Any) -> str:
    """Turn a registration key into the string stored in the registry.

    * ``Endpoint.TEXT`` → ``"\\atext"``
    * ``"/start"`` → ``"/start"`` (command)
    * ``"Hello"`` → ``"Hello"`` (exact message text, e.g. a reply-keyboard label)
    * ``CallbackUnique("menu")`` or an inline button → ``"\\fmenu"``

    Raises:
        InvalidEndpointError: For any other key type, an empty string or a bare ``"/"``.
    """
    if isinstance(endpoint, Endpoint):
        return endpoint.value
    if isinstance(endpoint, str):
        if endpoint in ("", "/"):
            raise InvalidEndpointError("empty command or text cannot be registered")
        return endpoint
    if isinstance(endpoint, CallbackUniqueKey):
        return endpoint.callback_unique()
    raise InvalidEndpointError(
        f"handle() supports commands, texts, endpoints and callback uniques, got {type(endpoint).__name__}"
    )


class HandlerRegistry:
    """Thread-safe mapping of registry keys to handlers.

    Usage::

        registry = HandlerRegistry()
        registry.register("/start", on_start)
        registry.register(Endpoint.TEXT, on_text)

        # In the dispatcher:
        handler = registry.get("/start")
    """

    def __init__(self) -> None:
        self._entries: dict[str, HandlerEntry] = {}
        self._lock = threading.RLock()

    def register(self, endpoint: Any, handler: HandlerFunc) -> HandlerEntry:
        """Bind *handler* to *endpoint*, replacing any previous binding.

        Raises:
            InvalidEndpointError: If *endpoint* has an unsupported type or
                *handler* is not callable.
        """
        if not callable(handler):
            raise InvalidEndpointError(f"handler for {endpoint!r} is not callable")
        key = normalize_key(endpoint)
        entry = HandlerEntry(key=key, handler=handler, source=endpoint)
        with self._lock:
            replaced = key in self._entries
            self._entries[key] = entry
        logger.debug("Handler registered", extra={"endpoint": key, "replaced": replaced})
        return entry

    def unregister(self, endpoint: Any) -> bool:
        """Remove the binding for *endpoint*. Returns ``True`` if one existed."""
        key = normalize_key(endpoint)
        with self._lock:
            return self._entries.pop(key, None) is not None

    # ── lookup helpers ───────────────────────────────────────────────────

    def get(self, key: Any) -> Optional[HandlerFunc]:
        """Return the handler for *key* (a raw registry key or any registrable key), or ``None``."""
        if not isinstance(key, str) or isinstance(key, Endpoint):
            key = normalize_key(key)
        with self._lock:
            entry = self._entries.get(key)
        return entry.handler if entry is not None else None

    def __contains__(self, key: Any) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def entries(self) -> dict[str, HandlerEntry]:
        """Return a snapshot of all registered handlers."""
        with self._lock:
            return dict(self._entries)
