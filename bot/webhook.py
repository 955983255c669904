"""Webhook update source built on ``aiohttp.web``.

:class:`Webhook` registers itself with ``setWebhook`` and then either runs
its own aiohttp server on ``listen`` or, with ``listen`` empty, leaves
serving to the caller, who mounts :meth:`Webhook.make_app` (or routes
:meth:`Webhook.handle_request`) into an existing application.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import ssl
from typing import TYPE_CHECKING, BinaryIO, Iterator, List, Optional

from aiohttp import web
from pydantic import ValidationError

from bot.pollers import deliver
from core.logger import TelepulseLogger
from sdk.client import call_async
from sdk.exceptions import WebhookRegistrationError
from sdk.models import Update

if TYPE_CHECKING:
    from bot.lifecycle import Bot, StopSignal

logger = TelepulseLogger.get_logger()

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


@dataclasses.dataclass
class WebhookTLS:
    """Key and certificate files for serving HTTPS directly."""
    key: str
    cert: str


@dataclasses.dataclass
class WebhookEndpoint:
    """Public address Telegram should call, e.g. behind a reverse proxy.

    ``cert`` is an optional self-signed certificate to upload with
    ``setWebhook``.
    """
    public_url: str
    cert: Optional[str] = None


class Webhook:
    """Receives updates pushed by Telegram.

    Args:
        listen: ``"host:port"`` to serve on; empty to mount the handler yourself.
        path: URL path the handler answers on.
        tls: Serve HTTPS with these files and advertise an ``https://`` URL.
        endpoint: Advertised public URL (and certificate) overriding *listen*.
        allowed_updates: Update kinds Telegram should send.
        max_connections: Simultaneous connections Telegram may open.
        drop_pending_updates: Drop updates queued before registration.
        secret_token: Required value of the secret-token header on every request.
    """

    def __init__(
        self,
        listen: str = "",
        path: str = "/",
        tls: Optional[WebhookTLS] = None,
        endpoint: Optional[WebhookEndpoint] = None,
        allowed_updates: Optional[List[str]] = None,
        max_connections: Optional[int] = None,
        drop_pending_updates: Optional[bool] = None,
        secret_token: Optional[str] = None,
    ) -> None:
        self.listen = listen
        self.path = path if path.startswith("/") else "/" + path
        self.tls = tls
        self.endpoint = endpoint
        self.allowed_updates = allowed_updates
        self.max_connections = max_connections
        self.drop_pending_updates = drop_pending_updates
        self.secret_token = secret_token

        self._bot: Optional["Bot"] = None
        self._dest: Optional[asyncio.Queue] = None
        self._stop: Optional["StopSignal"] = None

    def __repr__(self) -> str:
        return f"Webhook(listen={self.listen!r}, path={self.path!r})"

    # ── Registration ─────────────────────────────────────────────────────

    @property
    def url(self) -> str:
        """URL advertised to Telegram."""
        if self.endpoint is not None and self.endpoint.public_url:
            return self.endpoint.public_url
        scheme = "https" if self.tls is not None else "http"
        return f"{scheme}://{self.listen}"

    @property
    def certificate_path(self) -> Optional[str]:
        """Certificate to upload: the endpoint's if an endpoint is set, else the TLS one."""
        if self.endpoint is not None:
            return self.endpoint.cert
        if self.tls is not None:
            return self.tls.cert
        return None

    @contextlib.contextmanager
    def _certificate(self) -> Iterator[Optional[BinaryIO]]:
        path = self.certificate_path
        if not path:
            yield None
            return
        with open(path, "rb") as fh:
            yield fh

    def _set_webhook(self, bot: "Bot") -> bool:
        with self._certificate() as certificate:
            return bot.client.set_webhook(
                self.url,
                certificate=certificate,
                max_connections=self.max_connections,
                allowed_updates=self.allowed_updates,
                drop_pending_updates=self.drop_pending_updates,
                secret_token=self.secret_token,
            )

    async def register(self, bot: "Bot") -> None:
        """Call ``setWebhook`` once.

        Raises:
            WebhookRegistrationError: On any transport or API failure.
        """
        try:
            ok = await call_async(self._set_webhook, bot)
        except Exception as exc:
            raise WebhookRegistrationError(str(exc), exc) from exc
        if not ok:
            raise WebhookRegistrationError("setWebhook returned false")
        logger.info("Webhook registered", extra={"url": self.url, "path": self.path})

    # ── Serving ──────────────────────────────────────────────────────────

    def make_app(self) -> web.Application:
        """aiohttp application answering ``POST`` on :attr:`path`."""
        app = web.Application()
        app.router.add_post(self.path, self.handle_request)
        return app

    def _ssl_context(self) -> Optional[ssl.SSLContext]:
        if self.tls is None:
            return None
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.load_cert_chain(self.tls.cert, self.tls.key)
        return context

    async def handle_request(self, request: web.Request) -> web.Response:
        """Decode one update from the request body and queue it."""
        if self.secret_token and request.headers.get(SECRET_HEADER) != self.secret_token:
            logger.warning("Webhook request with wrong secret token", extra={"remote": request.remote})
            return web.Response(status=401)
        if self._dest is None or self._stop is None:
            return web.Response(status=503)

        try:
            update = Update.model_validate(await request.json())
        except (ValueError, ValidationError) as exc:
            self._bot.debug(exc)
            return web.Response(status=400)

        if not await deliver(self._dest, update, self._stop):
            return web.Response(status=503)
        return web.Response(status=200)

    async def poll(self, bot: "Bot", dest: "asyncio.Queue[Update]", stop: "StopSignal") -> None:
        self._bot, self._dest, self._stop = bot, dest, stop
        try:
            try:
                await self.register(bot)
            except WebhookRegistrationError as exc:
                bot.debug(exc)
                stop.close()
                return

            if not self.listen:
                logger.info("Webhook has no listen address; waiting for mounted handler")
                await stop.wait()
                return

            host, _, port = self.listen.rpartition(":")
            runner = web.AppRunner(self.make_app())
            await runner.setup()
            try:
                site = web.TCPSite(runner, host or None, int(port), ssl_context=self._ssl_context())
                await site.start()
                logger.info("Webhook server listening", extra={"listen": self.listen, "path": self.path})
                await stop.wait()
            finally:
                await runner.cleanup()
                logger.info("Webhook server stopped", extra={"listen": self.listen})
        finally:
            self._dest = self._stop = None
