"""Telepulse example bot: echoes text and demonstrates commands and inline buttons.

Runs a webhook when ``WEBHOOK_LISTEN`` or ``WEBHOOK_PUBLIC_URL`` is set,
long polling otherwise.  SIGINT/SIGTERM stop the bot gracefully.
"""

import asyncio
import signal

from config import (
    API_URL,
    BOT_TOKEN,
    POLL_TIMEOUT,
    SYNCHRONOUS,
    WEBHOOK_LISTEN,
    WEBHOOK_PATH,
    WEBHOOK_PUBLIC_URL,
    WEBHOOK_SECRET,
)
from bot import Bot, Context, Endpoint, InlineButton, LongPoller, ReplyMarkup, Settings, Webhook, WebhookEndpoint
from core.logger import TelepulseLogger

logger = TelepulseLogger.get_logger()

btn_ping = InlineButton("ping", "Ping")


def build_poller():
    """Pick the update source from configuration."""
    if WEBHOOK_LISTEN or WEBHOOK_PUBLIC_URL:
        endpoint = WebhookEndpoint(public_url=WEBHOOK_PUBLIC_URL) if WEBHOOK_PUBLIC_URL else None
        return Webhook(listen=WEBHOOK_LISTEN, path=WEBHOOK_PATH, endpoint=endpoint, secret_token=WEBHOOK_SECRET)
    return LongPoller(timeout=POLL_TIMEOUT)


async def on_start(ctx: Context) -> None:
    name = ctx.sender.first_name if ctx.sender else "there"
    markup = ReplyMarkup().row(btn_ping.with_data(str(ctx.update_id))).inline()
    await ctx.send(f"👋 Hi, {name}! Send me anything and I will echo it back.", reply_markup=markup)


async def on_text(ctx: Context) -> None:
    await ctx.reply(ctx.text)


async def on_ping(ctx: Context) -> None:
    await ctx.respond(f"pong ({ctx.data})")


async def main() -> None:
    if not BOT_TOKEN:
        raise EnvironmentError("BOT_TOKEN environment variable is not set or is empty.")

    bot = Bot(Settings(token=BOT_TOKEN, url=API_URL, poller=build_poller(), synchronous=SYNCHRONOUS))
    bot.handle("/start", on_start)
    bot.handle(Endpoint.TEXT, on_text)
    bot.handle(btn_ping, on_ping)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, bot.stop)

    if isinstance(bot.poller, LongPoller):
        await bot.remove_webhook()

    logger.info("Telepulse bot is running", extra={"poller": repr(bot.poller)})
    await bot.start()


if __name__ == "__main__":
    asyncio.run(main())
