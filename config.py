"""Application configuration: environment variables and derived constants.

Loads the bot token, API URL, polling and webhook options from the
environment via ``python-dotenv``.  All values are resolved at import time
so other modules can ``from config import …`` without repeated lookups.
"""

# ── stdlib ───────────────────────────────────────────────────────────────────
import logging
import os

# ── third-party ──────────────────────────────────────────────────────────────
from dotenv import load_dotenv

# ── core ─────────────────────────────────────────────────────────────────────
from core.logger import TelepulseLogger

# ── Environment bootstrap ────────────────────────────────────────────────────
load_dotenv()

# ── Logger (used for startup diagnostics at the bottom of this module) ───────
logger = TelepulseLogger.get_logger()


# ── Helper functions (private) ───────────────────────────────────────────────


def _parse_bool(raw: str | None, default: bool = False) -> bool:
    """Interpret ``1/true/yes/on`` (any case) as true; empty means *default*."""
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_int(raw: str | None, default: int) -> int:
    """Parse an integer setting, falling back to *default* on bad input."""
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric setting", extra={"value": raw, "default": default})
        return default


def _parse_level(raw: str | None) -> int:
    """Map a level name (``DEBUG``, ``info`` ...) to its numeric value."""
    level = logging.getLevelName((raw or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO


# ── Public constants ─────────────────────────────────────────────────────────

BOT_TOKEN: str | None = os.environ.get("BOT_TOKEN")
API_URL: str = os.environ.get("API_URL") or "https://api.telegram.org"
POLL_TIMEOUT: int = _parse_int(os.environ.get("POLL_TIMEOUT"), 10)
WEBHOOK_LISTEN: str = os.environ.get("WEBHOOK_LISTEN", "")
WEBHOOK_PUBLIC_URL: str = os.environ.get("WEBHOOK_PUBLIC_URL", "")
WEBHOOK_PATH: str = os.environ.get("WEBHOOK_PATH") or "/"
WEBHOOK_SECRET: str | None = os.environ.get("WEBHOOK_SECRET") or None
SYNCHRONOUS: bool = _parse_bool(os.environ.get("SYNCHRONOUS"))
LOG_LEVEL: int = _parse_level(os.environ.get("LOG_LEVEL"))


# ── Startup diagnostics ─────────────────────────────────────────────────────

TelepulseLogger.set_level(LOG_LEVEL)

if BOT_TOKEN:
    logger.info("Config loaded, BOT_TOKEN is set", extra={"api_url": API_URL})
else:
    logger.warning("Config loaded, BOT_TOKEN is NOT set")

if WEBHOOK_LISTEN or WEBHOOK_PUBLIC_URL:
    logger.info("Webhook mode configured", extra={"listen": WEBHOOK_LISTEN, "public_url": WEBHOOK_PUBLIC_URL, "path": WEBHOOK_PATH})
else:
    logger.info("Long polling configured", extra={"poll_timeout": POLL_TIMEOUT})
