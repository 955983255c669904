"""Library logger for telepulse.

All modules log through one ``logging.Logger`` named ``telepulse``.  Records
are single-line JSON so polling, webhook and dispatch events can be filtered
by field (``update_id``, ``endpoint``, ``api_endpoint``, ``error``) rather
than by grepping message text.

Output goes to stderr and, unless ``TELEPULSE_LOG_DIR`` is set to an empty
string, to a rotating ``telepulse.log`` in that directory (``logs`` by
default).
"""

import json
import logging
import os
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Optional


class _JsonFormatter(logging.Formatter):
    """One JSON object per record, with ``extra`` fields merged at the top level.

    Example::

        logger.debug("Update classified", extra={"update_id": 1042, "endpoint": "text"})

    Produces::

        {"timestamp": "...", "level": "DEBUG", "logger": "telepulse",
         "message": "Update classified", ..., "update_id": 1042, "endpoint": "text"}

    Values that are not JSON-native (models, enums, exceptions) go through ``str``.
    """

    _RECORD_ATTRS: frozenset[str] = frozenset(vars(logging.LogRecord(
        name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None,
    )))

    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "func_name": record.funcName,
        }
        for key, value in record.__dict__.items():
            if key not in self._RECORD_ATTRS and key not in entry:
                entry[key] = value
        # Set when Settings.verbose asks for tracebacks.
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class TelepulseLogger:
    """Owns the shared ``telepulse`` logger and its handlers.

    Usage::

        from core.logger import TelepulseLogger

        logger = TelepulseLogger.get_logger()
        logger.info("Bot started", extra={"poller": "LongPoller"})
    """

    _instance: Optional["TelepulseLogger"] = None
    _logger: Optional[logging.Logger] = None

    NAME: str = "telepulse"
    _LOG_FILE: str = "telepulse.log"
    _MAX_BYTES: int = 5 * 1024 * 1024  # 5 MB
    _BACKUP_COUNT: int = 5

    def __new__(cls, level: int = logging.INFO) -> "TelepulseLogger":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._configure(level)
        return cls._instance

    def _configure(self, level: int) -> None:
        self._logger = logging.getLogger(self.NAME)
        self._logger.setLevel(level)

        # An application may have configured "telepulse" already.
        if self._logger.handlers:
            return

        formatter = _JsonFormatter()

        console = logging.StreamHandler()
        console.setFormatter(formatter)
        self._logger.addHandler(console)

        log_dir = os.environ.get("TELEPULSE_LOG_DIR", "logs")
        if not log_dir:
            return
        os.makedirs(log_dir, exist_ok=True)
        rotating = RotatingFileHandler(
            os.path.join(log_dir, self._LOG_FILE),
            maxBytes=self._MAX_BYTES,
            backupCount=self._BACKUP_COUNT,
            encoding="utf-8",
        )
        rotating.setFormatter(formatter)
        self._logger.addHandler(rotating)

    @staticmethod
    def get_logger(level: int = logging.INFO) -> logging.Logger:
        """Return the shared logger; *level* only applies on the first call."""
        instance = TelepulseLogger(level)
        assert instance._logger is not None
        return instance._logger

    @staticmethod
    def set_level(level: int) -> None:
        """Change the threshold of the shared logger (``Settings.verbose`` sets DEBUG)."""
        TelepulseLogger.get_logger().setLevel(level)
