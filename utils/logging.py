"""
Structured JSON logging for the website.

Records go through a bounded queue to a listener thread that writes them to
the console, a daily-rotated ``website.log`` and an errors-only JSONL file,
so request handlers never block on disk I/O.
"""

import atexit
import json
import logging
import logging.handlers
import queue
from pathlib import Path

from config.config_loader import ConfigLoader

ROTATION_BACKUP_DAYS = 30
QUEUE_SIZE = 1000

# Record attributes copied to top-level JSON keys when a log call passes them
_EXTRA_FIELDS = (
    "user_id",
    "guild_id",
    "endpoint",
    "method",
    "status",
    "cause",
    "set_keys",
    "unset_keys",
)

# Third-party loggers that are too chatty at INFO. httpx logs full request
# URLs, including OAuth query strings.
_QUIET_LOGGERS = ("httpx", "httpcore", "pymongo")

_listener: logging.handlers.QueueListener | None = None
_atexit_registered = False


class CustomJsonFormatter(logging.Formatter):
    """One JSON object per line, with the request id when inside a request."""

    def __init__(self, datefmt: str | None = None) -> None:
        super().__init__(datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        # Deferred: request_id lives in the web package, which imports this module.
        from web.backend.core.request_id import get_request_id

        payload = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "funcName": record.funcName,
            "lineno": record.lineno,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            payload["request_id"] = request_id

        payload.update(
            {name: getattr(record, name) for name in _EXTRA_FIELDS if hasattr(record, name)}
        )

        if record.exc_info:
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, ensure_ascii=False, default=str)


def _rotating_handler(path: Path, level: int) -> logging.handlers.TimedRotatingFileHandler:
    handler = logging.handlers.TimedRotatingFileHandler(
        filename=str(path),
        when="midnight",
        interval=1,
        backupCount=ROTATION_BACKUP_DAYS,
        utc=True,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    return handler


def _error_log_namer(default_name: str) -> str:
    """``errors.jsonl.2024-01-31`` -> ``errors_2024-01-31.jsonl``."""
    base, date_part = default_name.rsplit(".", 1)
    return str(Path(base).with_name(f"errors_{date_part}.jsonl"))


def _build_handlers(log_path: Path, level: int) -> list[logging.Handler]:
    errors_dir = log_path.parent / "errors"
    errors_dir.mkdir(parents=True, exist_ok=True)

    error_handler = _rotating_handler(errors_dir / "errors.jsonl", logging.ERROR)
    error_handler.namer = _error_log_namer  # type: ignore[assignment]

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    handlers: list[logging.Handler] = [
        _rotating_handler(log_path, level),
        console_handler,
        error_handler,
    ]
    formatter = CustomJsonFormatter(datefmt="%Y-%m-%d %H:%M:%S")
    for handler in handlers:
        handler.setFormatter(formatter)
    return handlers


def _stop_listener() -> None:
    global _listener
    if _listener is not None:
        _listener.stop()
        _listener = None


def setup_logging(log_file: str = "logs/website.log") -> None:
    """
    Route the root logger through a queue to the JSON handlers.

    The level comes from ``logging.level`` in config.yaml. Calling this again
    (tests, reloads) replaces the previous handlers and listener.

    Args:
        log_file: Path to the main log file; the errors file goes in an
            ``errors/`` directory next to it.
    """
    global _listener, _atexit_registered

    config = ConfigLoader.load_config()
    level_name = str((config.get("logging") or {}).get("level", "INFO")).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    _stop_listener()

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=QUEUE_SIZE)
    queue_handler = logging.handlers.QueueHandler(log_queue)
    queue_handler.setLevel(level)
    root.addHandler(queue_handler)

    _listener = logging.handlers.QueueListener(
        log_queue, *_build_handlers(Path(log_file), level), respect_handler_level=True
    )
    _listener.start()

    if not _atexit_registered:
        atexit.register(_stop_listener)
        _atexit_registered = True

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Convenience method for retrieving a logger
    """
    return logging.getLogger(name)
