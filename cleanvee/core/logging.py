import logging
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE = Path("logs/cleanvee.log")

# Chatty at INFO; only shown when the app itself runs at DEBUG
NOISY_LOGGERS = ("sqlalchemy.engine", "httpx", "arq.worker")


def _add_service(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault("service", "cleanvee")
    return event_dict


def configure_logging(level: str = "INFO", log_format: str = "json") -> None:
    """Route structlog and stdlib logging to stdout (and logs/cleanvee.log if present).

    Args:
        level: Root log level name
        log_format: "json" for worker deployments, "text" for a terminal
    """
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _add_service,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE.parent.exists():
        handlers.append(logging.FileHandler(LOG_FILE))

    root_level = level.upper()
    logging.basicConfig(format="%(message)s", handlers=handlers, level=root_level)

    if root_level != "DEBUG":
        for name in NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
