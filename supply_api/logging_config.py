"""
Structured logging for the supply API.

Both structlog loggers and plain ``logging.getLogger(__name__)`` loggers end
up on one stdout handler. Output is JSON lines unless the level is DEBUG, in
which case the console renderer is used. Anything that looks like an upstream
credential is masked before rendering.
"""

import logging
import sys
from typing import Any, Iterable, MutableMapping, Optional, TextIO

import structlog

from .config import settings

SECRET_KEYS = frozenset({"api_key", "cmc_api_key", "x-cmc_pro_api_key", "authorization"})
QUIET_LOGGERS = ("uvicorn.access", "httpcore", "httpx")


def redact_secrets(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    for key in list(event_dict):
        if key.lower() in SECRET_KEYS and event_dict[key]:
            event_dict[key] = "***"
    return event_dict


def _pre_chain() -> list:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: Optional[str] = None,
    stream: TextIO = sys.stdout,
    quiet: Iterable[str] = QUIET_LOGGERS,
) -> None:
    """Install the structlog formatter on the root logger.

    Args:
        log_level: Override for ``settings.log_level``
        stream: Where rendered lines are written
        quiet: Loggers capped at WARNING, chatty HTTP internals by default
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    pre_chain = _pre_chain()
    if level == logging.DEBUG:
        renderer = structlog.dev.ConsoleRenderer()
    else:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer()

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)
