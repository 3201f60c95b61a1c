"""
observability/logger.py — xmppctl Structured Logger

Every command writes JSON lines to a rotating file under logging.log_dir.
Operator output goes through Rich consoles, so the logger never writes to
stdout; with logging.console_output enabled it mirrors to stderr instead.

Usage:
    from xmppctl.observability.logger import get_logger, setup_logging
    setup_logging(level="INFO", log_dir="./data/logs")
    log = get_logger(__name__)
    log.info("dispatch.gateway.sent", to="a@b.com")
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

LOG_FILE_NAME = "xmppctl.log"

_PRE_CHAIN: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt="iso", utc=True),
    structlog.processors.format_exc_info,
]


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_PRE_CHAIN,
    )


def setup_logging(
    level: str = "INFO",
    log_dir: str | Path = "./data/logs",
    json_format: bool = True,
    console_output: bool = False,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure structlog on top of stdlib logging. Call once per process.

    The file is always JSON. json_format only picks the renderer for the
    optional stderr mirror (False gives structlog's coloured dev output).
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=log_dir / LOG_FILE_NAME,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setFormatter(_formatter(structlog.processors.JSONRenderer()))
    handlers: list[logging.Handler] = [file_handler]

    if console_output:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(
            _formatter(
                structlog.processors.JSONRenderer()
                if json_format
                else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
            )
        )
        handlers.append(stderr_handler)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)

    # "Unknown child pid" chatter when the detached gateway outlives the loop
    logging.getLogger("asyncio").setLevel(logging.ERROR)

    structlog.configure(
        processors=_PRE_CHAIN + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "xmppctl", **initial_values: Any) -> structlog.stdlib.BoundLogger:
    """Bound logger for `name`, optionally pre-bound with context values."""
    logger = structlog.get_logger(name)
    if initial_values:
        logger = logger.bind(**initial_values)
    return logger


def bind_command(command: str) -> None:
    """Attach the running CLI command name to every subsequent log line."""
    structlog.contextvars.bind_contextvars(command=command)


def clear_command() -> None:
    structlog.contextvars.clear_contextvars()
