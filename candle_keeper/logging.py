"""
Structured logging for candle-keeper, built on structlog.

Aggregators log through ``get_logger(__name__).bind(exchange=..., symbol=...)``
so that every event carries the stream it belongs to.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from candle_keeper.config import Settings, get_settings

_initialized = False


def _processor_chain(service_name: str, console: bool) -> list[Processor]:
    def add_service_name(
        logger: Any, method_name: str, event_dict: dict[str, Any]
    ) -> dict[str, Any]:
        event_dict["service"] = service_name
        return event_dict

    chain: list[Processor] = [
        add_service_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if console:
        chain.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        chain.append(structlog.processors.format_exc_info)
        chain.append(structlog.processors.JSONRenderer())
    return chain


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structlog once per process.

    Development renders colored console lines, staging and production one
    JSON object per line on stdout.
    """
    global _initialized

    if _initialized:
        return

    settings = settings or get_settings()

    structlog.configure(
        processors=_processor_chain(settings.service_name, settings.is_development),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )

    _initialized = True


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a configured logger instance, configuring logging on first use.

    Usage:
        logger = get_logger(__name__)
        logger.info("candle_emitted", symbol="BTC-USD", bucket_start=300000)
    """
    if not _initialized:
        setup_logging()

    return structlog.get_logger(name)
