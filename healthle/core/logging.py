"""Structured logging with structlog.

Production writes one JSON object per line; development gets the console
renderer. Both pipelines drop anything the user wrote about their health
before rendering.
"""

import logging
import sys

import structlog

from healthle.config import get_settings

# Fields that may carry what a user told us about their health
HEALTH_DATA_FIELDS = frozenset(
    {
        "concern",
        "answer",
        "answers",
        "message",
        "message_text",
        "prompt",
        "sprompt",
        "response",
        "text",
        "content",
        "body",
        "password",
        "email",
    }
)

# Libraries that log request lines at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "sse_starlette")

REDACTED = "[REDACTED]"


def _redact_health_data_processor(
    logger: structlog.typing.WrappedLogger,
    method_name: str,
    event_dict: structlog.typing.EventDict,
) -> structlog.typing.EventDict:
    """
    Replace non-empty health data and credentials with a marker.

    Log lengths and identifiers instead; they survive untouched.
    """
    for field in HEALTH_DATA_FIELDS.intersection(event_dict):
        if isinstance(event_dict[field], (str, list, dict)) and event_dict[field]:
            event_dict[field] = REDACTED
    return event_dict


def _add_environment(
    logger: structlog.typing.WrappedLogger,
    method_name: str,
    event_dict: structlog.typing.EventDict,
) -> structlog.typing.EventDict:
    event_dict.setdefault("env", get_settings().environment)
    return event_dict


def setup_logging() -> None:
    """Configure structlog and route stdlib logging through stdout."""
    settings = get_settings()
    level = logging.getLevelName(settings.log_level)

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        _add_environment,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _redact_health_data_processor,
        structlog.processors.UnicodeDecoder(),
    ]
    if settings.is_production:
        processors.insert(2, structlog.processors.TimeStamper(fmt="iso", utc=True))
        processors.append(structlog.processors.JSONRenderer(ensure_ascii=False))
    else:
        processors.insert(2, structlog.processors.TimeStamper(fmt="%H:%M:%S", utc=False))
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str | None = None) -> structlog.BoundLogger:
    """Get a logger, bound to `name` when given."""
    logger = structlog.get_logger()
    if name:
        logger = logger.bind(logger_name=name)
    return logger
