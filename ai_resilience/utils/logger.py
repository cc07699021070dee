"""
Structured logging configuration.

Following Sandi Metz principles:
- Single Responsibility: Logging setup and configuration
- Small functions: Each setup step isolated
- Clear naming: Descriptive function names
"""

import logging
import sys
from typing import Any

import structlog


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structured logger
    """
    return structlog.get_logger(name)


def log_cache_hit(partner_id: str, message_hash: str, **kwargs: Any) -> None:
    """
    Log cache hit.

    Args:
        partner_id: Conversation partner the entry belongs to
        message_hash: Hash of the normalized message
        **kwargs: Additional context
    """
    logger = get_logger("cache")
    logger.debug(
        "cache_hit", partner_id=partner_id, message_hash=message_hash[:12], **kwargs
    )


def log_cache_miss(partner_id: str, message_hash: str, **kwargs: Any) -> None:
    """
    Log cache miss.

    Args:
        partner_id: Conversation partner the lookup was scoped to
        message_hash: Hash of the normalized message
        **kwargs: Additional context
    """
    logger = get_logger("cache")
    logger.debug(
        "cache_miss", partner_id=partner_id, message_hash=message_hash[:12], **kwargs
    )


def log_queue_event(event: str, request_id: str, **kwargs: Any) -> None:
    """
    Log offline queue event for a single request.

    Args:
        event: Event name (enqueued, completed, retry, dropped)
        request_id: Queued request identifier
        **kwargs: Additional context
    """
    logger = get_logger("queue")
    logger.info(event, request_id=request_id, **kwargs)


def log_error(error: Exception, context: str, **kwargs: Any) -> None:
    """
    Log error with context.

    Args:
        error: Exception that occurred
        context: Error context
        **kwargs: Additional context
    """
    logger = get_logger("error")
    logger.error(
        "error_occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context,
        **kwargs
    )
