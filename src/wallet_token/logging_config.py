"""Structured logging for the wallet token engine.

Modules log snake_case events with keyword context through get_logger().
The embedding application calls configure_logging() or
configure_logging_from_settings() once at startup.
"""

import logging
import sys
from typing import TYPE_CHECKING, Any

import structlog
from structlog.types import EventDict, Processor

if TYPE_CHECKING:
    from wallet_token.config import Settings

# Event keys that may never reach a log sink in clear
SENSITIVE_KEYS = frozenset(
    {"key", "symmetric_key", "private_key", "shared_secret", "plaintext"}
)
REDACTED = "[REDACTED]"


def add_transaction_id(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Render transaction ids bound as raw bytes as hex."""
    transaction_id = event_dict.get("transaction_id")
    if isinstance(transaction_id, (bytes, bytearray)):
        event_dict["transaction_id"] = bytes(transaction_id).hex()
    return event_dict


def redact_sensitive(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace key material and decrypted payloads with a placeholder."""
    for name in SENSITIVE_KEYS.intersection(event_dict):
        event_dict[name] = REDACTED
    return event_dict


def configure_logging(log_level: str = "INFO", format_as_json: bool = True) -> None:
    """
    Configure structlog on top of stdlib logging.

    Args:
        log_level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_as_json: Render JSON lines if True, human-readable console output otherwise
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        add_transaction_id,
        redact_sensitive,
        structlog.processors.JSONRenderer() if format_as_json else structlog.dev.ConsoleRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging_from_settings(settings: "Settings") -> None:
    """Configure logging from the WALLET_TOKEN_LOG_* settings."""
    configure_logging(log_level=settings.log_level, format_as_json=settings.log_format_json)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger named after the calling module."""
    return structlog.get_logger(name)
