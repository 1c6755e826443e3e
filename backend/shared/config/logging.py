"""
Centralized structured logging for the platform core.
Uses Python's standard logging with JSON formatting for production.

Log records carry the correlation id of the request or event being handled
(see shared.infrastructure.correlation).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format easily parseable by log aggregation tools.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id and correlation_id != "-":
            log_data["correlation_id"] = correlation_id

        if getattr(record, "extra_data", None):
            log_data["data"] = record.extra_data

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            log_data["source"] = {
                "file": record.filename,
                "line": record.lineno,
                "function": record.funcName,
            }

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Human-readable, colored formatter for development."""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, self.RESET)
        timestamp = datetime.now().strftime("%H:%M:%S")

        correlation_id = getattr(record, "correlation_id", None)
        if correlation_id and correlation_id != "-":
            correlation_str = f"{self.DIM}[{correlation_id[:12]}]{self.RESET} "
        else:
            correlation_str = ""

        message = (
            f"{color}[{timestamp}] {record.levelname:8}{self.RESET} "
            f"{correlation_str}{record.name}: {record.getMessage()}"
        )

        if getattr(record, "extra_data", None):
            data_str = " | ".join(f"{k}={v}" for k, v in record.extra_data.items())
            message += f" ({data_str})"

        if record.exc_info:
            message += f"\n{self.formatException(record.exc_info)}"

        return message


class StructuredLogger(logging.Logger):
    """
    Logger that accepts keyword arguments as structured data.

        logger.warning("Event publish failed", event_type=..., aggregate_id=...)
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **kwargs: Any,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        if extra is None:
            extra = {}
        extra["extra_data"] = kwargs if kwargs else None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Configure logging for the process.
    Call this once at startup, before services are wired.
    """
    # Import here to avoid circular imports
    from shared.infrastructure.correlation import CorrelationIdFilter

    log_level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.addFilter(CorrelationIdFilter())

    if settings.environment == "production":
        formatter: logging.Formatter = StructuredFormatter()
    else:
        formatter = DevelopmentFormatter()
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("redis").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

        from shared.config.logging import get_logger
        logger = get_logger(__name__)

        logger.info("Order created", order_id=order.id, customer_id=order.customer_id)
        logger.error("Failed to persist order", order_id=order.id, exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_email(email: str | None) -> str:
    """
    Mask an email address for logging.

    Converts "user@example.com" to "us***@example.com".
    """
    if not email:
        return "<no-email>"

    try:
        local, domain = email.split("@", 1)
    except ValueError:
        return "***@invalid"

    if len(local) <= 2:
        masked_local = local[:1] + "***"
    else:
        masked_local = local[:2] + "***"
    return f"{masked_local}@{domain}"


# Per-context loggers
order_logger = get_logger("restaurant.order")
kitchen_logger = get_logger("restaurant.kitchen")
reservation_logger = get_logger("restaurant.reservation")
menu_logger = get_logger("restaurant.menu")
inventory_logger = get_logger("restaurant.inventory")
auth_logger = get_logger("restaurant.auth")
core_logger = get_logger("restaurant.core")

# Dedicated security audit logger
security_audit_logger = get_logger("security.audit")


def audit_auth_event(
    event_type: str,
    user_id: str | None = None,
    email: str | None = None,
    success: bool = True,
    reason: str | None = None,
    ip_address: str | None = None,
    **extra: Any,
) -> None:
    """
    Log an authentication audit record (LOGIN, LOGOUT, TOKEN_REFRESH, ...).

    Failures are logged at warning level, successes at info. Emails are
    masked before they reach the record.
    """
    log_level = logging.INFO if success else logging.WARNING

    security_audit_logger._log_with_data(
        log_level,
        f"AUTH_AUDIT: {event_type}",
        args=(),
        event_type=event_type,
        user_id=user_id,
        email=mask_email(email) if email else None,
        success=success,
        reason=reason,
        ip_address=ip_address,
        **extra,
    )
