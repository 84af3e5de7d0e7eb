"""
logging_config.py — Centralized Logging Configuration for OpenHaus

Sets up Loguru as the single logging backend. Intercepts Python's stdlib
logging module so all existing getLogger() calls automatically route
through Loguru with structured output, log rotation, and request context.

Business Rules:
- All logs go through Loguru (no direct print() or stdlib logging)
- JSON format in production for machine parsing
- Human-readable format in development
- Request ID from middleware is included when available
- Audit, security and transaction events are tagged via bound extras so
  log shippers can route them to separate streams

Called by: app/main.py (on startup), routers and services (channel helpers)
Depends on: app/config.py (environment)
"""

import logging
import os
import sys

from loguru import logger


def setup_logging() -> None:
    """Configure Loguru and intercept stdlib logging.

    Call once at app startup, before any other imports that log.
    """
    # Remove Loguru's default stderr handler so we control format
    logger.remove()

    log_level = os.getenv("LOG_LEVEL", "INFO").upper()
    is_production = os.getenv("ENVIRONMENT", "development") == "production"

    if is_production:
        # Production: JSON lines to stdout (Docker captures these)
        logger.add(
            sys.stdout,
            level=log_level,
            format="{message}",
            serialize=True,  # JSON output
        )
        log_dir = os.getenv("LOG_DIR")
        if log_dir:
            logger.add(
                os.path.join(log_dir, "openhaus.log"),
                level=log_level,
                rotation="50 MB",
                retention="7 days",
                compression="gz",
                serialize=True,
            )
    else:
        # Development: human-readable with colors
        logger.add(
            sys.stdout,
            level=log_level,
            format=(
                "<green>{time:HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "{message}"
            ),
            colorize=True,
        )

    # Intercept stdlib logging → route through Loguru
    logging.basicConfig(handlers=[_InterceptHandler()], level=0, force=True)

    # Quiet noisy third-party loggers
    for noisy in ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "botocore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger.info("Logging configured", level=log_level, production=is_production)


class _InterceptHandler(logging.Handler):
    """Route stdlib logging records to Loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find the caller (skip frames from stdlib logging internals)
        frame, depth = logging.currentframe(), 0
        while frame and (depth == 0 or frame.f_code.co_filename == logging.__file__):
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


# ── Channels ──────────────────────────────────────────────────────────


def audit(action: str, **context) -> None:
    """Record a business event (property created, offer placed, login)."""
    logger.bind(audit=True, **context).info("AUDIT: {}", action)


def security_event(event: str, **context) -> None:
    """Record a security-relevant event (rate limit hit, lockout, bad token)."""
    logger.bind(security=True, **context).warning("SECURITY: {}", event)


def transaction(kind: str, amount: float | None, currency: str | None, **context) -> None:
    """Record a money movement handled by a payment processor."""
    logger.bind(transaction=True, amount=amount, currency=currency, **context).info(
        "TRANSACTION: {}", kind
    )


def log_error(message: str, exc: BaseException | None = None, **context) -> None:
    """Log an error with traceback when an exception is available."""
    logger.bind(**context).opt(exception=exc).error(message)
