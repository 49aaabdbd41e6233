"""
Logging Configuration
Structured logging with loguru
Source: https://github.com/Delgan/loguru
Verified: 2025-12-18
"""

import sys
from pathlib import Path
from typing import Any, Optional, TextIO

from loguru import logger

from src.core.config import ClaimsSettings, get_claims_settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)
FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[component]}:{function}:{line} - {message}"
)

# Records emitted through the bare loguru logger still render
logger.configure(extra={"component": "claims"})


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    json_logs: bool = False,
    sink: TextIO = sys.stderr,
) -> list[int]:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        json_logs: Whether to output JSON format (useful for production)
        sink: Console stream, stderr by default

    Returns:
        Handler ids registered with loguru
    """
    # Remove default logger
    logger.remove()
    handler_ids: list[int] = []

    if json_logs:
        handler_ids.append(
            logger.add(sink, format="{message}", level=level, serialize=True)
        )
    else:
        handler_ids.append(
            logger.add(sink, format=CONSOLE_FORMAT, level=level, colorize=False)
        )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        handler_ids.append(
            logger.add(
                log_file,
                rotation="100 MB",
                retention="30 days",
                compression="zip",
                format=FILE_FORMAT,
                level=level,
                serialize=json_logs,
            )
        )

    logger.bind(component="logging").info(
        f"Logging configured: level={level}, json_logs={json_logs}"
    )
    return handler_ids


def configure_logging(settings: Optional[ClaimsSettings] = None) -> list[int]:
    """Configure logging from ClaimsSettings (LOG_LEVEL, LOG_FILE, LOG_JSON)."""
    settings = settings or get_claims_settings()
    handler_ids = setup_logging(
        level=settings.LOG_LEVEL,
        log_file=settings.LOG_FILE,
        json_logs=settings.LOG_JSON,
    )
    if settings.uses_default_salt and not settings.is_production:
        get_logger(__name__).warning(
            "Using default CLAIM_NUMBER_SALT; set CLAIMS_CLAIM_NUMBER_SALT outside development"
        )
    return handler_ids


def get_logger(name: str = __name__, **context: Any):  # type: ignore[no-untyped-def]
    """
    Get a logger instance bound to a component name.

    Args:
        name: Logger name (typically __name__)
        **context: Extra fields bound to every record

    Returns:
        Configured logger instance

    Example:
        >>> from src.utils.logging import get_logger
        >>> logger = get_logger(__name__)
        >>> logger.info("Engine started")
    """
    return logger.bind(component=name, **context)
