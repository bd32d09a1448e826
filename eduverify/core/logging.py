"""
Logging configuration for the EduVerify authentication service.
Provides structured logging for wallet sign-in, provisioning, and session operations.
"""

import logging
import sys
from typing import Any, Dict, Optional

import structlog
from structlog.stdlib import LoggerFactory

from eduverify.core.config import settings


def setup_logging() -> None:
    """
    Configure structured logging for the application.
    Sets up different log formats for development and production environments.
    """

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            _get_processor(),
        ],
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL.upper()),
    )

    logging.getLogger("uvicorn").setLevel(logging.INFO)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)
    logging.getLogger("motor").setLevel(logging.WARNING)
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _get_processor():
    """
    Get the appropriate renderer based on environment.

    Returns:
        Processor function for structlog
    """
    if settings.ENVIRONMENT == "production" or settings.LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=True)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        structlog.stdlib.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


# Specialized logging functions for wallet authentication

class LoggerMixin:
    """Mixin class to add logging capabilities to any class."""

    @property
    def logger(self) -> structlog.stdlib.BoundLogger:
        """Get logger instance for this class."""
        return get_logger(self.__class__.__module__ + "." + self.__class__.__name__)


def log_wallet_operation(
    operation: str,
    wallet_address: Optional[str],
    status: str = "success",
    **kwargs
) -> None:
    """
    Log wallet-related operations.

    Args:
        operation: Operation type (sign, verify, challenge)
        wallet_address: Wallet address involved
        status: Operation status
        **kwargs: Additional context, e.g. the internal failure reason
    """
    logger = get_logger("wallet.operation")
    log = logger.info if status == "success" else logger.warning
    log(
        "Wallet operation",
        operation=operation,
        wallet_address=wallet_address,
        status=status,
        **kwargs
    )


def log_identity_operation(
    operation: str,
    identity_id: Optional[str] = None,
    wallet_address: Optional[str] = None,
    **kwargs
) -> None:
    """
    Log identity provisioning operations.

    Args:
        operation: Operation type (resolve, create, link, assign_role, ...)
        identity_id: Identity provider user id
        wallet_address: Wallet address bound to the identity
        **kwargs: Additional context
    """
    logger = get_logger("identity.operation")
    logger.info(
        "Identity operation",
        operation=operation,
        identity_id=identity_id,
        wallet_address=wallet_address,
        **kwargs
    )


def log_session_operation(
    operation: str,
    identity_id: Optional[str] = None,
    status: str = "success",
    **kwargs
) -> None:
    """
    Log session operations.

    Args:
        operation: Operation type (issue_credential, redeem, sign_out, ...)
        identity_id: Identity provider user id
        status: Operation status
        **kwargs: Additional context
    """
    logger = get_logger("session.operation")
    logger.info(
        "Session operation",
        operation=operation,
        identity_id=identity_id,
        status=status,
        **kwargs
    )


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log an error with context.

    Args:
        error: Exception instance
        context: Additional context information
    """
    logger = get_logger("error")
    logger.error(
        "An error occurred",
        error=str(error),
        error_type=type(error).__name__,
        context=context or {},
        exc_info=True
    )
