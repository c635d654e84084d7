"""
Structured logging configuration for the Quote Tracker service.

Uses structlog for consistent, machine-parseable log output.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from quote_tracker.config.settings import Settings, settings as default_settings


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the application.
    
    Sets up structlog with appropriate processors based on environment.
    """
    settings = settings or default_settings
    
    # Common processors
    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]
    
    if settings.log_format == "json":
        # Production: JSON output
        processors = shared_processors + [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        # Development: Console output
        processors = shared_processors + [
            structlog.dev.ConsoleRenderer(colors=True),
        ]
    
    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    
    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.
    
    Args:
        name: Logger name (typically __name__)
        
    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class RequestLogger:
    """
    Middleware-style request logging for FastAPI.
    
    Logs request/response details with structured data.
    """
    
    def __init__(self):
        self.logger = get_logger("request")
    
    def log_request(
        self,
        method: str,
        path: str,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Log incoming request."""
        self.logger.info(
            "request_received",
            method=method,
            path=path,
            **(extra or {}),
        )
    
    def log_response(
        self,
        method: str,
        path: str,
        status_code: int,
        duration_ms: float,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Log outgoing response."""
        log_method = self.logger.info if status_code < 400 else self.logger.warning
        log_method(
            "request_completed",
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=round(duration_ms, 2),
            **(extra or {}),
        )


class AuditLogger:
    """
    Audit logging for quote lifecycle changes.
    
    Mirrors the status history table into the log stream.
    """
    
    def __init__(self):
        self.logger = get_logger("audit")
    
    def log_status_change(
        self,
        quote_id: str,
        quote_number: str,
        previous_status: str | None,
        new_status: str,
        changed_by: str,
        notes: str | None = None,
    ) -> None:
        """Log a status transition."""
        self.logger.info(
            "quote_status_changed",
            quote_id=quote_id,
            quote_number=quote_number,
            previous_status=previous_status,
            new_status=new_status,
            changed_by=changed_by,
            notes=notes,
        )
    
    def log_access_denied(
        self,
        resource: str,
        reason: str,
    ) -> None:
        """Log a rejected capability or secret."""
        self.logger.warning(
            "access_denied",
            resource=resource,
            reason=reason,
        )


class ServiceLogger:
    """
    Service-level logging for business operations.
    
    Provides consistent logging across service modules.
    """
    
    def __init__(self, service_name: str):
        self.logger = get_logger(f"service.{service_name}")
        self.service_name = service_name
    
    def log_operation_start(
        self,
        operation: str,
        **kwargs: Any,
    ) -> None:
        """Log start of a business operation."""
        self.logger.info(
            f"{operation}_started",
            service=self.service_name,
            **kwargs,
        )
    
    def log_operation_complete(
        self,
        operation: str,
        duration_ms: float | None = None,
        **kwargs: Any,
    ) -> None:
        """Log successful completion of an operation."""
        self.logger.info(
            f"{operation}_completed",
            service=self.service_name,
            duration_ms=round(duration_ms, 2) if duration_ms else None,
            **kwargs,
        )
    
    def log_operation_failed(
        self,
        operation: str,
        error: Exception,
        **kwargs: Any,
    ) -> None:
        """Log failed operation with error details."""
        self.logger.error(
            f"{operation}_failed",
            service=self.service_name,
            error_type=type(error).__name__,
            error_message=str(error),
            **kwargs,
        )


# Global logger instances
request_logger = RequestLogger()
audit_logger = AuditLogger()
