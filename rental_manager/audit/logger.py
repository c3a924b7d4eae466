"""
Audit Logger

Every session-level action in the system is logged as an AuditEvent.

The audit logger:
- Always logs through structlog
- Keeps a bounded in-memory history of recent events
- Is synchronous and cheap, so it can run inside any session transition
- Supports correlation IDs to trace related events (e.g. one sign-up)
"""

import logging
from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from rental_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


# Configure structlog for local logging
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
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Set the root stdlib logger, which structlog writes through, to `level`."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level, logging.INFO))
    logging.getLogger().setLevel(getattr(logging, level, logging.INFO))


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. An in-memory history (for the settings/diagnostics screen and tests)
    """

    def __init__(self, history_size: int = 500):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("rental_manager.audit")

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and append it to the history."""
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        self._history.append(event)

    def recent_events(
        self,
        limit: int = 100,
        event_type: Optional[AuditEventType] = None,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = [
            e for e in reversed(self._history)
            if event_type is None or e.event_type == event_type
        ]
        return events[:limit]

    def events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """All retained events for a correlation ID, in chronological order."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    def log_save_failed(
        self,
        store: str,
        error_message: str,
        user_id: Optional[str] = None,
    ) -> None:
        self.log(AuditEventBuilder.save_failed(store, error_message, user_id))

    def log_remote_load_failed(
        self,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.remote_load_failed(user_id, error_message, correlation_id))

    def log_migration_failed(
        self,
        user_id: Optional[str],
        error_message: str,
        account_created: bool,
        correlation_id: UUID,
    ) -> None:
        self.log(
            AuditEventBuilder.migration_failed(
                user_id=user_id,
                error_message=error_message,
                account_created=account_created,
                correlation_id=correlation_id,
            )
        )

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(
            AuditEventBuilder.system_error(
                error_type=error_type,
                error_message=error_message,
                details=details,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a session transition (sign-in, sign-up...).
    Pass it through all subsequent operations.
    """
    return uuid4()
