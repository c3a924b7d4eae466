"""
Audit Models for Rental Manager

Session-level actions (sign-in, sign-up migration, sign-out, account
deletion, import/export, store failures) are recorded as audit events.
Routine per-mutation saves are not audited, only logged.

Audit events are append-only.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    GUEST_DATA_LOADED = "guest_data_loaded"
    SESSION_RESUMED = "session_resumed"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    ACCOUNT_DELETED = "account_deleted"
    AUTO_LOAD_SUPPRESSED = "auto_load_suppressed"

    # Guest-to-account migration
    MIGRATION_STARTED = "migration_started"
    MIGRATION_COMPLETED = "migration_completed"
    MIGRATION_FAILED = "migration_failed"

    # Persistence
    SAVE_FAILED = "save_failed"
    REMOTE_LOAD_FAILED = "remote_load_failed"
    SNAPSHOT_RECOVERED = "snapshot_recovered"
    DATA_IMPORTED = "data_imported"
    DATA_EXPORTED = "data_exported"

    # Ledger
    BALANCES_REFRESHED = "balances_refreshed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant session action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.now,
        description="When the event occurred"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which user/store/entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'user', 'snapshot', 'tenant')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Identifier of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events of one sign-up)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.signed_in(user_id, correlation_id)
        event = AuditEventBuilder.migration_failed(user_id, error, True, correlation_id)
    """

    @staticmethod
    def guest_data_loaded(
        counts: dict[str, int],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GUEST_DATA_LOADED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Loaded guest data from the local snapshot",
            details=counts,
        )

    @staticmethod
    def session_resumed(
        user_id: str,
        found_data: bool,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SESSION_RESUMED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=(
                "Resumed session from remote document"
                if found_data
                else "Resumed session with no remote document; starting empty"
            ),
            details={"found_data": found_data},
        )

    @staticmethod
    def signed_in(
        user_id: str,
        found_data: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_IN,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User signed in",
            details={"found_data": found_data},
            is_user_action=True,
        )

    @staticmethod
    def signed_out(
        user_id: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIGNED_OUT,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="User signed out; reloaded local snapshot",
            is_user_action=True,
        )

    @staticmethod
    def account_deleted(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_DELETED,
            severity=AuditSeverity.WARNING,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Account and remote document deleted",
            is_user_action=True,
        )

    @staticmethod
    def auto_load_suppressed(
        user_id: Optional[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.AUTO_LOAD_SUPPRESSED,
            entity_type="user",
            entity_id=user_id,
            description="Auth state change ignored while a session transition is in progress",
        )

    @staticmethod
    def migration_started(
        counts: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIGRATION_STARTED,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Captured guest data for migration to a new account",
            details=counts,
            is_user_action=True,
        )

    @staticmethod
    def migration_completed(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIGRATION_COMPLETED,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Guest data written to the new account",
        )

    @staticmethod
    def migration_failed(
        user_id: Optional[str],
        error_message: str,
        account_created: bool,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MIGRATION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=(
                "Account created but guest data was not written"
                if account_created
                else "Account creation failed"
            ),
            error_message=error_message,
            details={"account_created": account_created},
        )

    @staticmethod
    def save_failed(
        store: str,
        error_message: str,
        user_id: Optional[str] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="user" if user_id else "snapshot",
            entity_id=user_id,
            description=f"Failed to save dataset to {store} store",
            error_message=error_message,
            details={"store": store},
        )

    @staticmethod
    def remote_load_failed(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="user",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Failed to load remote document",
            error_message=error_message,
        )

    @staticmethod
    def data_imported(
        counts: dict[str, int],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            severity=AuditSeverity.WARNING,
            entity_type="snapshot",
            description="Imported backup replaced all data",
            details=counts,
            is_user_action=True,
        )

    @staticmethod
    def data_exported(
        size_bytes: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            entity_type="snapshot",
            description="Exported local snapshot",
            details={"size_bytes": size_bytes},
            is_user_action=True,
        )

    @staticmethod
    def balances_refreshed(
        tenant_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BALANCES_REFRESHED,
            severity=AuditSeverity.DEBUG,
            entity_type="tenant",
            description=f"Recalculated balances for {tenant_count} tenants",
            details={"tenant_count": tenant_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )


def dataset_counts(data: Any) -> dict[str, int]:
    """Collection sizes of an AppData, for event details."""
    return {
        "properties": len(data.properties),
        "tenants": len(data.tenants),
        "incomes": len(data.incomes),
        "expenses": len(data.expenses),
        "maintenance_requests": len(data.maintenance_requests),
        "appointments": len(data.appointments),
    }
