"""
Notification Scheduler Interface

Reminder delivery (local notifications, push, email...) is external.
The system only asks for a reminder of some kind about some entity to
fire at a time, or for a pending one to be withdrawn. Scheduling the
same (kind, subject) twice replaces the first reminder.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from uuid import UUID

import structlog


logger = structlog.get_logger(__name__)


class ReminderKind(str, Enum):
    RENT_DUE = "rent_due"
    APPOINTMENT = "appointment"
    LEASE_EXPIRY = "lease_expiry"
    MAINTENANCE_FOLLOWUP = "maintenance_followup"
    PROPERTY_DEADLINE = "property_deadline"


class NotificationScheduler(ABC):
    """Abstract interface for reminder delivery."""

    @abstractmethod
    def schedule(self, kind: ReminderKind, subject_id: UUID, fire_at: datetime) -> None:
        pass

    @abstractmethod
    def cancel(self, kind: ReminderKind, subject_id: UUID) -> None:
        pass


class NullNotificationScheduler(NotificationScheduler):
    """Scheduler for headless use: records nothing, only logs."""

    def schedule(self, kind: ReminderKind, subject_id: UUID, fire_at: datetime) -> None:
        logger.debug(
            "reminder_scheduled",
            kind=kind.value,
            subject_id=str(subject_id),
            fire_at=fire_at.isoformat(),
        )

    def cancel(self, kind: ReminderKind, subject_id: UUID) -> None:
        logger.debug("reminder_cancelled", kind=kind.value, subject_id=str(subject_id))
