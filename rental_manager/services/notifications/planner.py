"""
Reminder Planner

Turns domain dates into reminder fire times:

    rent due           next due date - rent lead days, at the reminder hour
    appointment        appointment date - lead minutes
    lease expiry       lease end - lead days
    maintenance        reported date + follow-up days
    property deadline  expiry date - lead days

A fire time that is not in the future is not scheduled. Each schedule_*
method returns the fire time it scheduled, or None.
"""

from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

import structlog

from rental_manager.config import ReminderSettings, get_settings
from rental_manager.ledger.calendar import Clock, start_of_day
from rental_manager.models.domain import (
    Appointment,
    AppointmentStatus,
    MaintenanceRequest,
    PropertyDeadline,
    Tenant,
)
from rental_manager.services.notifications.interface import (
    NotificationScheduler,
    NullNotificationScheduler,
    ReminderKind,
)


logger = structlog.get_logger(__name__)


class ReminderPlanner:
    """Computes fire times and forwards them to a NotificationScheduler."""

    def __init__(
        self,
        scheduler: Optional[NotificationScheduler] = None,
        clock: Optional[Clock] = None,
        settings: Optional[ReminderSettings] = None,
    ):
        self._scheduler = scheduler or NullNotificationScheduler()
        self._clock = clock or Clock()
        self._settings = settings or get_settings().reminders

    # -------------------------------------------------------------------------
    # Fire times
    # -------------------------------------------------------------------------

    def rent_fire_time(self, tenant: Tenant) -> Optional[datetime]:
        if tenant.next_due_date is None:
            return None
        day = start_of_day(tenant.next_due_date - timedelta(days=self._settings.rent_lead_days))
        return day.replace(hour=self._settings.rent_reminder_hour)

    def appointment_fire_time(self, appointment: Appointment) -> datetime:
        return appointment.date - timedelta(minutes=self._settings.appointment_lead_minutes)

    def lease_expiry_fire_time(self, tenant: Tenant) -> datetime:
        return tenant.lease_end_date - timedelta(days=self._settings.lease_expiry_lead_days)

    def maintenance_fire_time(self, request: MaintenanceRequest) -> datetime:
        return request.reported_date + timedelta(days=self._settings.maintenance_followup_days)

    def deadline_fire_time(self, deadline: PropertyDeadline) -> datetime:
        return deadline.expiry_date - timedelta(days=self._settings.deadline_lead_days)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    def schedule_rent(self, tenant: Tenant) -> Optional[datetime]:
        if not self._settings.enable_rent_reminders:
            return None
        return self._schedule(ReminderKind.RENT_DUE, tenant.id, self.rent_fire_time(tenant))

    def schedule_lease_expiry(self, tenant: Tenant) -> Optional[datetime]:
        if not self._settings.enable_lease_expiry_reminders or not tenant.is_active:
            return None
        return self._schedule(
            ReminderKind.LEASE_EXPIRY, tenant.id, self.lease_expiry_fire_time(tenant)
        )

    def schedule_appointment(self, appointment: Appointment) -> Optional[datetime]:
        if not self._settings.enable_appointment_reminders:
            return None
        if appointment.status != AppointmentStatus.SCHEDULED:
            self.cancel_appointment(appointment.id)
            return None
        return self._schedule(
            ReminderKind.APPOINTMENT, appointment.id, self.appointment_fire_time(appointment)
        )

    def schedule_maintenance_followup(self, request: MaintenanceRequest) -> Optional[datetime]:
        if not self._settings.enable_maintenance_reminders:
            return None
        if request.is_resolved:
            self.cancel_maintenance_followup(request.id)
            return None
        return self._schedule(
            ReminderKind.MAINTENANCE_FOLLOWUP, request.id, self.maintenance_fire_time(request)
        )

    def schedule_deadline(self, deadline: PropertyDeadline) -> Optional[datetime]:
        if not self._settings.enable_deadline_reminders:
            return None
        return self._schedule(
            ReminderKind.PROPERTY_DEADLINE, deadline.id, self.deadline_fire_time(deadline)
        )

    # -------------------------------------------------------------------------
    # Cancellation
    # -------------------------------------------------------------------------

    def cancel_rent(self, tenant_id: UUID) -> None:
        self._scheduler.cancel(ReminderKind.RENT_DUE, tenant_id)

    def cancel_lease_expiry(self, tenant_id: UUID) -> None:
        self._scheduler.cancel(ReminderKind.LEASE_EXPIRY, tenant_id)

    def cancel_appointment(self, appointment_id: UUID) -> None:
        self._scheduler.cancel(ReminderKind.APPOINTMENT, appointment_id)

    def cancel_maintenance_followup(self, request_id: UUID) -> None:
        self._scheduler.cancel(ReminderKind.MAINTENANCE_FOLLOWUP, request_id)

    def cancel_deadline(self, deadline_id: UUID) -> None:
        self._scheduler.cancel(ReminderKind.PROPERTY_DEADLINE, deadline_id)

    def _schedule(
        self,
        kind: ReminderKind,
        subject_id: UUID,
        fire_at: Optional[datetime],
    ) -> Optional[datetime]:
        if fire_at is None or fire_at <= self._clock.now():
            logger.debug("reminder_skipped_past", kind=kind.value, subject_id=str(subject_id))
            return None
        self._scheduler.schedule(kind, subject_id, fire_at)
        return fire_at
