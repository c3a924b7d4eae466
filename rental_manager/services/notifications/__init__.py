"""Reminder scheduling: the delivery contract and the fire-time planner."""

from rental_manager.services.notifications.interface import (
    NotificationScheduler,
    NullNotificationScheduler,
    ReminderKind,
)
from rental_manager.services.notifications.planner import ReminderPlanner

__all__ = [
    "NotificationScheduler",
    "NullNotificationScheduler",
    "ReminderKind",
    "ReminderPlanner",
]
