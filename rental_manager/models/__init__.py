"""
Data Models Package

This package contains all Pydantic models used in the Rental Manager system.
All data flowing through the system must conform to these schemas.
"""

from rental_manager.models.domain import (
    Appointment,
    AppointmentStatus,
    CategoryTag,
    Expense,
    Income,
    MaintenanceRequest,
    PaymentCycle,
    PaymentStatus,
    Property,
    PropertyDeadline,
    Tenant,
    TenantStatus,
    TransactionCategory,
    TransactionType,
)
from rental_manager.models.app_data import (
    DEFAULT_CATEGORIES,
    AppData,
    default_categories,
)
from rental_manager.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    dataset_counts,
)

__all__ = [
    # Domain models
    "Appointment",
    "AppointmentStatus",
    "CategoryTag",
    "Expense",
    "Income",
    "MaintenanceRequest",
    "PaymentCycle",
    "PaymentStatus",
    "Property",
    "PropertyDeadline",
    "Tenant",
    "TenantStatus",
    "TransactionCategory",
    "TransactionType",
    # Aggregate
    "AppData",
    "DEFAULT_CATEGORIES",
    "default_categories",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    "dataset_counts",
]
