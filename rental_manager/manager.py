"""
Rental Manager - the in-memory dataset and every mutation on it.

Each public mutation follows the same steps:
1. Change the collections
2. Re-derive the Property -> Tenant back-reference from active tenants
3. Recalculate the balances the change can affect
4. Update reminders
5. Hand the dataset to the persistence callback

The manager owns no storage. It is constructed by the SyncCoordinator,
whose persist() is the callback, and must only be driven from the
event loop that owns it.
"""

from typing import Awaitable, Callable, Iterable, Optional
from uuid import UUID

import structlog

from rental_manager.ledger.engine import LedgerEngine
from rental_manager.models.app_data import AppData
from rental_manager.models.domain import (
    Appointment,
    Expense,
    Income,
    MaintenanceRequest,
    Property,
    Tenant,
    TenantStatus,
    TransactionCategory,
)
from rental_manager.services.notifications import ReminderPlanner


logger = structlog.get_logger(__name__)

OnChange = Callable[[], Awaitable[None]]


class NotFoundError(Exception):
    """No entity with the given id exists."""

    def __init__(self, entity_type: str, entity_id: UUID):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} {entity_id} not found")


class ProtectedCategoryError(Exception):
    """The security-deposit category cannot be deleted."""
    pass


class RentalManager:
    """
    Owns the dataset and applies user actions to it.

    All methods that change data are coroutines because they end by
    awaiting the persistence callback.
    """

    def __init__(
        self,
        ledger: LedgerEngine,
        on_change: Optional[OnChange] = None,
        reminders: Optional[ReminderPlanner] = None,
    ):
        self._ledger = ledger
        self._on_change = on_change
        self._reminders = reminders or ReminderPlanner(clock=ledger.clock)
        self.data: AppData = AppData.empty()
        self.reminder_scheduled_for: set[UUID] = set()

    @property
    def ledger(self) -> LedgerEngine:
        return self._ledger

    # -------------------------------------------------------------------------
    # Dataset lifecycle (driven by the coordinator, never persisted here)
    # -------------------------------------------------------------------------

    def replace_data(self, data: AppData) -> None:
        """Adopt a freshly loaded dataset and re-derive everything cached in it."""
        data.ensure_default_categories()
        self.data = data
        self._sync_occupancy()
        for tenant in data.tenants:
            self._ledger.refresh_deposit_status(data, tenant.id)
        self._ledger.recalculate_all(data)

    def clear(self) -> None:
        self.data = AppData.empty()
        self.reminder_scheduled_for.clear()

    async def refresh_balances(self) -> int:
        """Recalculate every tenant (app activation). Returns the tenant count."""
        count = self._ledger.recalculate_all(self.data)
        await self._changed()
        return count

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------

    async def add_category(self, category: TransactionCategory) -> TransactionCategory:
        self.data.transaction_categories.append(category)
        self.data.transaction_categories.sort(key=lambda c: c.name)
        await self._changed()
        return category

    async def delete_category(self, category_id: UUID) -> None:
        """
        Remove a category. Transactions that used it keep a dangling
        category id and are treated as uncategorized.

        Raises:
            ProtectedCategoryError: For the security-deposit category
            NotFoundError: If no category has that id
        """
        category = self._require(self.data.get_category(category_id), "TransactionCategory", category_id)
        if category.is_security_deposit:
            raise ProtectedCategoryError(
                f"Category '{category.name}' tracks security deposits and cannot be deleted"
            )
        self.data.transaction_categories = [
            c for c in self.data.transaction_categories if c.id != category_id
        ]
        await self._changed()

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    async def save_property(self, prop: Property) -> Property:
        """Insert or replace a property, rescheduling its deadline reminders."""
        existing = self.data.get_property(prop.id)
        if existing is not None:
            for deadline in existing.deadlines:
                self._reminders.cancel_deadline(deadline.id)
            self._replace(self.data.properties, prop)
        else:
            self.data.properties.append(prop)

        for deadline in prop.deadlines:
            self._reminders.schedule_deadline(deadline)

        self._sync_occupancy()
        # Rent or cycle may have changed
        self._recalculate(self._tenant_ids_on(prop.id))
        await self._changed()
        return prop

    async def delete_property(self, property_id: UUID) -> None:
        """
        Remove a property and everything scoped to it.

        Its tenants stay, unlinked (zero balance until reassigned). Incomes,
        expenses, maintenance requests and appointments on the property are
        removed.
        """
        prop = self._require(self.data.get_property(property_id), "Property", property_id)
        affected = self._tenant_ids_on(property_id)

        for tenant in self.data.tenants:
            if tenant.property_id == property_id:
                tenant.property_id = None

        self.data.incomes = [i for i in self.data.incomes if i.property_id != property_id]
        self.data.expenses = [e for e in self.data.expenses if e.property_id != property_id]

        for request in self.data.maintenance_requests:
            if request.property_id == property_id:
                self._reminders.cancel_maintenance_followup(request.id)
        self.data.maintenance_requests = [
            r for r in self.data.maintenance_requests if r.property_id != property_id
        ]

        for appointment in self.data.appointments:
            if appointment.property_id == property_id:
                self._reminders.cancel_appointment(appointment.id)
        self.data.appointments = [
            a for a in self.data.appointments if a.property_id != property_id
        ]

        for deadline in prop.deadlines:
            self._reminders.cancel_deadline(deadline.id)
        self.data.properties = [p for p in self.data.properties if p.id != property_id]

        self._sync_occupancy()
        self._recalculate(affected)
        for tenant_id in affected:
            self._ledger.refresh_deposit_status(self.data, tenant_id)
        logger.info("property_deleted", property_id=str(property_id), unlinked_tenants=len(affected))
        await self._changed()

    # -------------------------------------------------------------------------
    # Tenants
    # -------------------------------------------------------------------------

    async def save_tenant(self, tenant: Tenant) -> Tenant:
        """Insert or replace a tenant and recalculate their balance."""
        if self.data.get_tenant(tenant.id) is not None:
            self._replace(self.data.tenants, tenant)
        else:
            self.data.tenants.append(tenant)

        self._sync_occupancy()
        self._ledger.refresh_deposit_status(self.data, tenant.id)
        self._ledger.recalculate_balance(self.data, tenant.id)
        if tenant.is_active:
            self._reminders.schedule_lease_expiry(tenant)
        else:
            self._reminders.cancel_lease_expiry(tenant.id)
        await self._changed()
        return tenant

    async def archive_tenant(self, tenant_id: UUID) -> Tenant:
        """End a tenancy but keep the tenant and their payment history."""
        tenant = self._require(self.data.get_tenant(tenant_id), "Tenant", tenant_id)
        tenant.status = TenantStatus.ARCHIVED
        self._cancel_tenant_reminders(tenant_id)
        self._sync_occupancy()
        await self._changed()
        return tenant

    async def delete_tenant(self, tenant_id: UUID) -> None:
        """Remove a tenant and their incomes, freeing their property."""
        self._require(self.data.get_tenant(tenant_id), "Tenant", tenant_id)
        self._cancel_tenant_reminders(tenant_id)
        self.data.incomes = [i for i in self.data.incomes if i.tenant_id != tenant_id]
        self.data.tenants = [t for t in self.data.tenants if t.id != tenant_id]
        self._sync_occupancy()
        await self._changed()

    def schedule_rent_reminder(self, tenant_id: UUID) -> bool:
        """
        Schedule the rent reminder for a tenant's next due date.

        Returns False when the tenant has no property or the fire time
        is already past.
        """
        tenant = self.data.get_tenant(tenant_id)
        if tenant is None or self.data.get_property(tenant.property_id) is None:
            return False
        if self._reminders.schedule_rent(tenant) is None:
            return False
        self.reminder_scheduled_for.add(tenant_id)
        return True

    # -------------------------------------------------------------------------
    # Incomes
    # -------------------------------------------------------------------------

    async def log_income(self, income: Income) -> Income:
        self.data.incomes.insert(0, income)
        self._after_income_change([income.tenant_id])
        await self._changed()
        return income

    async def update_income(self, income: Income) -> Income:
        """Replace an income; both the previous and the new tenant are recalculated."""
        old = self._require(self._find(self.data.incomes, income.id), "Income", income.id)
        self._replace(self.data.incomes, income)
        self._after_income_change([old.tenant_id, income.tenant_id])
        await self._changed()
        return income

    async def delete_income(self, income_id: UUID) -> None:
        income = self._require(self._find(self.data.incomes, income_id), "Income", income_id)
        self.data.incomes = [i for i in self.data.incomes if i.id != income_id]
        self._after_income_change([income.tenant_id])
        await self._changed()

    # -------------------------------------------------------------------------
    # Expenses
    # -------------------------------------------------------------------------

    async def log_expense(self, expense: Expense) -> Expense:
        self.data.expenses.insert(0, expense)
        self._recalculate(self._tenant_ids_on(expense.property_id))
        await self._changed()
        return expense

    async def update_expense(self, expense: Expense) -> Expense:
        old = self._require(self._find(self.data.expenses, expense.id), "Expense", expense.id)
        self._replace(self.data.expenses, expense)
        affected = self._tenant_ids_on(expense.property_id)
        if old.property_id != expense.property_id:
            affected += self._tenant_ids_on(old.property_id)
        self._recalculate(affected)
        await self._changed()
        return expense

    async def delete_expense(self, expense_id: UUID) -> None:
        expense = self._require(self._find(self.data.expenses, expense_id), "Expense", expense_id)
        self.data.expenses = [e for e in self.data.expenses if e.id != expense_id]
        self._recalculate(self._tenant_ids_on(expense.property_id))
        await self._changed()

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    async def add_maintenance_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self.data.maintenance_requests.insert(0, request)
        self._reminders.schedule_maintenance_followup(request)
        await self._changed()
        return request

    async def update_maintenance_request(self, request: MaintenanceRequest) -> MaintenanceRequest:
        self._require(
            self._find(self.data.maintenance_requests, request.id), "MaintenanceRequest", request.id
        )
        self._replace(self.data.maintenance_requests, request)
        self._reminders.schedule_maintenance_followup(request)
        await self._changed()
        return request

    async def resolve_maintenance_request(self, request_id: UUID) -> MaintenanceRequest:
        request = self._require(
            self._find(self.data.maintenance_requests, request_id), "MaintenanceRequest", request_id
        )
        request.is_resolved = True
        self._reminders.cancel_maintenance_followup(request_id)
        await self._changed()
        return request

    async def delete_maintenance_request(self, request_id: UUID) -> None:
        self._require(
            self._find(self.data.maintenance_requests, request_id), "MaintenanceRequest", request_id
        )
        self.data.maintenance_requests = [
            r for r in self.data.maintenance_requests if r.id != request_id
        ]
        self._reminders.cancel_maintenance_followup(request_id)
        await self._changed()

    # -------------------------------------------------------------------------
    # Appointments (kept sorted by date)
    # -------------------------------------------------------------------------

    async def add_appointment(self, appointment: Appointment) -> Appointment:
        self.data.appointments.append(appointment)
        self.data.appointments.sort(key=lambda a: a.date)
        self._reminders.schedule_appointment(appointment)
        await self._changed()
        return appointment

    async def update_appointment(self, appointment: Appointment) -> Appointment:
        self._require(self._find(self.data.appointments, appointment.id), "Appointment", appointment.id)
        self._replace(self.data.appointments, appointment)
        self.data.appointments.sort(key=lambda a: a.date)
        self._reminders.cancel_appointment(appointment.id)
        self._reminders.schedule_appointment(appointment)
        await self._changed()
        return appointment

    async def delete_appointment(self, appointment_id: UUID) -> None:
        self._require(self._find(self.data.appointments, appointment_id), "Appointment", appointment_id)
        self.data.appointments = [a for a in self.data.appointments if a.id != appointment_id]
        self._reminders.cancel_appointment(appointment_id)
        await self._changed()

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _sync_occupancy(self) -> None:
        """Point each property at its first active tenant, or mark it vacant."""
        occupant: dict[UUID, UUID] = {}
        for tenant in self.data.tenants:
            if tenant.is_active and tenant.property_id is not None:
                occupant.setdefault(tenant.property_id, tenant.id)

        for prop in self.data.properties:
            prop.tenant_id = occupant.get(prop.id)
            prop.is_vacant = prop.tenant_id is None

    def _tenant_ids_on(self, property_id: Optional[UUID]) -> list[UUID]:
        return [t.id for t in self.data.tenants if property_id is not None and t.property_id == property_id]

    def _recalculate(self, tenant_ids: Iterable[Optional[UUID]]) -> None:
        for tenant_id in dict.fromkeys(t for t in tenant_ids if t is not None):
            self._ledger.recalculate_balance(self.data, tenant_id)

    def _after_income_change(self, tenant_ids: list[Optional[UUID]]) -> None:
        for tenant_id in dict.fromkeys(t for t in tenant_ids if t is not None):
            self._ledger.refresh_deposit_status(self.data, tenant_id)
            self._ledger.recalculate_balance(self.data, tenant_id)

    def _cancel_tenant_reminders(self, tenant_id: UUID) -> None:
        self._reminders.cancel_rent(tenant_id)
        self._reminders.cancel_lease_expiry(tenant_id)
        self.reminder_scheduled_for.discard(tenant_id)

    @staticmethod
    def _find(items: list, item_id: UUID):
        return next((item for item in items if item.id == item_id), None)

    @staticmethod
    def _replace(items: list, item) -> None:
        for index, existing in enumerate(items):
            if existing.id == item.id:
                items[index] = item
                return

    @staticmethod
    def _require(item, entity_type: str, entity_id: UUID):
        if item is None:
            raise NotFoundError(entity_type, entity_id)
        return item

    async def _changed(self) -> None:
        if self._on_change is not None:
            await self._on_change()
