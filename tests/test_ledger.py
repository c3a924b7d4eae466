"""
Tests for the billing calendar and the ledger engine.

The clock is frozen at 2024-06-15 10:00 (see conftest.NOW).
"""

import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from dateutil.relativedelta import relativedelta

from rental_manager.config import LedgerSettings
from rental_manager.ledger import LedgerEngine, advance, cycle_step, start_of_day
from rental_manager.models import (
    AppData,
    Expense,
    Income,
    PaymentCycle,
    PaymentStatus,
)
from tests.conftest import NOW, FixedClock
from tests.factories import make_property, make_tenant


def build(prop, tenant) -> AppData:
    data = AppData.empty()
    if prop is not None:
        data.properties.append(prop)
    data.tenants.append(tenant)
    return data


def deposit_category_id(data: AppData):
    return data.security_deposit_category().id


class TestCalendar:
    """Tests for billing-cycle date arithmetic."""

    def test_cycle_steps(self):
        assert cycle_step(PaymentCycle.DAILY) == timedelta(days=1)
        assert cycle_step(PaymentCycle.WEEKLY, 2) == timedelta(days=14)
        assert cycle_step(PaymentCycle.MONTHLY, 3) == relativedelta(months=3)
        assert cycle_step(PaymentCycle.YEARLY) == relativedelta(years=1)

    def test_month_step_clamps_to_month_end(self):
        assert advance(datetime(2024, 1, 31), PaymentCycle.MONTHLY) == datetime(2024, 2, 29)

    def test_advance_steps_from_previous_boundary(self):
        """A Jan 31 lease steps Feb 29, then Mar 29, not Mar 31."""
        cursor = datetime(2024, 1, 31)
        for _ in range(2):
            cursor = advance(cursor, PaymentCycle.MONTHLY)
        assert cursor == datetime(2024, 3, 29)

    def test_advance_overflow(self):
        with pytest.raises(OverflowError):
            advance(datetime(9999, 12, 1), PaymentCycle.MONTHLY)
        with pytest.raises(OverflowError):
            advance(datetime(9999, 12, 31), PaymentCycle.DAILY)

    def test_start_of_day(self):
        assert start_of_day(datetime(2024, 6, 15, 17, 45, 3, 12)) == datetime(2024, 6, 15)


class TestBalance:
    """Tests for recalculate_balance."""

    def test_reference_scenario(self, ledger):
        """Rent 1000/month, lease 3 months ago, 150 billable, 900 paid -> 2250."""
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=3))
        data = build(prop, tenant)
        data.expenses.append(Expense(
            description="Plumbing", amount=Decimal("150"), property_id=prop.id,
            is_billable_to_tenant=True,
        ))
        data.incomes.append(Income(
            description="Rent", amount=Decimal("900"), tenant_id=tenant.id, property_id=prop.id,
        ))

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("2250")
        assert tenant.next_due_date == NOW

    @pytest.mark.parametrize("months", [0, 1, 5, 12])
    def test_monthly_accrual_is_n_times_rent(self, ledger, months):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=months))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("1000") * months

    def test_no_property_owes_nothing(self, ledger):
        tenant = make_tenant(None, NOW - relativedelta(months=6), amount_owed=Decimal("500"))
        data = build(None, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("0")

    def test_dangling_property_owes_nothing(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=6))
        data = build(None, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("0")

    def test_future_lease_accrues_nothing(self, ledger):
        prop = make_property("1000")
        start = datetime(2024, 7, 1)
        tenant = make_tenant(prop, start)
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("0")
        assert tenant.next_due_date == start

    def test_lease_starting_now_accrues_nothing(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW)
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("0")
        assert tenant.next_due_date == NOW

    def test_weekly_cycle(self, ledger):
        prop = make_property("200", PaymentCycle.WEEKLY)
        tenant = make_tenant(prop, datetime(2024, 6, 1, 10, 0))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        # Jun 1 and Jun 8 have passed; Jun 15 10:00 is not before now
        assert tenant.amount_owed == Decimal("400")
        assert tenant.next_due_date == datetime(2024, 6, 15, 10, 0)

    def test_daily_cycle(self, ledger):
        prop = make_property("10", PaymentCycle.DAILY)
        tenant = make_tenant(prop, datetime(2024, 6, 10, 12, 0))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        # Jun 10..14 at noon
        assert tenant.amount_owed == Decimal("50")
        assert tenant.next_due_date == datetime(2024, 6, 15, 12, 0)

    def test_yearly_cycle(self, ledger):
        prop = make_property("12000", PaymentCycle.YEARLY)
        tenant = make_tenant(prop, datetime(2022, 7, 1))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("24000")
        assert tenant.next_due_date == datetime(2024, 7, 1)

    def test_month_end_lease(self):
        ledger = LedgerEngine(clock=FixedClock(datetime(2024, 4, 30, 12, 0)), settings=LedgerSettings())
        prop = make_property("1000")
        tenant = make_tenant(prop, datetime(2024, 1, 31))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        # Jan 31, Feb 29, Mar 29, Apr 29; next boundary May 29
        assert tenant.amount_owed == Decimal("4000")
        assert tenant.next_due_date == datetime(2024, 5, 29)

    def test_calendar_overflow_stops_accrual(self):
        ledger = LedgerEngine(
            clock=FixedClock(datetime(9999, 12, 31, 23, 59)), settings=LedgerSettings()
        )
        prop = make_property("10", PaymentCycle.DAILY)
        tenant = make_tenant(prop, datetime(9999, 12, 30))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("20")

    def test_accrual_period_limit(self, clock):
        ledger = LedgerEngine(clock=clock, settings=LedgerSettings(max_accrual_periods=5))
        prop = make_property("10", PaymentCycle.DAILY)
        tenant = make_tenant(prop, NOW - timedelta(days=30))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("50")

    def test_only_billable_expenses_of_own_property(self, ledger):
        prop = make_property("0")
        other = make_property("0", name="Downtown Loft")
        tenant = make_tenant(prop, NOW)
        data = build(prop, tenant)
        data.properties.append(other)
        data.expenses.extend([
            Expense(amount=Decimal("75"), property_id=prop.id, is_billable_to_tenant=True),
            Expense(amount=Decimal("1000"), property_id=prop.id, is_billable_to_tenant=False),
            Expense(amount=Decimal("300"), property_id=other.id, is_billable_to_tenant=True),
            # Dated in the past and in the future: no time window
            Expense(
                amount=Decimal("25"), property_id=prop.id, is_billable_to_tenant=True,
                date=datetime(2030, 1, 1),
            ),
        ])

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("100")

    def test_overpayment_gives_credit(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=1))
        data = build(prop, tenant)
        data.incomes.append(Income(amount=Decimal("1500"), tenant_id=tenant.id, property_id=prop.id))

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("-500")

    def test_deposit_payments_are_excluded(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=1))
        data = build(prop, tenant)
        data.incomes.append(Income(
            amount=Decimal("2000"), tenant_id=tenant.id, property_id=prop.id,
            category_id=deposit_category_id(data),
        ))

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("1000")

    def test_renamed_deposit_category_is_still_excluded(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=1))
        data = build(prop, tenant)
        data.security_deposit_category().name = "Caution Money"
        data.incomes.append(Income(
            amount=Decimal("2000"), tenant_id=tenant.id, property_id=prop.id,
            category_id=deposit_category_id(data),
        ))

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("1000")

    def test_unknown_category_counts_as_payment(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=1))
        data = build(prop, tenant)
        data.incomes.append(Income(
            amount=Decimal("400"), tenant_id=tenant.id, property_id=prop.id,
            category_id=make_property().id,
        ))

        ledger.recalculate_balance(data, tenant.id)

        assert tenant.amount_owed == Decimal("600")

    def test_recalculation_is_idempotent(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=2, days=3))
        data = build(prop, tenant)

        ledger.recalculate_balance(data, tenant.id)
        first = (tenant.amount_owed, tenant.next_due_date)
        ledger.recalculate_balance(data, tenant.id)

        assert (tenant.amount_owed, tenant.next_due_date) == first

    def test_unknown_tenant(self, ledger):
        assert ledger.recalculate_balance(AppData.empty(), make_property().id) is None

    def test_recalculate_all(self, ledger):
        prop = make_property("1000")
        first = make_tenant(prop, NOW - relativedelta(months=1))
        second = make_tenant(None, NOW - relativedelta(months=1), amount_owed=Decimal("99"))
        data = build(prop, first)
        data.tenants.append(second)

        assert ledger.recalculate_all(data) == 2
        assert first.amount_owed == Decimal("1000")
        assert second.amount_owed == Decimal("0")


class TestDeposit:
    """Tests for the derived deposit-paid flag."""

    def test_deposit_flag(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW)
        data = build(prop, tenant)
        assert ledger.refresh_deposit_status(data, tenant.id) is False

        data.incomes.append(Income(
            amount=Decimal("1000"), tenant_id=tenant.id, property_id=prop.id,
            category_id=deposit_category_id(data),
        ))
        assert ledger.refresh_deposit_status(data, tenant.id) is True
        assert tenant.is_deposit_paid is True

    def test_other_tenants_deposit_does_not_count(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW)
        data = build(prop, tenant)
        data.incomes.append(Income(
            amount=Decimal("1000"), tenant_id=make_property().id, property_id=prop.id,
            category_id=deposit_category_id(data),
        ))
        assert ledger.has_paid_deposit(data, tenant.id) is False


class TestPaymentStatus:
    """Overdue after the due day, due within 7 days, paid otherwise."""

    @pytest.mark.parametrize(
        "due, expected",
        [
            (datetime(2024, 6, 14, 23, 0), PaymentStatus.OVERDUE),
            (datetime(2024, 6, 15, 0, 0), PaymentStatus.DUE),
            (datetime(2024, 6, 15, 18, 0), PaymentStatus.DUE),
            (datetime(2024, 6, 22, 9, 0), PaymentStatus.DUE),
            (datetime(2024, 6, 23, 0, 0), PaymentStatus.PAID),
        ],
    )
    def test_payment_status(self, ledger, due, expected):
        tenant = make_tenant(None, datetime(2024, 1, 1), next_due_date=due)
        assert ledger.payment_status(tenant) == expected

    def test_window_is_configurable(self, clock):
        ledger = LedgerEngine(clock=clock, settings=LedgerSettings(due_soon_window_days=2))
        tenant = make_tenant(None, datetime(2024, 1, 1), next_due_date=datetime(2024, 6, 20))
        assert ledger.payment_status(tenant) == PaymentStatus.PAID

    def test_outstanding_balance_is_overdue(self, ledger):
        prop = make_property("1000")
        tenant = make_tenant(prop, NOW - relativedelta(months=1, days=1))
        data = build(prop, tenant)
        ledger.recalculate_balance(data, tenant.id)
        assert ledger.payment_status(tenant) == PaymentStatus.OVERDUE

        # May 14 and Jun 14 charges
        data.incomes.append(Income(amount=Decimal("2000"), tenant_id=tenant.id, property_id=prop.id))
        ledger.recalculate_balance(data, tenant.id)
        assert ledger.payment_status(tenant) == PaymentStatus.PAID
