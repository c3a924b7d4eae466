"""
Clock and billing-cycle date arithmetic.

Month and year steps use dateutil's relativedelta, which clamps to the
last day of shorter months (Jan 31 + 1 month = Feb 28/29).
"""

from datetime import datetime, timedelta
from typing import Union

from dateutil.relativedelta import relativedelta

from rental_manager.models.domain import PaymentCycle


class Clock:
    """Source of "now". Swap for a fixed clock in tests."""

    def now(self) -> datetime:
        return datetime.now()

    def today(self) -> datetime:
        return start_of_day(self.now())


def start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def cycle_step(cycle: PaymentCycle, periods: int = 1) -> Union[timedelta, relativedelta]:
    """The offset covering `periods` billing cycles."""
    if cycle == PaymentCycle.DAILY:
        return timedelta(days=periods)
    if cycle == PaymentCycle.WEEKLY:
        return timedelta(days=7 * periods)
    if cycle == PaymentCycle.YEARLY:
        return relativedelta(years=periods)
    return relativedelta(months=periods)


def advance(start: datetime, cycle: PaymentCycle) -> datetime:
    """
    `start` moved forward by one billing cycle.

    Boundaries are stepped one from the other, so a monthly lease starting
    on the 31st moves to the 29th after February and stays there.

    Raises:
        OverflowError: if the result is outside the representable range
    """
    try:
        return start + cycle_step(cycle)
    except ValueError as e:
        # relativedelta reports year overflow as ValueError
        raise OverflowError(str(e)) from e
