"""Ledger engine and billing-cycle calendar."""

from rental_manager.ledger.calendar import Clock, advance, cycle_step, start_of_day
from rental_manager.ledger.engine import LedgerEngine

__all__ = [
    "Clock",
    "LedgerEngine",
    "advance",
    "cycle_step",
    "start_of_day",
]
