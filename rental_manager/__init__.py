"""
Rental Manager - Source Package

Tracks rental properties, tenants and what each tenant owes, and keeps
that state in a local snapshot (guest usage) or a per-user Firestore
document (signed-in usage).

DESIGN PRINCIPLES:
1. One in-memory dataset, one owner
2. Balances are always re-derived, never patched
3. Guest data is never dropped until an account holds a copy
4. Storage backends are swappable behind one repository interface
"""

__version__ = "1.0.0"
__author__ = "Rental Manager Team"
