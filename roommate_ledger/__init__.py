"""
Roommate Ledger - Source Package

Tracks shared household expenses between roommates and works out
who needs to pay whom to settle up.

DESIGN PRINCIPLES:
1. Balances are always derived, never stored
2. Settlement math is pure and deterministic
3. Every mutation is persisted and auditable
4. Session state is passed explicitly, never held globally
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Roommate Ledger Team"
