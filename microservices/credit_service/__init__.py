"""
Credit Service

Per-member credit ledger for the concierge platform.

Features:
- Lazy, atomic credit account creation on first subscription check
- Append-only transaction log (allocation, usage, purchase, bonus, refund)
- Compare-and-swap balance changes retried on conflict
- Unlimited tiers record usage without deduction
- Monthly allocation reset
"""

__version__ = "1.0.0"
