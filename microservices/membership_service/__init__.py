"""
Membership Service

Membership tier catalog and tier automation for the concierge platform.

Features:
- Static tier catalog (silver, gold, platinum) with service-category access
- Subscription lookup against the payment backend
- Monthly usage metrics and rules-based upgrade recommendations
- Checkout and customer portal links
"""

__version__ = "1.0.0"
