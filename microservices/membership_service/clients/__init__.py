"""
Membership Service Clients

HTTP clients for the payment/subscription backend.
"""

from .subscription_client import SubscriptionClient

__all__ = ["SubscriptionClient"]
