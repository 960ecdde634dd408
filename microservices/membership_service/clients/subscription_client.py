"""
Subscription Backend HTTP Client

Async client for the payment backend's serverless functions
(check-subscription, create-checkout, customer-portal).
Implements SubscriptionClientProtocol for dependency injection.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from core.service_client_base import BaseServiceClient

from ..models import SubscriptionStatus, TierId
from ..protocols import RemoteFailureError
from ..tier_catalog import get_tier_by_id, tier_for_product

logger = logging.getLogger(__name__)


class SubscriptionClient(BaseServiceClient):
    """Async HTTP client for the payment backend"""

    service_name = "payment_backend"

    def __init__(
        self,
        base_url: str = "http://localhost:54321/functions/v1",
        api_key: Optional[str] = None,
        timeout: float = 15.0,
        config=None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize SubscriptionClient

        Args:
            base_url: Base URL of the functions endpoint
            api_key: Backend API key
            timeout: Request timeout in seconds
            config: ConfigManager instance for dynamic configuration
            transport: Optional httpx transport (tests)
        """
        if config:
            base_url = config.get("payment_backend_url", base_url)
            api_key = api_key or config.get("payment_backend_key")
            timeout = config.get("payment_backend_timeout", timeout)
        super().__init__(base_url=base_url, api_key=api_key, timeout=timeout, transport=transport)
        logger.info(f"SubscriptionClient initialized with base_url: {self.base_url}")

    async def _call(self, function: str, access_token: Optional[str], body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        try:
            response = await self.post(f"/{function}", json=body or {}, headers=self.bearer(access_token))
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"HTTP error calling {function}: {e.response.status_code}")
            raise RemoteFailureError(f"{function} failed with status {e.response.status_code}", e.response.status_code) from e
        except httpx.RequestError as e:
            logger.error(f"Request error calling {function}: {e}")
            raise RemoteFailureError(f"{function} unavailable: {e}") from e
        except ValueError as e:
            logger.error(f"Invalid JSON from {function}: {e}")
            raise RemoteFailureError(f"{function} returned an invalid response") from e

        if isinstance(payload, dict) and payload.get("error"):
            raise RemoteFailureError(str(payload["error"]))
        return payload

    async def check_subscription(self, access_token: Optional[str], user_id: Optional[str] = None) -> SubscriptionStatus:
        """
        Look up the caller's subscription

        Trial members are reported as gold. A tier missing from the response
        is resolved from the product id.
        """
        payload = await self._call("check-subscription", access_token, {"userId": user_id} if user_id else None)

        known = get_tier_by_id(payload.get("tier"))
        tier = known.id if known else tier_for_product(payload.get("product_id"))
        if payload.get("is_trial"):
            tier = TierId.GOLD

        status = SubscriptionStatus(
            subscribed=bool(payload.get("subscribed")),
            tier=tier if payload.get("subscribed") or payload.get("is_trial") else None,
            product_id=payload.get("product_id"),
            subscription_end=payload.get("subscription_end"),
            is_trial=bool(payload.get("is_trial")),
            trial_end=payload.get("trial_end"),
            is_paygo=bool(payload.get("is_paygo")),
        )
        logger.debug(f"Subscription for {user_id or 'caller'}: tier={status.tier} subscribed={status.subscribed}")
        return status

    async def create_checkout(self, price_id: str, access_token: Optional[str]) -> Dict[str, Any]:
        """Create a checkout session for a price"""
        payload = await self._call("create-checkout", access_token, {"priceId": price_id})
        if not payload.get("url"):
            raise RemoteFailureError("create-checkout returned no url")
        return {"url": payload["url"]}

    async def customer_portal(self, access_token: Optional[str]) -> Dict[str, Any]:
        """Create a customer portal session"""
        payload = await self._call("customer-portal", access_token)
        if not payload.get("url"):
            raise RemoteFailureError("customer-portal returned no url")
        return {"url": payload["url"]}
