"""
Base Service Client for Remote Collaborators

Base class for httpx clients that call remote functions (the payment and
subscription backend). Transport failures are retried with tenacity; HTTP
error statuses are not retried.
"""

import logging
from abc import ABC
from typing import Any, Dict, Optional

import httpx
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)


class BaseServiceClient(ABC):
    """
    Remote client base class

    Handles:
    1. Base URL resolution
    2. Default headers (API key)
    3. HTTP client lifecycle
    4. Retry on transport errors

    Example:
        class SubscriptionClient(BaseServiceClient):
            service_name = "payment_backend"

            async def check(self, token: str):
                response = await self.post("/check-subscription", headers=self.bearer(token))
                return response.json()
    """

    service_name: str = None
    max_attempts: int = 3

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Base URL of the remote collaborator
            api_key: Optional API key sent as the `apikey` header
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        if not self.service_name:
            raise ValueError(f"{self.__class__.__name__} must define 'service_name'")

        self.base_url = base_url.rstrip("/")

        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"concierge-client/{self.service_name}",
        }
        if api_key:
            headers["apikey"] = api_key

        self.client = httpx.AsyncClient(timeout=timeout, headers=headers, transport=transport)

        logger.debug(f"Initialized {self.service_name} client: {self.base_url}")

    @staticmethod
    def bearer(access_token: Optional[str]) -> Dict[str, str]:
        """Authorization header for a caller's access token"""
        return {"Authorization": f"Bearer {access_token}"} if access_token else {}

    async def close(self):
        """Close HTTP client"""
        await self.client.aclose()
        logger.debug(f"Closed {self.service_name} client")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.base_url}{path}"
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=0.2, min=0.2, max=2),
            retry=retry_if_exception_type(httpx.TransportError),
            reraise=True,
        ):
            with attempt:
                return await self.client.request(method, url, **kwargs)

    async def get(
        self,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """GET request"""
        return await self._request("GET", path, params=params, headers=headers)

    async def post(
        self,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None
    ) -> httpx.Response:
        """POST request"""
        return await self._request("POST", path, json=json, headers=headers)


__all__ = ["BaseServiceClient"]
