"""PayPal REST client with retry logic for transient network errors."""

import logging
import uuid
from functools import lru_cache
from typing import Any

import httpx
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
MIN_WAIT_SECONDS = 1
MAX_WAIT_SECONDS = 8

REQUEST_TIMEOUT_SECONDS = 30.0


class PayPalError(Exception):
    """PayPal API failure.

    Attributes:
        status_code: HTTP status returned by PayPal, if any.
        payload: Decoded error body, if any.
    """

    def __init__(self, message: str, status_code: int | None = None, payload: Any = None) -> None:
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class PayPalNotConfiguredError(PayPalError):
    """Raised when PayPal credentials are missing."""


class PayPalClient:
    """Minimal PayPal Orders v2 client.

    Each create/capture call carries a PayPal-Request-Id so a retried
    request is treated as the same operation by PayPal.
    """

    def __init__(self, client_id: str, client_secret: str, base_url: str) -> None:
        if not client_id or not client_secret:
            raise PayPalNotConfiguredError(
                "PayPal is not configured. Please set PAYPAL_CLIENT_ID and PAYPAL_CLIENT_SECRET."
            )
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url.rstrip("/")

    @retry(
        retry=retry_if_exception_type(httpx.TransportError),
        stop=stop_after_attempt(MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
        reraise=True,
    )
    async def _send(
        self,
        method: str,
        path: str,
        headers: dict[str, str],
        **kwargs: Any,
    ) -> httpx.Response:
        """Send one HTTP request, retrying on transport failures."""
        async with httpx.AsyncClient(base_url=self.base_url, timeout=REQUEST_TIMEOUT_SECONDS) as client:
            return await client.request(method, path, headers=headers, **kwargs)

    async def get_access_token(self) -> str:
        """Exchange client credentials for an OAuth access token."""
        response = await self._send(
            "POST",
            "/v1/oauth2/token",
            headers={"Accept": "application/json"},
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        if response.status_code != 200:
            raise PayPalError("PayPal authentication failed", response.status_code, _safe_json(response))

        token = response.json().get("access_token")
        if not token:
            raise PayPalError("No access token in PayPal auth response", response.status_code)
        return token

    async def _authorized_post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        token = await self.get_access_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
            "PayPal-Request-Id": str(uuid.uuid4()),
        }
        response = await self._send("POST", path, headers=headers, json=body)
        if response.status_code >= 400:
            raise PayPalError(
                f"PayPal request to {path} failed", response.status_code, _safe_json(response)
            )
        return response.json()

    async def create_order(
        self,
        reference_id: str,
        description: str,
        currency_code: str,
        value: str,
    ) -> dict[str, Any]:
        """Create a CAPTURE-intent PayPal order for a local order.

        Args:
            reference_id: Local order id, echoed back on capture.
            description: Human-readable purchase description.
            currency_code: ISO currency code.
            value: Amount formatted with two decimals.

        Returns:
            dict: PayPal order representation (id, status, links).
        """
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "reference_id": reference_id,
                    "description": description,
                    "amount": {"currency_code": currency_code, "value": value},
                }
            ],
        }
        return await self._authorized_post("/v2/checkout/orders", body)

    async def capture_order(self, paypal_order_id: str) -> dict[str, Any]:
        """Capture payment for an approved PayPal order."""
        return await self._authorized_post(f"/v2/checkout/orders/{paypal_order_id}/capture", {})


def _safe_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


@lru_cache
def get_paypal_client() -> PayPalClient:
    """Get cached PayPal client configured from settings.

    Raises:
        PayPalNotConfiguredError: If credentials are not set.
    """
    settings = get_settings()
    return PayPalClient(
        client_id=settings.paypal_client_id,
        client_secret=settings.paypal_client_secret,
        base_url=settings.paypal_base_url,
    )
