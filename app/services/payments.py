"""
Subscription checkout via PayPal Orders v2 (client-credentials token, create order, capture).
Only the capture outcome matters to the rest of the app: True means the payment went through.
"""
import logging
from dataclasses import dataclass
from typing import Protocol

import httpx

from app.config import get_settings

logger = logging.getLogger(__name__)


class PaymentError(Exception):
    pass


@dataclass(frozen=True)
class PaymentOrder:
    order_id: str
    approve_url: str | None


class PaymentProvider(Protocol):
    async def create_order(self, amount: str, currency: str, return_url: str) -> PaymentOrder:
        ...

    async def capture(self, order_id: str) -> bool:
        ...


class PayPalProvider:
    def __init__(self, client_id: str, client_secret: str, api_url: str, timeout: float = 30.0):
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout

    async def _access_token(self, client: httpx.AsyncClient) -> str:
        res = await client.post(
            f"{self.api_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
        )
        if res.status_code != 200:
            raise PaymentError(f"PayPal authentication failed: {res.text}")
        return res.json()["access_token"]

    async def create_order(self, amount: str, currency: str, return_url: str) -> PaymentOrder:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                token = await self._access_token(client)
                res = await client.post(
                    f"{self.api_url}/v2/checkout/orders",
                    headers={"Authorization": f"Bearer {token}"},
                    json={
                        "intent": "CAPTURE",
                        "purchase_units": [
                            {
                                "amount": {"currency_code": currency, "value": amount},
                                "description": "Premium Subscription - 1 Month",
                            }
                        ],
                        "application_context": {"return_url": return_url, "cancel_url": return_url},
                    },
                )
        except httpx.HTTPError as e:
            raise PaymentError(f"PayPal unreachable: {e}") from e
        if res.status_code not in (200, 201):
            raise PaymentError(f"PayPal order creation failed: {res.text}")
        order = res.json()
        approve = next((link["href"] for link in order.get("links", []) if link.get("rel") == "approve"), None)
        logger.info("PayPal order created: %s", order["id"])
        return PaymentOrder(order_id=order["id"], approve_url=approve)

    async def capture(self, order_id: str) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                token = await self._access_token(client)
                res = await client.post(
                    f"{self.api_url}/v2/checkout/orders/{order_id}/capture",
                    headers={"Authorization": f"Bearer {token}", "Content-Type": "application/json"},
                )
        except (httpx.HTTPError, PaymentError) as e:
            logger.warning("PayPal capture failed for order %s: %s", order_id, e)
            return False
        if res.status_code not in (200, 201):
            logger.warning("PayPal capture rejected for order %s: %s", order_id, res.text)
            return False
        return res.json().get("status") == "COMPLETED"


def get_payment_provider() -> PaymentProvider:
    settings = get_settings()
    return PayPalProvider(settings.paypal_client_id, settings.paypal_client_secret, settings.paypal_api_url)
