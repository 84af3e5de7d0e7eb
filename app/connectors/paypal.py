"""PayPal Orders v2 — create, capture and refund.

Sandbox or live base URL from settings.paypal_environment. OAuth client
credentials token is cached on the instance and refreshed once on 401.
Every failure surfaces as PaymentProcessingError with a fixed message;
gateway detail is only logged.
"""

import logging

from ..config import settings
from ..exceptions import PaymentProcessingError, UpstreamError
from .base import BaseConnector

log = logging.getLogger(__name__)

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
LIVE_URL = "https://api-m.paypal.com"


def format_amount(amount) -> str:
    return f"{float(amount):.2f}"


class PayPalProcessor(BaseConnector):
    name = "paypal"

    def __init__(self, client_id: str | None = None, client_secret: str | None = None,
                 environment: str | None = None):
        super().__init__(timeout=30.0)
        self.client_id = client_id if client_id is not None else settings.paypal_client_id
        self.client_secret = client_secret if client_secret is not None else settings.paypal_client_secret
        env = environment or settings.paypal_environment
        self.base_url = LIVE_URL if env == "live" else SANDBOX_URL
        self._token = None

    async def _get_token(self) -> str:
        if self._token:
            return self._token
        r = await self._request(
            "POST",
            f"{self.base_url}/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.client_id, self.client_secret),
            timeout=15,
        )
        self._token = r.json()["access_token"]
        return self._token

    async def _call(self, path: str, body: dict) -> dict:
        token = await self._get_token()
        headers = {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        try:
            r = await self._request("POST", f"{self.base_url}{path}", json=body, headers=headers)
        except UpstreamError as e:
            if "HTTP 401" not in str(e):
                raise
            self._token = None
            headers["Authorization"] = f"Bearer {await self._get_token()}"
            r = await self._request("POST", f"{self.base_url}{path}", json=body, headers=headers)
        return r.json()

    async def create_order(self, amount, currency: str, return_url: str, cancel_url: str,
                           description: str | None = None) -> dict:
        body = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {"currency_code": currency, "value": format_amount(amount)},
                    "description": description,
                }
            ],
            "application_context": {
                "return_url": return_url,
                "cancel_url": cancel_url,
                "brand_name": "OpenHaus",
                "landing_page": "BILLING",
                "user_action": "PAY_NOW",
            },
        }
        try:
            return await self._call("/v2/checkout/orders", body)
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("PayPal order creation failed: %s", e)
            raise PaymentProcessingError("PayPal payment processing failed", self.name) from e

    async def capture_order(self, order_id: str) -> dict:
        try:
            return await self._call(f"/v2/checkout/orders/{order_id}/capture", {})
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("PayPal order capture failed for %s: %s", order_id, e)
            raise PaymentProcessingError("PayPal payment capture failed", self.name) from e

    async def process_refund(self, capture_id: str, amount=None, currency: str | None = None) -> dict:
        body = {}
        if amount and currency:
            body["amount"] = {"value": format_amount(amount), "currency_code": currency}
        try:
            return await self._call(f"/v2/payments/captures/{capture_id}/refund", body)
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("PayPal refund failed for %s: %s", capture_id, e)
            raise PaymentProcessingError("PayPal refund processing failed", self.name) from e


paypal = PayPalProcessor()
