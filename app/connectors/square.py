"""Square Payments, Customers and Refunds APIs.

Amounts are sent in minor units. Each call carries a freshly generated
idempotency key (epoch millis + 9 random base36 chars), so a caller that
retries a failed request gets a new key and is not deduplicated by Square.
"""

import logging
import secrets
import string
import time
from decimal import ROUND_HALF_UP, Decimal

from ..config import settings
from ..exceptions import PaymentProcessingError, UpstreamError
from .base import BaseConnector

log = logging.getLogger(__name__)

SANDBOX_URL = "https://connect.squareupsandbox.com"
PRODUCTION_URL = "https://connect.squareup.com"

_BASE36 = string.digits + string.ascii_lowercase


def generate_idempotency_key() -> str:
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"{int(time.time() * 1000)}-{suffix}"


def to_minor_units(amount) -> int:
    """Cents, with half-cents rounded up (0.125 -> 13)."""
    cents = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(cents)


class SquareProcessor(BaseConnector):
    name = "square"

    def __init__(self, access_token: str | None = None, environment: str | None = None):
        super().__init__(timeout=30.0)
        self.access_token = access_token if access_token is not None else settings.square_access_token
        env = environment or settings.square_environment
        self.base_url = PRODUCTION_URL if env == "production" else SANDBOX_URL

    async def _post(self, path: str, body: dict) -> dict:
        r = await self._request(
            "POST",
            f"{self.base_url}{path}",
            json={k: v for k, v in body.items() if v is not None},
            headers={
                "Authorization": f"Bearer {self.access_token}",
                "Square-Version": settings.square_api_version,
                "Content-Type": "application/json",
            },
        )
        return r.json()

    async def create_payment(self, amount, currency: str, source_id: str,
                             customer_id: str | None = None, note: str | None = None) -> dict:
        body = {
            "source_id": source_id,
            "amount_money": {"amount": to_minor_units(amount), "currency": currency},
            "customer_id": customer_id,
            "note": note,
            "idempotency_key": generate_idempotency_key(),
        }
        try:
            return (await self._post("/v2/payments", body))["payment"]
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("Square payment failed: %s", e)
            raise PaymentProcessingError("Square payment processing failed", self.name) from e

    async def create_customer(self, given_name: str, family_name: str, email_address: str) -> dict:
        body = {
            "given_name": given_name,
            "family_name": family_name,
            "email_address": email_address,
            "idempotency_key": generate_idempotency_key(),
        }
        try:
            return (await self._post("/v2/customers", body))["customer"]
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("Square customer creation failed: %s", e)
            raise PaymentProcessingError("Square customer creation failed", self.name) from e

    async def process_refund(self, payment_id: str, amount=None, currency: str | None = None) -> dict:
        body = {
            "idempotency_key": generate_idempotency_key(),
            "payment_id": payment_id,
            "amount_money": (
                {"amount": to_minor_units(amount), "currency": currency}
                if amount and currency else None
            ),
        }
        try:
            return (await self._post("/v2/refunds", body))["refund"]
        except (UpstreamError, KeyError, ValueError) as e:
            log.error("Square refund failed for %s: %s", payment_id, e)
            raise PaymentProcessingError("Square refund processing failed", self.name) from e


square = SquareProcessor()
