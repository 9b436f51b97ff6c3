# storefront/core/payment_gateway.py
"""
Razorpay payment gateway adapter.

Two responsibilities:
  - create a remote order (payment intent) over the gateway's REST API
  - verify the receipt signature the checkout widget hands back

The adapter is built explicitly from settings and injected into
OrderService through the `get_payment_gateway` dependency, so tests can
swap in a fake.
"""
import hashlib
import hmac
import logging
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from functools import lru_cache

import httpx

from storefront.core.config import get_settings
from storefront.core.errors import GatewayError, GatewayUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteOrder:
    gateway_order_id: str
    amount: int
    currency: str


def to_minor_units(amount: Decimal) -> int:
    """Major currency units -> integer minor units (x100, half-up)."""
    return int((Decimal(amount) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_signature(gateway_order_id: str, gateway_payment_id: str, secret: str) -> str:
    """Hex HMAC-SHA256 of "<order_id>|<payment_id>" keyed by `secret`."""
    message = f"{gateway_order_id}|{gateway_payment_id}".encode()
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


class RazorpayGateway:
    def __init__(
        self,
        key_id: str | None,
        key_secret: str | None,
        api_base: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.key_id = key_id
        self._key_secret = key_secret
        self.api_base = api_base
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.key_id and self._key_secret)

    def create_remote_order(
        self,
        amount_minor_units: int,
        currency: str,
        receipt: str | None = None,
    ) -> RemoteOrder:
        """
        Create a gateway order for `amount_minor_units`.

        Raises:
            GatewayUnavailableError: keys are not configured.
            GatewayError: transport failure or non-2xx response.
        """
        if not self.configured:
            raise GatewayUnavailableError()

        body: dict = {"amount": amount_minor_units, "currency": currency}
        if receipt:
            body["receipt"] = receipt

        try:
            with httpx.Client(
                base_url=self.api_base,
                auth=(self.key_id, self._key_secret),
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = client.post("/orders", json=body)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as exc:
            logger.error(
                "Gateway rejected order creation: %s %s",
                exc.response.status_code,
                exc.response.text[:200],
            )
            raise GatewayError("Error creating gateway order") from exc
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Gateway request failed: %s", exc)
            raise GatewayError("Error creating gateway order") from exc

        try:
            return RemoteOrder(
                gateway_order_id=data["id"],
                amount=int(data["amount"]),
                currency=data["currency"],
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.error("Unexpected gateway response: %r", data)
            raise GatewayError("Unexpected response from payment gateway") from exc

    def verify_signature(
        self,
        gateway_order_id: str,
        gateway_payment_id: str,
        signature: str,
        secret: str | None = None,
    ) -> bool:
        """
        Check a checkout receipt. Local and deterministic, no network.

        `secret` defaults to the merchant key secret.
        """
        key = secret if secret is not None else self._key_secret
        if not key:
            raise GatewayUnavailableError()
        expected = compute_signature(gateway_order_id, gateway_payment_id, key)
        return hmac.compare_digest(expected.encode(), (signature or "").encode())


@lru_cache
def get_payment_gateway() -> RazorpayGateway:
    """
    FastAPI dependency: the configured gateway adapter.

    Override via `app.dependency_overrides[get_payment_gateway]` in tests.
    """
    settings = get_settings()
    if not (settings.RAZORPAY_KEY_ID and settings.RAZORPAY_KEY_SECRET):
        logger.warning("Razorpay keys missing - online payments disabled.")
    return RazorpayGateway(
        key_id=settings.RAZORPAY_KEY_ID,
        key_secret=settings.RAZORPAY_KEY_SECRET,
        api_base=settings.RAZORPAY_API_BASE,
        timeout=settings.GATEWAY_TIMEOUT_SECONDS,
    )
