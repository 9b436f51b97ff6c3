"""Tests for the Razorpay adapter."""

import base64
import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest

from storefront.core.errors import GatewayError, GatewayUnavailableError
from storefront.core.payment_gateway import (
    RazorpayGateway,
    compute_signature,
    to_minor_units,
)

SECRET = "s3cr3t"


def make_gateway(handler, **kwargs) -> RazorpayGateway:
    return RazorpayGateway(
        key_id="rzp_key",
        key_secret=SECRET,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestSignature:
    def test_matches_reference_hmac(self):
        expected = hmac.new(
            SECRET.encode(), b"order_abc|pay_xyz", hashlib.sha256
        ).hexdigest()

        assert compute_signature("order_abc", "pay_xyz", SECRET) == expected

    def test_valid_signature_verifies(self):
        gateway = RazorpayGateway("rzp_key", SECRET)
        sig = compute_signature("order_abc", "pay_xyz", SECRET)

        assert gateway.verify_signature("order_abc", "pay_xyz", sig) is True
        # deterministic
        assert gateway.verify_signature("order_abc", "pay_xyz", sig) is True

    def test_explicit_secret_overrides_configured_one(self):
        gateway = RazorpayGateway("rzp_key", "other")
        sig = compute_signature("o", "p", SECRET)

        assert gateway.verify_signature("o", "p", sig, secret=SECRET) is True
        assert gateway.verify_signature("o", "p", sig) is False

    @pytest.mark.parametrize("position", [0, 17, 63])
    def test_single_byte_mutation_fails(self, position):
        gateway = RazorpayGateway("rzp_key", SECRET)
        sig = compute_signature("order_abc", "pay_xyz", SECRET)
        flipped = "0" if sig[position] != "0" else "1"
        forged = sig[:position] + flipped + sig[position + 1:]

        assert gateway.verify_signature("order_abc", "pay_xyz", forged) is False

    def test_swapped_ids_fail(self):
        gateway = RazorpayGateway("rzp_key", SECRET)
        sig = compute_signature("order_abc", "pay_xyz", SECRET)

        assert gateway.verify_signature("pay_xyz", "order_abc", sig) is False

    def test_empty_signature_fails(self):
        gateway = RazorpayGateway("rzp_key", SECRET)

        assert gateway.verify_signature("order_abc", "pay_xyz", "") is False

    def test_without_secret_is_unavailable(self):
        gateway = RazorpayGateway(None, None)

        with pytest.raises(GatewayUnavailableError):
            gateway.verify_signature("order_abc", "pay_xyz", "deadbeef")


class TestMinorUnits:
    @pytest.mark.parametrize(
        "amount,expected",
        [
            (Decimal("500.00"), 50000),
            (Decimal("0.01"), 1),
            (Decimal("19.999"), 2000),
            (Decimal("10.005"), 1001),
            (Decimal("1234.5"), 123450),
        ],
    )
    def test_conversion(self, amount, expected):
        assert to_minor_units(amount) == expected


class TestCreateRemoteOrder:
    def test_posts_order_with_basic_auth(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={"id": "order_Nx1", "amount": 50000, "currency": "INR", "status": "created"},
            )

        remote = make_gateway(handler).create_remote_order(50000, "INR", receipt="rcpt_1")

        assert remote.gateway_order_id == "order_Nx1"
        assert remote.amount == 50000
        assert remote.currency == "INR"
        assert seen["url"] == "https://api.razorpay.com/v1/orders"
        assert seen["body"] == {"amount": 50000, "currency": "INR", "receipt": "rcpt_1"}
        token = base64.b64encode(f"rzp_key:{SECRET}".encode()).decode()
        assert seen["auth"] == f"Basic {token}"

    def test_unconfigured_gateway(self):
        gateway = RazorpayGateway(key_id=None, key_secret=None)

        with pytest.raises(GatewayUnavailableError) as exc_info:
            gateway.create_remote_order(100, "INR")
        assert exc_info.value.status_code == 500

    def test_error_response_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(400, json={"error": {"description": "bad amount"}})

        with pytest.raises(GatewayError):
            make_gateway(handler).create_remote_order(100, "INR")

    def test_transport_failure_raises_gateway_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(GatewayError):
            make_gateway(handler).create_remote_order(100, "INR")

    def test_malformed_response_raises_gateway_error(self):
        def handler(request):
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(GatewayError):
            make_gateway(handler).create_remote_order(100, "INR")
