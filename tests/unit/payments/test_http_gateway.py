"""Unit tests for HttpPaymentGateway using ``httpx.MockTransport``.

Covers:
- Capture request shape (cents, currency, confirm, method type, token,
  bearer key, idempotency key) and response mapping.
- Declines: refused status, 4xx with decline code.
- Unavailability: timeout, transport and other request errors, 5xx,
  unreadable or non-object body.
- Refund request shape and failed refunds.
"""

from __future__ import annotations

from decimal import Decimal
from urllib.parse import parse_qs

import httpx
import pytest

from modules.payments.gateway import (
    HttpPaymentGateway,
    PaymentDeclined,
    PaymentGatewayUnavailable,
    to_cents,
)

pytestmark = pytest.mark.unit


class Recorder:
    """MockTransport handler returning a canned response."""

    def __init__(self, status_code=200, json=None, content=None, error=None):
        self.status_code = status_code
        self.json = json
        self.content = content
        self.error = error
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error(str(self.error.__name__), request=request)
        if self.content is not None:
            return httpx.Response(self.status_code, content=self.content)
        return httpx.Response(self.status_code, json=self.json or {})

    @property
    def form(self):
        return {k: v[0] for k, v in parse_qs(self.requests[-1].content.decode()).items()}


def gateway_with(handler):
    return HttpPaymentGateway(
        base_url="https://payments.test/",
        api_key="sk_test_123",
        transport=httpx.MockTransport(handler),
    )


def capture(gateway, amount="123.45", method="CREDIT_CARD", token="tok_visa"):
    return gateway.capture(
        amount=Decimal(amount), method=method, token=token, reference="ORD-20260101-ABC123"
    )


class TestToCents:
    @pytest.mark.parametrize(
        "amount, cents",
        [("0.01", 1), ("10", 1000), ("123.45", 12345), ("10.005", 1001)],
    )
    def test_conversion(self, amount, cents):
        assert to_cents(Decimal(amount)) == cents


class TestCapture:
    def test_request_shape(self):
        handler = Recorder(json={"id": "pi_1", "status": "succeeded"})
        capture(gateway_with(handler))

        request = handler.requests[0]
        assert request.method == "POST"
        assert request.url.path == "/v1/payment_intents"
        assert request.headers["Authorization"] == "Bearer sk_test_123"
        assert request.headers["Idempotency-Key"] == "ORD-20260101-ABC123"
        assert handler.form == {
            "amount": "12345",
            "currency": "brl",
            "confirm": "true",
            "payment_method_types[]": "card",
            "metadata[reference]": "ORD-20260101-ABC123",
            "payment_method": "tok_visa",
        }

    def test_pix_without_token(self):
        handler = Recorder(json={"id": "pi_2", "status": "processing"})
        capture(gateway_with(handler), method="PIX", token=None)

        assert handler.form["payment_method_types[]"] == "pix"
        assert "payment_method" not in handler.form

    def test_succeeded(self):
        result = capture(gateway_with(Recorder(json={"id": "pi_1", "status": "succeeded"})))

        assert result.succeeded
        assert result.transaction_id == "pi_1"

    def test_processing_is_not_succeeded(self):
        result = capture(gateway_with(Recorder(json={"id": "pi_3", "status": "processing"})))

        assert not result.succeeded
        assert result.status == "processing"

    def test_refused_status_is_declined(self):
        body = {
            "id": "pi_4",
            "status": "requires_payment_method",
            "last_payment_error": {"decline_code": "insufficient_funds"},
        }
        with pytest.raises(PaymentDeclined) as exc_info:
            capture(gateway_with(Recorder(json=body)))
        assert exc_info.value.decline_code == "insufficient_funds"

    def test_client_error_is_declined(self):
        body = {"error": {"code": "card_declined", "decline_code": "stolen_card"}}
        with pytest.raises(PaymentDeclined) as exc_info:
            capture(gateway_with(Recorder(status_code=402, json=body)))
        assert exc_info.value.decline_code == "stolen_card"


class TestUnavailable:
    def test_timeout(self):
        with pytest.raises(PaymentGatewayUnavailable, match="timed out"):
            capture(gateway_with(Recorder(error=httpx.ReadTimeout)))

    def test_connection_error(self):
        with pytest.raises(PaymentGatewayUnavailable, match="unreachable"):
            capture(gateway_with(Recorder(error=httpx.ConnectError)))

    @pytest.mark.parametrize("error", [httpx.TooManyRedirects, httpx.DecodingError])
    def test_other_request_errors(self, error):
        with pytest.raises(PaymentGatewayUnavailable, match="unreachable"):
            capture(gateway_with(Recorder(error=error)))

    @pytest.mark.parametrize("status_code", [500, 502, 503])
    def test_server_errors(self, status_code):
        with pytest.raises(PaymentGatewayUnavailable):
            capture(gateway_with(Recorder(status_code=status_code, json={})))

    def test_unreadable_body(self):
        with pytest.raises(PaymentGatewayUnavailable, match="unreadable"):
            capture(gateway_with(Recorder(content=b"<html>oops</html>")))

    @pytest.mark.parametrize("body", [["unexpected"], "ok", 42])
    def test_non_object_body(self, body):
        with pytest.raises(PaymentGatewayUnavailable, match="unreadable"):
            capture(gateway_with(Recorder(json=body)))


class TestRefund:
    def test_request_shape(self):
        handler = Recorder(json={"id": "re_1", "status": "succeeded"})
        result = gateway_with(handler).refund("pi_1", Decimal("180.00"))

        assert handler.requests[0].url.path == "/v1/refunds"
        assert handler.form == {"payment_intent": "pi_1", "amount": "18000"}
        assert handler.requests[0].headers["Idempotency-Key"] == "refund-pi_1-18000"
        assert result.refund_id == "re_1"

    @pytest.mark.parametrize("status", ["failed", "canceled"])
    def test_failed_refund(self, status):
        handler = Recorder(json={"id": "re_2", "status": status})
        with pytest.raises(PaymentDeclined):
            gateway_with(handler).refund("pi_1", Decimal("10.00"))

    def test_refund_timeout(self):
        with pytest.raises(PaymentGatewayUnavailable):
            gateway_with(Recorder(error=httpx.ConnectTimeout)).refund("pi_1", Decimal("1"))


class TestFromSettings:
    def test_reads_django_settings(self, settings):
        settings.PAYMENT_GATEWAY_URL = "https://gateway.example"
        settings.PAYMENT_GATEWAY_API_KEY = "sk_live_x"
        settings.PAYMENT_GATEWAY_TIMEOUT = 3.0
        settings.PAYMENT_CURRENCY = "usd"

        gateway = HttpPaymentGateway.from_settings()

        assert gateway._base_url == "https://gateway.example"
        assert gateway._timeout == 3.0
        assert gateway._currency == "usd"
