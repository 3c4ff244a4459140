"""Payment gateway client.

``IPaymentGateway`` is what the order workflow depends on.  The HTTP
implementation talks to a Stripe-compatible API (``/v1/payment_intents``
and ``/v1/refunds``) with a bearer key and a bounded timeout.

Failures come in two families so callers can tell them apart:

- ``PaymentDeclined``: the gateway answered and refused the operation.
- ``PaymentGatewayUnavailable``: timeout, transport error or 5xx; the
  outcome is unknown to us.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import httpx
import structlog
from django.conf import settings

logger = structlog.get_logger(__name__)


class CaptureStatus:
    SUCCEEDED = "succeeded"
    PROCESSING = "processing"


_METHOD_TYPES = {
    "CREDIT_CARD": "card",
    "DEBIT_CARD": "card",
    "PIX": "pix",
    "BOLETO": "boleto",
}

_DECLINED_STATUSES = frozenset({"requires_payment_method", "canceled"})


class PaymentGatewayError(Exception):
    """Base class for gateway failures."""


class PaymentDeclined(PaymentGatewayError):
    def __init__(self, message: str, decline_code: str = "") -> None:
        super().__init__(message)
        self.decline_code = decline_code


class PaymentGatewayUnavailable(PaymentGatewayError):
    """The gateway did not give a usable answer in time."""


@dataclass(frozen=True)
class CaptureResult:
    status: str
    transaction_id: str

    @property
    def succeeded(self) -> bool:
        return self.status == CaptureStatus.SUCCEEDED


@dataclass(frozen=True)
class RefundResult:
    status: str
    refund_id: str


def to_cents(amount: Decimal) -> int:
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class IPaymentGateway(ABC):
    @abstractmethod
    def capture(
        self,
        amount: Decimal,
        method: str,
        token: Optional[str],
        reference: str,
    ) -> CaptureResult:
        """Capture *amount*; ``reference`` doubles as the idempotency key."""

    @abstractmethod
    def refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        """Refund *amount* of a previous capture."""


class HttpPaymentGateway(IPaymentGateway):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = 10.0,
        currency: str = "brl",
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._currency = currency
        self._transport = transport

    @classmethod
    def from_settings(cls) -> HttpPaymentGateway:
        return cls(
            base_url=settings.PAYMENT_GATEWAY_URL,
            api_key=settings.PAYMENT_GATEWAY_API_KEY,
            timeout=settings.PAYMENT_GATEWAY_TIMEOUT,
            currency=settings.PAYMENT_CURRENCY,
        )

    def capture(
        self,
        amount: Decimal,
        method: str,
        token: Optional[str],
        reference: str,
    ) -> CaptureResult:
        form: Dict[str, Any] = {
            "amount": to_cents(amount),
            "currency": self._currency,
            "confirm": "true",
            "payment_method_types[]": _METHOD_TYPES.get(method, "card"),
            "metadata[reference]": reference,
        }
        if token:
            form["payment_method"] = token

        body = self._post("/v1/payment_intents", form, idempotency_key=reference)
        status = body.get("status", "")
        if status in _DECLINED_STATUSES:
            raise PaymentDeclined(
                "Payment was not authorized.",
                decline_code=_decline_code(body),
            )
        result = CaptureResult(status=status, transaction_id=body.get("id", ""))
        logger.info(
            "payment.captured",
            reference=reference,
            status=result.status,
            transaction_id=result.transaction_id,
        )
        return result

    def refund(self, transaction_id: str, amount: Decimal) -> RefundResult:
        body = self._post(
            "/v1/refunds",
            {"payment_intent": transaction_id, "amount": to_cents(amount)},
            idempotency_key=f"refund-{transaction_id}-{to_cents(amount)}",
        )
        if body.get("status") in {"failed", "canceled"}:
            raise PaymentDeclined(
                "Refund was not accepted.", decline_code=_decline_code(body)
            )
        result = RefundResult(status=body.get("status", ""), refund_id=body.get("id", ""))
        logger.info(
            "payment.refunded",
            transaction_id=transaction_id,
            refund_id=result.refund_id,
            status=result.status,
        )
        return result

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def _client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self._base_url,
            headers={"Authorization": f"Bearer {self._api_key}"},
            timeout=self._timeout,
            transport=self._transport,
        )

    def _post(
        self, path: str, form: Dict[str, Any], idempotency_key: str
    ) -> Dict[str, Any]:
        try:
            with self._client() as client:
                response = client.post(
                    path, data=form, headers={"Idempotency-Key": idempotency_key}
                )
        except httpx.TimeoutException as exc:
            logger.warning("payment.gateway_timeout", path=path)
            raise PaymentGatewayUnavailable("Payment gateway timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning("payment.gateway_unreachable", path=path, error=str(exc))
            raise PaymentGatewayUnavailable("Payment gateway is unreachable.") from exc

        if response.status_code >= 500:
            logger.warning(
                "payment.gateway_error", path=path, status_code=response.status_code
            )
            raise PaymentGatewayUnavailable(
                f"Payment gateway answered {response.status_code}."
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise PaymentGatewayUnavailable(
                "Payment gateway returned an unreadable response."
            ) from exc
        if not isinstance(body, dict):
            logger.warning("payment.gateway_malformed_body", path=path)
            raise PaymentGatewayUnavailable(
                "Payment gateway returned an unreadable response."
            )
        if response.status_code >= 400:
            logger.info(
                "payment.declined", path=path, status_code=response.status_code
            )
            raise PaymentDeclined(
                "Payment was declined by the gateway.",
                decline_code=_decline_code(body),
            )
        return body


def _decline_code(body: Dict[str, Any]) -> str:
    error = body.get("error") or body.get("last_payment_error") or {}
    if isinstance(error, dict):
        return str(error.get("decline_code") or error.get("code") or "")
    return ""
