"""Integration tests for payment failure compensation.

Covers:
- Declined and unavailable captures release stock and mark the order
  PAYMENT_FAILED before ``PaymentFailed`` reaches the caller.
- A failing compensation flags the order for reconciliation.
- A capture that cannot be recorded flags the order for reconciliation.
- Malformed gateway answers compensate; any other capture error leaves the
  outcome unknown and flags the order instead.
"""

from __future__ import annotations

import httpx
import pytest
from django.db import DatabaseError

from modules.core.models import AuditLogEntry, OutboxEvent
from modules.orders.constants import OrderStatus, PaymentStatus
from modules.orders.exceptions import PaymentFailed, ReconciliationRequired
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.payments.gateway import (
    HttpPaymentGateway,
    PaymentDeclined,
    PaymentGatewayUnavailable,
)
from modules.products.repositories.django_repository import ProductDjangoRepository

pytestmark = pytest.mark.integration


class FailingRelease(ProductDjangoRepository):
    def release_stock(self, id, quantity):
        raise DatabaseError("connection lost")


class FailingLock(OrderDjangoRepository):
    def get_for_update(self, id):
        raise DatabaseError("lock wait timeout")


# ---------------------------------------------------------------------------
# Compensation
# ---------------------------------------------------------------------------


class TestCompensation:
    @pytest.mark.parametrize(
        "error, reason",
        [
            (PaymentDeclined("refused", decline_code="card_declined"), "declined"),
            (PaymentGatewayUnavailable("timed out"), "gateway_unavailable"),
        ],
    )
    def test_failed_capture_compensates(
        self, service, order_request, customer, admin, product, gateway, error, reason
    ):
        gateway.capture_error = error

        with pytest.raises(PaymentFailed) as exc_info:
            service.create_order(order_request(customer_id=customer.id), admin)

        assert exc_info.value.extra["reason"] == reason
        order = Order.objects.get()
        assert exc_info.value.extra["order_id"] == str(order.id)
        assert exc_info.value.extra["order_number"] == order.order_number

        assert order.status == OrderStatus.PAYMENT_FAILED
        assert order.payment_status == PaymentStatus.FAILED
        assert order.stock_reserved is False
        assert order.needs_reconciliation is False
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_failure_is_traced(self, service, order_request, customer, admin, gateway, notifier):
        gateway.capture_error = PaymentDeclined("refused")

        with pytest.raises(PaymentFailed):
            service.create_order(order_request(customer_id=customer.id), admin)

        order = Order.objects.get()
        assert sorted(order.status_history.values_list("new_status", flat=True)) == [
            OrderStatus.PAYMENT_FAILED,
            OrderStatus.PENDING,
        ]
        assert sorted(OutboxEvent.objects.values_list("event_type", flat=True)) == [
            "OrderCreated",
            "OrderPaymentFailed",
        ]
        failed = OutboxEvent.objects.get(event_type="OrderPaymentFailed")
        assert failed.payload["reason"] == "declined"
        assert AuditLogEntry.objects.filter(action="order.payment_failed").exists()
        assert notifier.sent == []

    def test_declined_message_is_safe(self, service, order_request, customer, admin, gateway):
        gateway.capture_error = PaymentDeclined("raw gateway text", decline_code="x")

        with pytest.raises(PaymentFailed) as exc_info:
            service.create_order(order_request(customer_id=customer.id), admin)

        assert "raw gateway text" not in exc_info.value.message
        assert exc_info.value.http_status == 402


# ---------------------------------------------------------------------------
# Reconciliation
# ---------------------------------------------------------------------------


class TestReconciliation:
    def test_failed_compensation_flags_order(
        self, make_service, order_request, customer, admin, product, gateway
    ):
        gateway.capture_error = PaymentDeclined("refused")
        service = make_service(product_repository=FailingRelease())

        with pytest.raises(ReconciliationRequired):
            service.create_order(order_request(customer_id=customer.id), admin)

        order = Order.objects.get()
        assert order.needs_reconciliation is True
        assert "declined" in order.reconciliation_reason
        assert order.status == OrderStatus.PENDING
        assert order.stock_reserved is True
        product.refresh_from_db()
        assert product.stock_quantity == 8

    def test_unrecorded_capture_flags_order(
        self, make_service, order_request, customer, admin, gateway, notifier
    ):
        service = make_service(order_repository=FailingLock())

        with pytest.raises(ReconciliationRequired) as exc_info:
            service.create_order(order_request(customer_id=customer.id), admin)

        order = Order.objects.get()
        assert exc_info.value.extra["order_id"] == str(order.id)
        assert order.needs_reconciliation is True
        assert "pi_1" in order.reconciliation_reason
        assert order.status == OrderStatus.PENDING
        assert len(gateway.captures) == 1
        assert notifier.sent == []


# ---------------------------------------------------------------------------
# Unexpected capture failures
# ---------------------------------------------------------------------------


def http_gateway(respond):
    return HttpPaymentGateway(
        base_url="https://payments.test",
        api_key="sk_test",
        transport=httpx.MockTransport(respond),
    )


class TestUnexpectedCaptureFailures:
    @pytest.mark.parametrize(
        "respond",
        [
            lambda request: httpx.Response(200, json=["unexpected"]),
            lambda request: httpx.Response(
                200, content=b"not gzip at all", headers={"Content-Encoding": "gzip"}
            ),
        ],
        ids=["non-object-json", "undecodable-body"],
    )
    def test_malformed_gateway_answer_compensates(
        self, make_service, order_request, customer, admin, product, respond
    ):
        service = make_service(payment_gateway=http_gateway(respond))

        with pytest.raises(PaymentFailed) as exc_info:
            service.create_order(order_request(customer_id=customer.id), admin)

        assert exc_info.value.extra["reason"] == "gateway_unavailable"
        order = Order.objects.get()
        assert order.status == OrderStatus.PAYMENT_FAILED
        assert order.stock_reserved is False
        assert order.needs_reconciliation is False
        product.refresh_from_db()
        assert product.stock_quantity == 10

    def test_unknown_outcome_flags_order(
        self, service, order_request, customer, admin, product, gateway, notifier
    ):
        gateway.capture_error = RuntimeError("client library bug")

        with pytest.raises(ReconciliationRequired) as exc_info:
            service.create_order(order_request(customer_id=customer.id), admin)

        order = Order.objects.get()
        assert exc_info.value.extra["order_id"] == str(order.id)
        assert order.needs_reconciliation is True
        assert order.order_number in order.reconciliation_reason
        assert "RuntimeError" in order.reconciliation_reason
        assert order.status == OrderStatus.PENDING
        assert order.stock_reserved is True
        product.refresh_from_db()
        assert product.stock_quantity == 8
        assert AuditLogEntry.objects.filter(action="order.payment_unknown").exists()
        assert notifier.sent == []
