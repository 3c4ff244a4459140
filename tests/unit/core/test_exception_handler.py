"""Unit tests for ``standardized_exception_handler``."""

from __future__ import annotations

from uuid import uuid4

import pytest
from pydantic import ValidationError as DTOValidationError
from rest_framework.exceptions import NotAuthenticated, ValidationError

from modules.core.exceptions import standardized_exception_handler
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO
from modules.orders.exceptions import (
    InsufficientStock,
    OrderNotFound,
    PaymentFailed,
    ReconciliationRequired,
    RefundFailed,
)

pytestmark = pytest.mark.unit


def render(exc):
    return standardized_exception_handler(exc, {})


class TestDomainErrors:
    def test_client_error_with_meta(self):
        response = render(InsufficientStock(product_id="p-1", available=2, requested=5))

        assert response.status_code == 409
        assert response.data["type"] == "client_error"
        assert response.data["errors"][0]["code"] == "insufficient_stock"
        assert response.data["meta"] == {"product_id": "p-1", "available": 2, "requested": 5}

    def test_not_found_without_extra_has_no_meta(self):
        response = render(OrderNotFound())

        assert response.status_code == 404
        assert response.data["errors"][0]["detail"] == "Order not found."
        assert "meta" not in response.data

    def test_payment_failed_is_402(self):
        response = render(PaymentFailed("Payment was declined.", reason="declined"))

        assert response.status_code == 402
        assert response.data["meta"]["reason"] == "declined"

    def test_refund_failure_is_retryable_server_error(self):
        response = render(RefundFailed(order_id="abc"))

        assert response.status_code == 502
        assert response.data["type"] == "server_error"
        assert response.data["meta"]["retryable"] is True

    def test_internal_failure_hides_context(self):
        response = render(ReconciliationRequired(order_id=str(uuid4())))

        assert response.status_code == 500
        assert response.data["type"] == "server_error"
        assert response.data["errors"][0]["code"] == "reconciliation_required"
        assert response.data["errors"][0]["detail"] == "Processing error, order under review."
        assert "meta" not in response.data


class TestValidationErrors:
    def test_drf_errors_flattened_with_attr(self):
        exc = ValidationError({"items": [{"quantity": ["Must be at least 1."]}]})
        response = render(exc)

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        assert response.data["errors"][0]["attr"] == "items.0.quantity"

    def test_dto_errors_rendered_as_validation_errors(self):
        with pytest.raises(DTOValidationError) as exc_info:
            CreateOrderDTO(items=[], payment_method=PaymentMethod.PIX)
        response = render(exc_info.value)

        assert response.status_code == 400
        assert response.data["type"] == "validation_error"
        error = response.data["errors"][0]
        assert error["attr"] == "items"
        assert error["detail"] == "Order must have at least one item."


class TestOtherErrors:
    def test_drf_client_error(self):
        response = render(NotAuthenticated())

        assert response.status_code == 401
        assert response.data["type"] == "client_error"
        assert response.data["errors"][0]["code"] == "not_authenticated"

    def test_unhandled_exception_is_generic_server_error(self):
        response = render(RuntimeError("database password is hunter2"))

        assert response.status_code == 500
        assert response.data["errors"][0]["detail"] == "A server error occurred."
