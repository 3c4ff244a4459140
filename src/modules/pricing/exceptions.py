"""Pricing domain exceptions.

Raised by the pricing engine while quoting an order; the order workflow
lets them propagate unchanged.
"""

from __future__ import annotations

from typing import Any

from rest_framework import status

from modules.core.exceptions import (
    DomainError,
    ErrorKind,
    InvalidRequest,
    NotFoundError,
)
from modules.pricing.constants import CouponRejection


class ProductNotFound(NotFoundError):
    """A product referenced by an order line does not exist."""

    code = "product_not_found"
    default_message = "Product not found."


class InactiveProduct(InvalidRequest):
    """A product referenced by an order line is inactive (RN-PRO-002)."""

    code = "inactive_product"
    default_message = "Product is inactive."


class InsufficientStock(DomainError):
    """Not enough stock to fulfil an order line (RN-EST-004)."""

    kind = ErrorKind.INSUFFICIENT_STOCK
    code = "insufficient_stock"
    http_status = status.HTTP_409_CONFLICT
    default_message = "Insufficient stock."

    def __init__(self, product_id: Any, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}.",
            product_id=str(product_id),
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class CouponRejected(DomainError):
    kind = ErrorKind.COUPON_REJECTED
    code = "coupon_rejected"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Coupon rejected."

    def __init__(self, coupon_code: str, reason: CouponRejection) -> None:
        super().__init__(
            reason.label, coupon_code=coupon_code, reason=reason.value
        )
        self.coupon_code = coupon_code
        self.reason = reason
