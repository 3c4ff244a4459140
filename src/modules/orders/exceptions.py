"""Order domain exceptions.

Raised by the Service Layer when business rules are violated.  Every
exception derives from ``DomainError`` and is rendered by the API
exception handler, so views never translate them by hand.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import (
    AccessDenied,
    DomainError,
    ErrorKind,
    InternalFailure,
    InvalidRequest,
    NotFoundError,
    StateConflict,
)
from modules.orders.credit import CreditLimitExceeded
from modules.pricing.exceptions import (
    CouponRejected,
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)

__all__ = [
    "AccessDenied",
    "AlreadyFinal",
    "CancellationWindowExpired",
    "CouponRejected",
    "CreditLimitExceeded",
    "CustomerNotFound",
    "InactiveCustomer",
    "InactiveProduct",
    "InsufficientStock",
    "InvalidOrderStatus",
    "NotCancellable",
    "OrderNotFound",
    "PaymentFailed",
    "ProductNotFound",
    "ReconciliationRequired",
    "RefundFailed",
]


class OrderNotFound(NotFoundError):
    """The requested order does not exist or has been soft-deleted."""

    code = "order_not_found"
    default_message = "Order not found."


class CustomerNotFound(NotFoundError):
    """The customer referenced by the order does not exist."""

    code = "customer_not_found"
    default_message = "Customer not found."


class InactiveCustomer(InvalidRequest):
    """The customer is inactive and cannot place orders (RN-CLI-003)."""

    code = "inactive_customer"
    default_message = "Customer is inactive."


class InvalidOrderStatus(StateConflict):
    """An invalid status transition was attempted (RN-PED-001)."""

    code = "invalid_status_transition"


class AlreadyFinal(StateConflict):
    code = "already_final"
    default_message = "Order is already in a final state."


class NotCancellable(StateConflict):
    code = "not_cancellable"
    default_message = "Order is being fulfilled and cannot be cancelled."


class CancellationWindowExpired(StateConflict):
    code = "cancellation_window_expired"
    default_message = "Paid orders can only be cancelled within 24 hours."


class PaymentFailed(DomainError):
    """Capture was declined or the gateway did not answer; stock was released."""

    kind = ErrorKind.PAYMENT_FAILED
    code = "payment_failed"
    http_status = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Payment could not be processed."


class RefundFailed(DomainError):
    """Refund was not issued; the order is unchanged and the call may be retried."""

    kind = ErrorKind.PAYMENT_FAILED
    code = "refund_failed"
    http_status = status.HTTP_502_BAD_GATEWAY
    default_message = "Refund could not be issued. Please try again."

    def __init__(self, message: str | None = None, **extra) -> None:
        super().__init__(message, retryable=True, **extra)


class ReconciliationRequired(InternalFailure):
    """The order was flagged for manual reconciliation."""

    code = "reconciliation_required"
