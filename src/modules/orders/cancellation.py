"""Cancellation eligibility and refund schedule.

Eligibility, checked in order:

- terminal orders (cancelled, delivered, refunded) -> ``AlreadyFinal``
- orders in fulfilment (preparing, shipped, in transit) -> ``NotCancellable``
- paid orders older than ``PAID_CANCELLATION_WINDOW`` ->
  ``CancellationWindowExpired``

End customers may additionally only cancel during the first
``CUSTOMER_CANCELLATION_WINDOW`` after creation; admins and sales reps are
not bound by that window.

Refunds apply to paid orders only and follow ``REFUND_SCHEDULE`` keyed by
elapsed hours since creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from modules.core.authorization import Requester
from modules.core.exceptions import AccessDenied
from modules.orders.constants import (
    CUSTOMER_CANCELLATION_WINDOW,
    FULFILMENT_STATES,
    PAID_CANCELLATION_WINDOW,
    REFUND_FLOOR_PERCENTAGE,
    REFUND_SCHEDULE,
)
from modules.orders.exceptions import (
    AlreadyFinal,
    CancellationWindowExpired,
    NotCancellable,
)


@dataclass(frozen=True)
class RefundPlan:
    percentage: Decimal
    amount: Decimal

    @property
    def issues_refund(self) -> bool:
        return self.amount > 0


def refund_percentage(elapsed_hours: float) -> Decimal:
    for below_hours, percentage in REFUND_SCHEDULE:
        if elapsed_hours < below_hours:
            return percentage
    return REFUND_FLOOR_PERCENTAGE


class CancellationPolicy:
    def ensure_customer_window(
        self, requester: Requester, order: Any, now: datetime
    ) -> None:
        if requester.is_customer and now - order.created_at > CUSTOMER_CANCELLATION_WINDOW:
            raise AccessDenied(
                "Orders can only be cancelled by the customer within 2 hours "
                "of creation.",
                reason="customer_window_expired",
            )

    def ensure_cancellable(self, order: Any, now: datetime) -> None:
        if order.is_terminal:
            raise AlreadyFinal(
                f"Order is already {order.status}.", status=order.status
            )
        if order.status in FULFILMENT_STATES:
            raise NotCancellable(
                f"Order in status {order.status} cannot be cancelled.",
                status=order.status,
            )
        if order.is_paid and now - order.created_at > PAID_CANCELLATION_WINDOW:
            raise CancellationWindowExpired()

    def refund_plan(self, order: Any, now: datetime) -> RefundPlan:
        if not order.is_paid:
            return RefundPlan(percentage=Decimal("0"), amount=Decimal("0.00"))
        elapsed_hours = (now - order.created_at).total_seconds() / 3600
        percentage = refund_percentage(elapsed_hours)
        amount = (order.total_amount * percentage / Decimal("100")).quantize(
            Decimal("0.01"), rounding=ROUND_HALF_UP
        )
        return RefundPlan(percentage=percentage, amount=amount)
