"""Domain events for the Orders bounded context.

Collected on the ``Order`` aggregate and written to the transactional
outbox by ``OrderDjangoRepository.save``; the Celery publisher forwards
them to analytics.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class OrderCreated(DomainEvent):
    """Raised when an order is persisted with its stock reserved."""

    customer_id: str = ""
    total: str = "0.00"
    payment_method: str = ""
    item_count: int = 0


@dataclass(frozen=True)
class OrderPaid(DomainEvent):
    transaction_id: str = ""
    total: str = "0.00"


@dataclass(frozen=True)
class OrderPaymentFailed(DomainEvent):
    """Raised after compensation released the order's stock."""

    reason: str = ""


@dataclass(frozen=True)
class OrderCancelled(DomainEvent):
    refund_amount: str = "0.00"
    refund_percentage: str = "0"


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    old_status: str = ""
    new_status: str = ""
