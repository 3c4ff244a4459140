"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
All write operations are wrapped in ``transaction.atomic()`` so that, when
called inside the service's unit of work, they join the outer transaction
and roll back with it.

Concurrency control on status updates uses ``select_for_update()``
to prevent race conditions (no ``version`` field exists on the model).
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import DatabaseError, models, transaction

from modules.core.models import OutboxEvent
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)

_ORDER_FIELDS = (
    "customer_id",
    "payment_method",
    "subtotal",
    "discount",
    "shipping_fee",
    "total_amount",
    "coupon_code",
    "shipping_zip_code",
    "shipping_address",
    "shipping_city",
    "shipping_state",
    "express_delivery",
    "created_by_id",
    "stock_reserved",
    "notes",
    "idempotency_key",
)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` keys mirror the ``Order`` fields listed in ``_ORDER_FIELDS``
        plus ``items``: a list of dicts with ``product``, ``quantity`` and
        ``unit_price``.  Totals are stored as given, never recomputed.
        """
        order = Order(**{key: data[key] for key in _ORDER_FIELDS if key in data})
        order.save()

        items = data.get("items", [])
        for item_data in items:
            product = item_data["product"]
            OrderItem(
                order=order,
                product=product,
                product_name=product.name,
                product_sku=product.sku,
                quantity=item_data["quantity"],
                unit_price=item_data["unit_price"],
            ).save()

        log = logger.bind(order_id=str(order.id), item_count=len(items))
        log.info("order.persisted", order_number=order.order_number)

        return order

    def mark_for_reconciliation(self, order_id: UUID, reason: str) -> None:
        """Flag the order; a failing write is logged, not raised."""
        try:
            Order.objects.filter(id=order_id).update(
                needs_reconciliation=True, reconciliation_reason=reason
            )
        except DatabaseError as exc:
            logger.critical(
                "order.reconciliation_flag_failed",
                order_id=str(order_id),
                reason=reason,
                error=str(exc),
            )
            return
        logger.error("order.flagged_for_reconciliation", order_id=str(order_id), reason=reason)

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with eager-loaded relations.

        Uses ``select_related`` for the customer FK (single JOIN) and
        ``prefetch_related`` for items and status history (separate
        batched queries).  Prevents N+1.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.alive()
                .select_related("customer")
                .prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> models.QuerySet:
        """Lazy queryset of live orders with eager-loaded customer.

        Supported filter keys are any Django look-ups, e.g.:
        - ``status``
        - ``customer_id``
        - ``customer__sales_rep_id``
        """
        queryset = Order.objects.alive().select_related("customer")
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    # ------------------------------------------------------------------
    # Save
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist an order and drain its domain events into the outbox."""
        entity.save()

        events = entity.domain_events
        for event in events:
            OutboxEvent.objects.create(
                event_type=event.event_name,
                aggregate_id=str(event.aggregate_id),
                payload=_serialize_event_payload(event),
                topic="orders",
            )
        entity.clear_domain_events()

        logger.info("order.saved", order_id=str(entity.id), event_count=len(events))
        return entity

    # ------------------------------------------------------------------
    # Order-specific queries
    # ------------------------------------------------------------------

    @transaction.atomic
    def add_history(
        self,
        order_id: UUID,
        status: str,
        notes: str = "",
        old_status: Optional[str] = None,
        user_id: Optional[int] = None,
    ) -> OrderStatusHistory:
        """Record a status change in the order's audit trail."""
        history = OrderStatusHistory(
            order_id=order_id,
            old_status=old_status,
            new_status=status,
            user_id=user_id,
            notes=notes,
        )
        history.save()

        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
        )
        return history

    def get_for_update(self, id: str) -> Optional[Order]:
        """Retrieve an order with a row-level lock (SELECT FOR UPDATE).

        Eager-loads items so the caller can iterate over them while the
        row is locked.  Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return (
                Order.objects.select_for_update()
                .select_related("customer")
                .prefetch_related("items")
                .filter(id=id, deleted_at__isnull=True)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its idempotency key."""
        return (
            Order.objects.select_related("customer")
            .prefetch_related("items", "status_history")
            .filter(idempotency_key=key)
            .first()
        )


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
