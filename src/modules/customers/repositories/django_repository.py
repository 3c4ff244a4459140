"""Django ORM implementation of the Customer repository.

Satisfies ``ICustomerRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising HTTP-level exceptions; the Service Layer decides
how to translate a missing entity into an API response.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from django.core.exceptions import ValidationError
from django.db.models import Count, Sum

from modules.customers.models import Customer
from modules.customers.repositories.interfaces import (
    CreditUsage,
    ICustomerRepository,
    PurchaseStats,
)


class CustomerDjangoRepository(ICustomerRepository):
    """Concrete Customer repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Customer]:
        """Retrieve a customer by primary key.

        Returns ``None`` for non-existent or invalid IDs (e.g. malformed UUID).
        """
        try:
            return Customer.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_email(self, email: str) -> Optional[Customer]:
        """Retrieve a live customer by email (case-insensitive)."""
        return Customer.objects.alive().filter(email__iexact=email.strip()).first()

    def get_by_user(self, user_id: Optional[int]) -> Optional[Customer]:
        """Retrieve the customer profile linked to an auth user."""
        if user_id is None:
            return None
        return Customer.objects.alive().filter(user_id=user_id).first()

    # ------------------------------------------------------------------
    # Aggregates (read-only, parameterised ORM queries)
    # ------------------------------------------------------------------

    def get_purchase_stats(self, customer_id: Any) -> PurchaseStats:
        """Sum and count of delivered orders for loyalty/first-order rules."""
        from modules.orders.constants import COMPLETED_STATES
        from modules.orders.models import Order

        row = Order.objects.filter(
            customer_id=customer_id, status__in=COMPLETED_STATES
        ).aggregate(total=Sum("total_amount"), count=Count("id"))
        return PurchaseStats(
            total_spent=row["total"] or Decimal("0.00"),
            completed_orders=row["count"] or 0,
        )

    def get_credit_usage(self, customer_id: Any) -> CreditUsage:
        """Credit committed to unpaid, non-cancelled orders.

        Not serialized against concurrent order creation: two requests may
        both read the same outstanding value.
        """
        from modules.orders.constants import (
            OUTSTANDING_PAYMENT_STATES,
            PaymentStatus,
            OrderStatus,
        )
        from modules.orders.models import Order

        orders = Order.objects.filter(customer_id=customer_id)
        outstanding = (
            orders.filter(payment_status__in=OUTSTANDING_PAYMENT_STATES)
            .exclude(status__in=[OrderStatus.CANCELLED, OrderStatus.REFUNDED])
            .aggregate(total=Sum("total_amount"))["total"]
        )
        overdue = orders.filter(payment_status=PaymentStatus.OVERDUE).count()
        return CreditUsage(
            outstanding=outstanding or Decimal("0.00"),
            overdue_payments=overdue,
        )
