"""Customer repository interface.

Extends ``IRepository[Customer]`` with look-ups required by
business rule RN-CLI-002 (unique email),
requester resolution and the purchase/credit aggregates consumed by
the pricing engine and the credit policy.
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.customers.models import Customer


@dataclass(frozen=True)
class PurchaseStats:
    """Aggregate over the customer's completed (delivered) orders."""

    total_spent: Decimal = Decimal("0.00")
    completed_orders: int = 0


@dataclass(frozen=True)
class CreditUsage:
    """Credit currently committed to unpaid orders plus delinquency count."""

    outstanding: Decimal = Decimal("0.00")
    overdue_payments: int = 0


class ICustomerRepository(IRepository["Customer"]):
    """Repository contract for the Customer aggregate."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Customer]:
        """Retrieve a live customer by email (case-insensitive)."""

    @abstractmethod
    def get_by_user(self, user_id: Optional[int]) -> Optional[Customer]:
        """Retrieve the customer profile linked to an auth user."""

    @abstractmethod
    def get_purchase_stats(self, customer_id: Any) -> PurchaseStats:
        """Sum and count of the customer's completed orders."""

    @abstractmethod
    def get_credit_usage(self, customer_id: Any) -> CreditUsage:
        """Outstanding unpaid order totals and overdue payment count."""
