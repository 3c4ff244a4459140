"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the Service layer.  DTOs are immutable (``frozen=True``).

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
- ``OrderResultDTO``: outcome of order creation.
- ``CancellationResultDTO``: outcome of a cancellation.
- ``DailyReportDTO``: orders and revenue per day for a staff member.
- ``CustomerViewDTO``: customer data embedded in an order view, reduced to
  what the requester's role may see.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator, model_validator

from modules.orders.constants import PaymentMethod

if TYPE_CHECKING:
    from modules.core.authorization import Requester
    from modules.customers.models import Customer
    from modules.orders.models import Order

CARD_PAYMENT_METHODS = frozenset({PaymentMethod.CREDIT_CARD, PaymentMethod.DEBIT_CARD})


# ---------------------------------------------------------------------------
# Input DTOs
# ---------------------------------------------------------------------------


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    The frontend sends ``product_id`` and ``quantity``.
    ``unit_price`` is resolved by the pricing engine from the product catalog.
    """

    model_config = ConfigDict(frozen=True)

    product_id: UUID
    quantity: int

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``items`` must contain at least one item, without duplicate products.
    - Each item quantity must be positive.
    - Card payments carry a ``card_token``.

    Staff identify the customer by ``customer_id`` or ``customer_email``;
    end customers ordering for themselves may omit both.
    """

    model_config = ConfigDict(frozen=True)

    customer_id: Optional[UUID] = None
    customer_email: Optional[EmailStr] = None
    items: List[CreateOrderItemDTO]
    payment_method: PaymentMethod
    card_token: Optional[str] = None
    coupon_code: Optional[str] = None
    express_delivery: bool = False
    notes: Optional[str] = ""
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @field_validator("coupon_code")
    @classmethod
    def normalize_coupon_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return v.strip().upper() or None

    @model_validator(mode="after")
    def no_duplicate_products(self):
        """Prevent duplicate product IDs in the same order."""
        product_ids = [item.product_id for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValueError("Duplicate product IDs are not allowed in the same order.")
        return self

    @model_validator(mode="after")
    def card_payments_need_token(self):
        if self.payment_method in CARD_PAYMENT_METHODS and not self.card_token:
            raise ValueError("card_token is required for card payments.")
        return self


# ---------------------------------------------------------------------------
# Output DTOs
# ---------------------------------------------------------------------------


class OrderResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    order_number: str
    status: str
    payment_status: str
    total: Decimal

    @classmethod
    def from_entity(cls, order: Order) -> OrderResultDTO:
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            total=order.total_amount,
        )


class CancellationResultDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    order_id: UUID
    status: str
    payment_status: str
    refund_amount: Decimal
    refund_percentage: Decimal


class DailyOrderStatsDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    orders: int
    revenue: Decimal


class DailyReportDTO(BaseModel):
    """Per-day order counts and revenue, newest day first.

    ``filtered_by`` is the sales rep's e-mail, or ``"all"`` for admins.
    Days without orders are omitted.
    """

    model_config = ConfigDict(frozen=True)

    days: int
    filtered_by: str
    generated_at: datetime
    order_stats: List[DailyOrderStatsDTO]

class CustomerViewDTO(BaseModel):
    """Customer data shown inside an order, scoped by requester role.

    - admins: name, masked document, e-mail, phone, city, state
    - sales reps: name, e-mail, phone, city, state
    - customers: name, city, state
    """

    model_config = ConfigDict(frozen=True)

    id: UUID
    name: str
    city: str
    state: str
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    document: Optional[str] = None

    @classmethod
    def for_requester(cls, customer: Customer, requester: Requester) -> CustomerViewDTO:
        data = {
            "id": customer.id,
            "name": customer.name,
            "city": customer.city,
            "state": customer.state,
        }
        if requester.is_admin or requester.is_sales:
            data["email"] = customer.email
            data["phone"] = customer.phone
        if requester.is_admin:
            data["document"] = customer.masked_document
        return cls(**data)
