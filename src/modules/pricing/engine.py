"""Pricing engine: subtotal, discounts, shipping and grand total.

``PricingEngine.quote`` is read-only.  It reads one snapshot of the
requested products (price, weight and stock from a single query), so a
quote is internally consistent even if the catalogue changes while it is
being computed.  The snapshot is not locked: prices are those at quote
time, and the order workflow re-checks stock atomically when reserving.

Discount rules:

- Loyalty tier on completed-order spend and bulk tier on the number of
  line items are *added* together into the automatic discount.
- A coupon discount is computed independently.
- The applied discount is the larger of the two, never their sum.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any, List, Optional, Sequence

import structlog
from django.utils import timezone

from modules.customers.repositories.interfaces import PurchaseStats
from modules.pricing.constants import (
    BULK_TIERS,
    DEFAULT_PRODUCT_WEIGHT,
    LOYALTY_TIERS,
    MONEY_QUANTUM,
    CouponRejection,
    DiscountType,
)
from modules.pricing.exceptions import (
    CouponRejected,
    InactiveProduct,
    InsufficientStock,
    ProductNotFound,
)

if TYPE_CHECKING:
    from modules.pricing.models import Coupon
    from modules.pricing.repositories.interfaces import ICouponRepository
    from modules.pricing.shipping import ShippingCalculator
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

ZERO = Decimal("0.00")


def money(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, percentage: Decimal) -> Decimal:
    return money(amount * percentage / Decimal("100"))


def loyalty_percentage(total_spent: Decimal) -> Decimal:
    for threshold, percentage in LOYALTY_TIERS:
        if total_spent > threshold:
            return percentage
    return Decimal("0")


def bulk_percentage(line_count: int) -> Decimal:
    for minimum, percentage in BULK_TIERS:
        if line_count >= minimum:
            return percentage
    return Decimal("0")


@dataclass(frozen=True)
class QuotedLine:
    product: Product
    quantity: int
    unit_price: Decimal
    line_total: Decimal
    weight: Decimal


@dataclass(frozen=True)
class PriceQuote:
    subtotal: Decimal
    loyalty_percentage: Decimal
    bulk_percentage: Decimal
    automatic_discount: Decimal
    coupon_discount: Decimal
    discount: Decimal
    shipping_fee: Decimal
    total: Decimal
    total_weight: Decimal
    lines: List[QuotedLine] = field(default_factory=list)
    coupon: Optional[Coupon] = None

    @property
    def coupon_applied(self) -> bool:
        """``True`` when the coupon, not the automatic discount, was applied."""
        return self.coupon is not None


class PricingEngine:
    """Computes ``PriceQuote`` objects; never writes to the database."""

    def __init__(
        self,
        product_repository: IProductRepository,
        coupon_repository: ICouponRepository,
        shipping_calculator: ShippingCalculator,
    ) -> None:
        self._product_repo = product_repository
        self._coupon_repo = coupon_repository
        self._shipping = shipping_calculator

    def quote(
        self,
        customer: Any,
        lines: Sequence[Any],
        coupon_code: Optional[str] = None,
        express_delivery: bool = False,
        purchase_stats: Optional[PurchaseStats] = None,
        now: Optional[datetime] = None,
    ) -> PriceQuote:
        """Price an order request.

        ``lines`` are objects exposing ``product_id`` and ``quantity``.

        Raises:
            ProductNotFound: a line references an unknown product.
            InactiveProduct: a line references an inactive product.
            InsufficientStock: a quantity exceeds the snapshot stock.
            CouponRejected: a coupon code was given but cannot be used.
        """
        now = now or timezone.now()
        stats = purchase_stats or PurchaseStats()

        quoted = self._price_lines(lines)
        subtotal = money(sum((line.line_total for line in quoted), ZERO))
        total_weight = sum((line.weight for line in quoted), Decimal("0"))

        loyalty = loyalty_percentage(stats.total_spent)
        bulk = bulk_percentage(len(quoted))
        automatic = percent_of(subtotal, loyalty + bulk)

        coupon = None
        coupon_discount = ZERO
        if coupon_code:
            coupon = self._validate_coupon(coupon_code, customer, subtotal, now)
            coupon_discount = self._coupon_discount(coupon, subtotal)

        if coupon is not None and coupon_discount > ZERO and coupon_discount >= automatic:
            discount = coupon_discount
        else:
            discount = automatic
            coupon = None

        shipping_fee = self._shipping.calculate(
            zip_code=customer.zip_code,
            total_weight=total_weight,
            discounted_subtotal=subtotal - discount,
            express=express_delivery,
        )
        total = money(subtotal - discount + shipping_fee)

        logger.info(
            "pricing.quoted",
            customer_id=str(customer.id),
            line_count=len(quoted),
            subtotal=str(subtotal),
            automatic_discount=str(automatic),
            coupon_discount=str(coupon_discount),
            discount=str(discount),
            shipping_fee=str(shipping_fee),
            total=str(total),
        )
        return PriceQuote(
            subtotal=subtotal,
            loyalty_percentage=loyalty,
            bulk_percentage=bulk,
            automatic_discount=automatic,
            coupon_discount=coupon_discount,
            discount=discount,
            shipping_fee=shipping_fee,
            total=total,
            total_weight=total_weight,
            lines=quoted,
            coupon=coupon,
        )

    # ------------------------------------------------------------------
    # Lines
    # ------------------------------------------------------------------

    def _price_lines(self, lines: Sequence[Any]) -> List[QuotedLine]:
        snapshot = self._product_repo.get_many(line.product_id for line in lines)
        quoted: List[QuotedLine] = []
        for line in lines:
            product = snapshot.get(str(line.product_id))
            if product is None or product.is_deleted:
                raise ProductNotFound(
                    f"Product {line.product_id} not found.",
                    product_id=str(line.product_id),
                )
            if not product.is_active:
                raise InactiveProduct(
                    f"Product {product.sku} is inactive.",
                    product_id=str(product.id),
                )
            if product.stock_quantity < line.quantity:
                raise InsufficientStock(
                    product_id=product.id,
                    available=product.stock_quantity,
                    requested=line.quantity,
                )
            unit_weight = (
                product.weight if product.weight is not None else DEFAULT_PRODUCT_WEIGHT
            )
            quoted.append(
                QuotedLine(
                    product=product,
                    quantity=line.quantity,
                    unit_price=product.price,
                    line_total=money(product.price * line.quantity),
                    weight=unit_weight * line.quantity,
                )
            )
        return quoted

    # ------------------------------------------------------------------
    # Coupons
    # ------------------------------------------------------------------

    def _validate_coupon(
        self, code: str, customer: Any, subtotal: Decimal, now: datetime
    ) -> Coupon:
        coupon = self._coupon_repo.get_by_code(code)
        normalized = code.strip().upper()
        if coupon is None:
            raise CouponRejected(normalized, CouponRejection.UNKNOWN)
        if not coupon.is_active:
            raise CouponRejected(coupon.code, CouponRejection.INACTIVE)
        if coupon.starts_at is not None and now < coupon.starts_at:
            raise CouponRejected(coupon.code, CouponRejection.NOT_YET_VALID)
        if coupon.expires_at is not None and now > coupon.expires_at:
            raise CouponRejected(coupon.code, CouponRejection.EXPIRED)
        if coupon.min_order_value is not None and subtotal < coupon.min_order_value:
            raise CouponRejected(coupon.code, CouponRejection.BELOW_MINIMUM)
        if (
            coupon.usage_limit is not None
            and self._coupon_repo.count_usages(coupon.id) >= coupon.usage_limit
        ):
            raise CouponRejected(coupon.code, CouponRejection.USAGE_EXHAUSTED)
        if (
            coupon.usage_limit_per_customer is not None
            and self._coupon_repo.count_customer_usages(coupon.id, customer.id)
            >= coupon.usage_limit_per_customer
        ):
            raise CouponRejected(coupon.code, CouponRejection.CUSTOMER_USAGE_EXHAUSTED)
        return coupon

    @staticmethod
    def _coupon_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
        if coupon.discount_type == DiscountType.PERCENTAGE:
            discount = percent_of(subtotal, coupon.discount_value)
            if coupon.max_discount_amount is not None:
                discount = min(discount, coupon.max_discount_amount)
        else:
            discount = min(coupon.discount_value, subtotal)
        return money(discount)
