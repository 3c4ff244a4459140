"""Coupon and shipping-zone repository interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from modules.pricing.models import Coupon, CouponUsage, ShippingZone


class ICouponRepository(ABC):
    """Read access to coupons plus the append-only usage table."""

    @abstractmethod
    def get_by_code(self, code: str) -> Optional[Coupon]:
        """Retrieve a coupon by code (case-insensitive)."""

    @abstractmethod
    def count_usages(self, coupon_id: Any) -> int:
        """Total redemptions of the coupon."""

    @abstractmethod
    def count_customer_usages(self, coupon_id: Any, customer_id: Any) -> int:
        """Redemptions of the coupon by one customer."""

    @abstractmethod
    def record_usage(
        self,
        coupon_id: Any,
        order_id: Any,
        customer_id: Any,
        discount_applied: Decimal,
    ) -> CouponUsage:
        """Append a usage row; the coupon itself is never mutated."""


class IShippingZoneRepository(ABC):
    @abstractmethod
    def find_by_zip_prefix(self, zip_prefix: str) -> Optional[ShippingZone]:
        """Retrieve the zone for a 5-digit zip prefix, if any."""
