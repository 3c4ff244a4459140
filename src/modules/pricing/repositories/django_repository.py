"""Django ORM implementations of the coupon and shipping-zone repositories."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

import structlog

from modules.pricing.models import Coupon, CouponUsage, ShippingZone
from modules.pricing.repositories.interfaces import (
    ICouponRepository,
    IShippingZoneRepository,
)

logger = structlog.get_logger(__name__)


class CouponDjangoRepository(ICouponRepository):
    """Concrete Coupon repository backed by Django ORM."""

    def get_by_code(self, code: str) -> Optional[Coupon]:
        return Coupon.objects.filter(code=code.strip().upper()).first()

    def count_usages(self, coupon_id: Any) -> int:
        return CouponUsage.objects.filter(coupon_id=coupon_id).count()

    def count_customer_usages(self, coupon_id: Any, customer_id: Any) -> int:
        return CouponUsage.objects.filter(
            coupon_id=coupon_id, customer_id=customer_id
        ).count()

    def record_usage(
        self,
        coupon_id: Any,
        order_id: Any,
        customer_id: Any,
        discount_applied: Decimal,
    ) -> CouponUsage:
        usage, created = CouponUsage.objects.get_or_create(
            order_id=order_id,
            defaults={
                "coupon_id": coupon_id,
                "customer_id": customer_id,
                "discount_applied": discount_applied,
            },
        )
        if created:
            logger.info(
                "coupon.usage_recorded",
                coupon_id=str(coupon_id),
                order_id=str(order_id),
                discount_applied=str(discount_applied),
            )
        return usage


class ShippingZoneDjangoRepository(IShippingZoneRepository):
    """Concrete ShippingZone repository backed by Django ORM."""

    def find_by_zip_prefix(self, zip_prefix: str) -> Optional[ShippingZone]:
        if not zip_prefix:
            return None
        return ShippingZone.objects.filter(zip_prefix=zip_prefix).first()
