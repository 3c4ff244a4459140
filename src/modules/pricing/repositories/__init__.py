"""Pricing repositories package."""

from modules.pricing.repositories.django_repository import (
    CouponDjangoRepository,
    ShippingZoneDjangoRepository,
)
from modules.pricing.repositories.interfaces import (
    ICouponRepository,
    IShippingZoneRepository,
)

__all__ = [
    "CouponDjangoRepository",
    "ICouponRepository",
    "IShippingZoneRepository",
    "ShippingZoneDjangoRepository",
]
