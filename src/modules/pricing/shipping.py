"""Shipping fee calculation.

Free shipping above the threshold; otherwise a zone-based fee keyed by the
first five zip digits, falling back to a weight table when no zone matches.
"""

from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

import structlog

from modules.pricing.constants import (
    EXPRESS_MULTIPLIER,
    FALLBACK_HEAVY_BASE,
    FALLBACK_HEAVY_FROM_KG,
    FALLBACK_HEAVY_RATE_PER_KG,
    FALLBACK_SHIPPING_TABLE,
    FREE_SHIPPING_THRESHOLD,
    MONEY_QUANTUM,
    REMOTE_ZONE_MULTIPLIER,
    ZIP_PREFIX_LENGTH,
    ZONE_RATE_PER_KG,
)

if TYPE_CHECKING:
    from modules.pricing.repositories.interfaces import IShippingZoneRepository

logger = structlog.get_logger(__name__)


def zip_prefix(zip_code: str) -> str:
    digits = re.sub(r"\D", "", zip_code or "")
    return digits[:ZIP_PREFIX_LENGTH] if len(digits) >= ZIP_PREFIX_LENGTH else ""


class ShippingCalculator:
    def __init__(self, zone_repository: IShippingZoneRepository) -> None:
        self._zone_repo = zone_repository

    def calculate(
        self,
        zip_code: str,
        total_weight: Decimal,
        discounted_subtotal: Decimal,
        express: bool = False,
    ) -> Decimal:
        """Return the shipping fee for a destination and parcel weight.

        ``discounted_subtotal`` is the subtotal after the applied discount;
        reaching ``FREE_SHIPPING_THRESHOLD`` waives the fee entirely, even
        for express delivery.
        """
        if discounted_subtotal >= FREE_SHIPPING_THRESHOLD:
            return Decimal("0.00")

        zone = self._zone_repo.find_by_zip_prefix(zip_prefix(zip_code))
        if zone is not None:
            fee = zone.fee + ZONE_RATE_PER_KG * total_weight
            if zone.is_remote:
                fee *= REMOTE_ZONE_MULTIPLIER
        else:
            fee = self.fallback_fee(total_weight)
            logger.info(
                "shipping.zone_not_found",
                zip_prefix=zip_prefix(zip_code),
                weight=str(total_weight),
            )

        if express:
            fee *= EXPRESS_MULTIPLIER
        return fee.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)

    @staticmethod
    def fallback_fee(total_weight: Decimal) -> Decimal:
        for max_weight, fee in FALLBACK_SHIPPING_TABLE:
            if total_weight <= max_weight:
                return fee
        return FALLBACK_HEAVY_BASE + FALLBACK_HEAVY_RATE_PER_KG * (
            total_weight - FALLBACK_HEAVY_FROM_KG
        )
