"""Pricing constants: discount tiers, coupon types and shipping tables."""

from decimal import Decimal

from django.db import models


class DiscountType(models.TextChoices):
    PERCENTAGE = "PERCENTAGE", "Percentual"
    FIXED = "FIXED", "Valor fixo"


class CouponRejection(models.TextChoices):
    UNKNOWN = "unknown", "Coupon does not exist."
    INACTIVE = "inactive", "Coupon is inactive."
    NOT_YET_VALID = "not_yet_valid", "Coupon is not valid yet."
    EXPIRED = "expired", "Coupon has expired."
    BELOW_MINIMUM = "below_minimum", "Order value is below the coupon minimum."
    USAGE_EXHAUSTED = "usage_exhausted", "Coupon usage limit reached."
    CUSTOMER_USAGE_EXHAUSTED = (
        "customer_usage_exhausted",
        "Coupon already used the maximum number of times by this customer.",
    )


MONEY_QUANTUM = Decimal("0.01")

# (spend strictly above, percentage) checked top-down on completed-order spend
LOYALTY_TIERS: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("10000"), Decimal("15")),
    (Decimal("5000"), Decimal("10")),
    (Decimal("2000"), Decimal("5")),
)

# (minimum number of line items, percentage)
BULK_TIERS: tuple[tuple[int, Decimal], ...] = (
    (10, Decimal("8")),
    (5, Decimal("5")),
)

FREE_SHIPPING_THRESHOLD = Decimal("200.00")
DEFAULT_PRODUCT_WEIGHT = Decimal("0.5")
ZONE_RATE_PER_KG = Decimal("0.50")
REMOTE_ZONE_MULTIPLIER = Decimal("1.5")
EXPRESS_MULTIPLIER = Decimal("2")

# (weight up to and including, fee) used when no zone matches
FALLBACK_SHIPPING_TABLE: tuple[tuple[Decimal, Decimal], ...] = (
    (Decimal("1"), Decimal("15.00")),
    (Decimal("5"), Decimal("25.00")),
    (Decimal("10"), Decimal("40.00")),
)
FALLBACK_HEAVY_BASE = Decimal("40.00")
FALLBACK_HEAVY_RATE_PER_KG = Decimal("3.00")
FALLBACK_HEAVY_FROM_KG = Decimal("10")

ZIP_PREFIX_LENGTH = 5
