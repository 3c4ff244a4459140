"""Coupon, CouponUsage and ShippingZone models.

Business rules implemented:
- RN-CUP-001: Coupon code is unique and normalised to uppercase.
- RN-CUP-002: Coupon rows are never mutated by the order workflow; usage is
  tracked in the append-only ``CouponUsage`` side table.
- RN-FRT-001: Shipping zones are keyed by the first five zip digits.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models

from modules.core.models import BaseModel
from modules.pricing.constants import DiscountType


class Coupon(BaseModel):
    code = models.CharField(max_length=40, unique=True)
    discount_type = models.CharField(max_length=12, choices=DiscountType.choices)
    discount_value = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    max_discount_amount = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    min_order_value = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    usage_limit_per_customer = models.PositiveIntegerField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "coupons"
        ordering = ["code"]

    def clean(self) -> None:
        super().clean()
        if self.code:
            self.code = self.code.strip().upper()
        if (
            self.discount_type == DiscountType.PERCENTAGE
            and self.discount_value is not None
            and self.discount_value > 100
        ):
            raise ValidationError(
                {"discount_value": "Percentage discount cannot exceed 100."}
            )

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.code} ({self.discount_type} {self.discount_value})"


class CouponUsage(BaseModel):
    """One row per order that redeemed a coupon."""

    coupon = models.ForeignKey(
        Coupon, on_delete=models.PROTECT, related_name="usages"
    )
    order = models.OneToOneField(
        "orders.Order", on_delete=models.CASCADE, related_name="coupon_usage"
    )
    customer = models.ForeignKey(
        "customers.Customer", on_delete=models.PROTECT, related_name="coupon_usages"
    )
    discount_applied = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        db_table = "coupon_usages"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["coupon", "customer"], name="coupon_usage_cust_idx"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.coupon_id} -> {self.order_id}"


class ShippingZone(BaseModel):
    zip_prefix = models.CharField(
        max_length=5,
        unique=True,
        validators=[RegexValidator(r"^\d{5}$", "Zip prefix must be 5 digits.")],
    )
    name = models.CharField(max_length=120, blank=True, default="")
    fee = models.DecimalField(
        max_digits=8,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.00"))],
    )
    is_remote = models.BooleanField(default=False)

    class Meta:
        db_table = "shipping_zones"
        ordering = ["zip_prefix"]

    def __str__(self) -> str:
        return f"{self.zip_prefix} ({self.fee})"
