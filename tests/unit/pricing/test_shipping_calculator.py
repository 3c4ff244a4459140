"""Unit tests for ShippingCalculator and zip prefix parsing."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.pricing.models import ShippingZone
from modules.pricing.shipping import ShippingCalculator, zip_prefix

pytestmark = pytest.mark.unit


class InMemoryZones:
    def __init__(self, *zones):
        self.zones = {zone.zip_prefix: zone for zone in zones}
        self.lookups = []

    def find_by_zip_prefix(self, prefix):
        self.lookups.append(prefix)
        return self.zones.get(prefix)


@pytest.fixture()
def calculator():
    return ShippingCalculator(
        InMemoryZones(
            ShippingZone(zip_prefix="01310", fee=Decimal("12.00")),
            ShippingZone(zip_prefix="69005", fee=Decimal("35.00"), is_remote=True),
        )
    )


class TestZipPrefix:
    @pytest.mark.parametrize(
        "zip_code, expected",
        [
            ("01310-100", "01310"),
            ("01310100", "01310"),
            (" 69005 040 ", "69005"),
            ("123", ""),
            ("", ""),
            (None, ""),
        ],
    )
    def test_first_five_digits(self, zip_code, expected):
        assert zip_prefix(zip_code) == expected


class TestFreeShipping:
    def test_threshold_is_inclusive(self, calculator):
        fee = calculator.calculate("01310-100", Decimal("50"), Decimal("200.00"))
        assert fee == Decimal("0.00")

    def test_express_does_not_cancel_free_shipping(self, calculator):
        fee = calculator.calculate("01310-100", Decimal("5"), Decimal("350.00"), express=True)
        assert fee == Decimal("0.00")

    def test_just_below_threshold_is_charged(self, calculator):
        fee = calculator.calculate("01310-100", Decimal("2"), Decimal("199.99"))
        assert fee == Decimal("13.00")


class TestZoneFee:
    def test_zone_fee_plus_weight_rate(self, calculator):
        assert calculator.calculate("01310-100", Decimal("2"), Decimal("50")) == Decimal("13.00")

    def test_remote_zone_multiplier(self, calculator):
        # (35 + 0.5 * 2) * 1.5
        assert calculator.calculate("69005-040", Decimal("2"), Decimal("50")) == Decimal("54.00")

    def test_express_doubles_fee(self, calculator):
        fee = calculator.calculate("01310-100", Decimal("2"), Decimal("50"), express=True)
        assert fee == Decimal("26.00")

    def test_fee_rounded_to_cents(self, calculator):
        fee = calculator.calculate("01310-100", Decimal("0.333"), Decimal("50"))
        assert fee == Decimal("12.17")


class TestFallbackTable:
    @pytest.mark.parametrize(
        "weight, expected",
        [
            ("0.2", "15.00"),
            ("1", "15.00"),
            ("1.001", "25.00"),
            ("5", "25.00"),
            ("10", "40.00"),
            ("12", "46.00"),
        ],
    )
    def test_weight_brackets(self, calculator, weight, expected):
        fee = calculator.calculate("99999-000", Decimal(weight), Decimal("10"))
        assert fee == Decimal(expected)

    def test_short_zip_matches_no_zone(self):
        zones = InMemoryZones()
        fee = ShippingCalculator(zones).calculate("123", Decimal("1"), Decimal("10"))

        assert fee == Decimal("15.00")
        assert zones.lookups == [""]

    def test_express_fallback(self, calculator):
        fee = calculator.calculate("", Decimal("3"), Decimal("10"), express=True)
        assert fee == Decimal("50.00")
