"""Integration tests for the ``seed_data`` management command."""

from io import StringIO

import pytest
from django.contrib.auth import get_user_model
from django.core.management import call_command
from django.core.management.base import CommandError

from modules.customers.models import Customer
from modules.orders.models import Order
from modules.pricing.models import Coupon, ShippingZone
from modules.products.models import Product

pytestmark = pytest.mark.integration

User = get_user_model()


def seed(**options) -> str:
    out = StringIO()
    call_command("seed_data", stdout=out, **options)
    return out.getvalue()


class TestSeedCommand:
    def test_seeds_every_table(self):
        output = seed(password="dev-pass")

        assert "Seed completed" in output
        assert User.objects.count() == 3
        assert Customer.objects.count() == 6
        assert Product.objects.count() == 14
        assert Coupon.objects.count() == 2
        assert ShippingZone.objects.count() == 4
        assert Order.objects.count() == 40

    def test_seeded_orders_have_totals(self):
        seed(password="dev-pass")

        order = Order.objects.prefetch_related("items").first()
        assert order.items.exists()
        assert order.total_amount == sum(item.subtotal for item in order.items.all())

    def test_idempotent(self):
        seed(password="dev-pass")
        output = seed(password="dev-pass")

        assert "orders=0" in output
        assert User.objects.count() == 3
        assert Order.objects.count() == 40

    def test_rerun_keeps_seeded_orders_untouched(self):
        seed(password="dev-pass")
        before = dict(Order.objects.values_list("notes", "customer_id"))

        seed(password="dev-pass")

        assert dict(Order.objects.values_list("notes", "customer_id")) == before
        assert Order.objects.filter(notes="Seed order 1").count() == 1

    def test_seeded_users_can_log_in(self):
        seed(password="dev-pass")
        assert User.objects.get(username="ana").check_password("dev-pass")

    def test_password_from_environment(self, monkeypatch):
        monkeypatch.setenv("SEED_PASSWORD", "env-pass")
        seed()
        assert User.objects.get(username="admin").check_password("env-pass")

    def test_password_required(self, monkeypatch):
        monkeypatch.delenv("SEED_PASSWORD", raising=False)
        with pytest.raises(CommandError, match="SEED_PASSWORD"):
            seed()
