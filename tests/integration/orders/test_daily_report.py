"""Integration tests for OrderService.daily_report.

Covers:
- Orders counted and totals summed per local day, newest first, inside
  the requested window only.
- Admins see every customer; sales reps only their assigned customers;
  end customers are denied.
- ``days`` bounds.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

import pytest
from django.utils import timezone

from modules.core.exceptions import AccessDenied, InvalidRequest
from modules.orders.constants import PaymentMethod
from modules.orders.models import Order

pytestmark = pytest.mark.integration


def place(customer, total, days_ago=0):
    order = Order.objects.create(
        customer=customer, payment_method=PaymentMethod.PIX, total_amount=Decimal(total)
    )
    if days_ago:
        Order.objects.filter(pk=order.pk).update(
            created_at=timezone.now() - timedelta(days=days_ago)
        )
    return order


def day(days_ago):
    return timezone.localdate() - timedelta(days=days_ago)


@pytest.fixture()
def history(customer, other_customer):
    place(customer, "200.00")
    place(other_customer, "1.00")
    place(customer, "50.00", days_ago=2)
    place(customer, "75.00", days_ago=2)
    place(customer, "999.00", days_ago=10)


class TestDailyReport:
    def test_admin_sees_every_customer(self, service, admin, history):
        report = service.daily_report(admin)

        assert report.days == 7
        assert report.filtered_by == "all"
        assert [(row.day, row.orders, row.revenue) for row in report.order_stats] == [
            (day(0), 2, Decimal("201.00")),
            (day(2), 2, Decimal("125.00")),
        ]

    def test_sales_rep_sees_assigned_customers(self, service, sales, history):
        report = service.daily_report(sales)

        assert report.filtered_by == "sales@example.com"
        assert [(row.orders, row.revenue) for row in report.order_stats] == [
            (1, Decimal("200.00")),
            (2, Decimal("125.00")),
        ]

    def test_window_ends_today(self, service, admin, history):
        report = service.daily_report(admin, days=1)

        assert [row.day for row in report.order_stats] == [day(0)]

    def test_longer_window_reaches_older_orders(self, service, admin, history):
        report = service.daily_report(admin, days=11)

        assert report.order_stats[-1].day == day(10)
        assert report.order_stats[-1].revenue == Decimal("999.00")

    def test_no_orders(self, service, admin):
        assert service.daily_report(admin).order_stats == []

    def test_customers_are_denied(self, service, customer_requester, history):
        with pytest.raises(AccessDenied, match="staff only"):
            service.daily_report(customer_requester)

    @pytest.mark.parametrize("days", [0, -1, 91])
    def test_days_out_of_range(self, service, admin, days):
        with pytest.raises(InvalidRequest) as exc_info:
            service.daily_report(admin, days=days)

        assert exc_info.value.extra["field"] == "days"
