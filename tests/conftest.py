from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

import pytest
from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.cache import cache
from rest_framework.test import APIClient

from modules.core.audit import DatabaseAuditSink
from modules.core.authorization import SALES_GROUP_NAME, Requester
from modules.customers.models import Customer, DocumentType
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.notifications.senders import INotificationSender
from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService
from modules.payments.gateway import (
    CaptureResult,
    IPaymentGateway,
    PaymentGatewayError,
    RefundResult,
)
from modules.pricing.engine import PricingEngine
from modules.pricing.repositories.django_repository import (
    CouponDjangoRepository,
    ShippingZoneDjangoRepository,
)
from modules.pricing.shipping import ShippingCalculator
from modules.products.models import Product, ProductStatus
from modules.products.repositories.django_repository import ProductDjangoRepository

User = get_user_model()

VALID_CPF = "59860184275"
VALID_CNPJ = "11222333000181"


# ---------------------------------------------------------------------------
# Test doubles for external collaborators
# ---------------------------------------------------------------------------


class StubPaymentGateway(IPaymentGateway):
    """In-memory gateway: records calls, succeeds unless told otherwise."""

    def __init__(self) -> None:
        self.capture_status = "succeeded"
        self.capture_error: Optional[Exception] = None
        self.refund_error: Optional[PaymentGatewayError] = None
        self.captures: List[dict] = []
        self.refunds: List[dict] = []

    def capture(self, amount, method, token, reference) -> CaptureResult:
        self.captures.append(
            {"amount": amount, "method": method, "token": token, "reference": reference}
        )
        if self.capture_error is not None:
            raise self.capture_error
        return CaptureResult(
            status=self.capture_status, transaction_id=f"pi_{len(self.captures)}"
        )

    def refund(self, transaction_id, amount) -> RefundResult:
        self.refunds.append({"transaction_id": transaction_id, "amount": amount})
        if self.refund_error is not None:
            raise self.refund_error
        return RefundResult(status="succeeded", refund_id=f"re_{len(self.refunds)}")


class RecordingNotificationSender(INotificationSender):
    def __init__(self) -> None:
        self.sent: List[dict] = []

    def send(self, recipient: str, subject: str, body: str) -> None:
        self.sent.append({"recipient": recipient, "subject": subject, "body": body})


# ---------------------------------------------------------------------------
# Database + clients
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def _clear_cache():
    """Throttle counters live in the cache; start every test with none."""
    cache.clear()


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Users by role
# ---------------------------------------------------------------------------


@pytest.fixture()
def admin_user():
    return User.objects.create_user(
        username="admin", email="admin@example.com", password="x", is_staff=True
    )


@pytest.fixture()
def sales_user():
    user = User.objects.create_user(
        username="sales", email="sales@example.com", password="x"
    )
    group, _ = Group.objects.get_or_create(name=SALES_GROUP_NAME)
    user.groups.add(group)
    return user


@pytest.fixture()
def customer_user():
    return User.objects.create_user(
        username="ana", email="ana@example.com", password="x"
    )


@pytest.fixture()
def admin(admin_user):
    return Requester.from_user(admin_user)


@pytest.fixture()
def sales(sales_user):
    return Requester.from_user(sales_user)


@pytest.fixture()
def customer_requester(customer_user):
    return Requester.from_user(customer_user)


def client_for(user) -> APIClient:
    client = APIClient()
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def admin_client(admin_user):
    return client_for(admin_user)


@pytest.fixture()
def sales_client(sales_user):
    return client_for(sales_user)


@pytest.fixture()
def customer_client(customer_user):
    return client_for(customer_user)


# ---------------------------------------------------------------------------
# Catalogue and customers
# ---------------------------------------------------------------------------


@pytest.fixture()
def customer(customer_user, sales_user):
    """Active customer owned by ``customer_user`` and assigned to ``sales_user``."""
    return Customer.objects.create(
        name="Ana Souza",
        document=VALID_CPF,
        document_type=DocumentType.CPF,
        email="ana@example.com",
        phone="11999990000",
        zip_code="01310-100",
        address="Av. Paulista, 1000",
        city="São Paulo",
        state="SP",
        credit_limit=Decimal("5000.00"),
        user=customer_user,
        sales_rep=sales_user,
    )


@pytest.fixture()
def other_customer():
    """Customer with no linked user and no sales rep."""
    return Customer.objects.create(
        name="Bruno Lima",
        document=VALID_CNPJ,
        document_type=DocumentType.CNPJ,
        email="bruno@example.com",
        zip_code="20040-002",
        city="Rio de Janeiro",
        state="RJ",
        credit_limit=Decimal("20000.00"),
    )


@pytest.fixture()
def product():
    return Product.objects.create(
        sku="KBD-001",
        name="Teclado Mecânico",
        price=Decimal("100.00"),
        cost=Decimal("60.00"),
        weight=Decimal("1.000"),
        stock_quantity=10,
        status=ProductStatus.ACTIVE,
    )


@pytest.fixture()
def cheap_product():
    return Product.objects.create(
        sku="PEN-001",
        name="Caneta Azul",
        price=Decimal("5.00"),
        stock_quantity=100,
        status=ProductStatus.ACTIVE,
    )


# ---------------------------------------------------------------------------
# Service wiring
# ---------------------------------------------------------------------------


@pytest.fixture()
def gateway():
    return StubPaymentGateway()


@pytest.fixture()
def notifier():
    return RecordingNotificationSender()


def build_service(gateway, notifier, **overrides) -> OrderService:
    product_repository = overrides.pop("product_repository", ProductDjangoRepository())
    coupon_repository = CouponDjangoRepository()
    options = {
        "order_repository": OrderDjangoRepository(),
        "customer_repository": CustomerDjangoRepository(),
        "product_repository": product_repository,
        "coupon_repository": coupon_repository,
        "pricing_engine": PricingEngine(
            product_repository=product_repository,
            coupon_repository=coupon_repository,
            shipping_calculator=ShippingCalculator(ShippingZoneDjangoRepository()),
        ),
        "payment_gateway": gateway,
        "notification_sender": notifier,
        "audit_sink": DatabaseAuditSink(),
    }
    options.update(overrides)
    return OrderService(**options)


@pytest.fixture()
def make_service(gateway, notifier):
    """Factory for an ``OrderService`` with selected collaborators replaced."""

    def factory(**overrides) -> OrderService:
        return build_service(gateway, notifier, **overrides)

    return factory


@pytest.fixture()
def service(make_service):
    return make_service()


@pytest.fixture()
def api_gateway(gateway, monkeypatch):
    """Make the API views charge through the stub gateway."""
    monkeypatch.setattr(
        "modules.orders.views.HttpPaymentGateway.from_settings",
        classmethod(lambda cls: gateway),
    )
    return gateway


# ---------------------------------------------------------------------------
# Order requests
# ---------------------------------------------------------------------------


@pytest.fixture()
def order_request(product):
    """Factory for ``CreateOrderDTO``; defaults to 2x ``product`` paid by PIX."""

    def factory(quantity=2, payment_method=PaymentMethod.PIX, items=None, **fields):
        if items is None:
            items = [CreateOrderItemDTO(product_id=product.id, quantity=quantity)]
        return CreateOrderDTO(items=items, payment_method=payment_method, **fields)

    return factory


@pytest.fixture()
def paid_order(service, order_request, customer, admin):
    """PAID order of R$ 200.00 (2x ``product``, free shipping) for ``customer``."""
    result = service.create_order(order_request(customer_id=customer.id), admin)
    return Order.objects.get(id=result.order_id)
