"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.
Domain exceptions propagate to ``standardized_exception_handler``, which
renders every error in the same envelope; views never translate them.
"""

from __future__ import annotations

from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.core.audit import DatabaseAuditSink
from modules.core.authorization import Requester
from modules.core.exceptions import InvalidRequest
from modules.core.pagination import StandardResultsSetPagination
from modules.customers.repositories.django_repository import CustomerDjangoRepository
from modules.notifications.senders import DjangoEmailSender
from modules.orders.constants import DAILY_REPORT_DEFAULT_DAYS
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateOrderStatusSerializer,
)
from modules.orders.services import OrderService
from modules.payments.gateway import HttpPaymentGateway
from modules.pricing.engine import PricingEngine
from modules.pricing.repositories.django_repository import (
    CouponDjangoRepository,
    ShippingZoneDjangoRepository,
)
from modules.pricing.shipping import ShippingCalculator
from modules.products.repositories.django_repository import ProductDjangoRepository


def build_order_service() -> OrderService:
    """Wire ``OrderService`` with the Django-backed collaborators."""
    product_repository = ProductDjangoRepository()
    coupon_repository = CouponDjangoRepository()
    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        product_repository=product_repository,
        coupon_repository=coupon_repository,
        pricing_engine=PricingEngine(
            product_repository=product_repository,
            coupon_repository=coupon_repository,
            shipping_calculator=ShippingCalculator(ShippingZoneDjangoRepository()),
        ),
        payment_gateway=HttpPaymentGateway.from_settings(),
        notification_sender=DjangoEmailSender(),
        audit_sink=DatabaseAuditSink(),
    )


def _parse_order_id(pk: str | None) -> UUID:
    try:
        return UUID(str(pk))
    except ValueError:
        raise InvalidRequest("Invalid order ID format.", field="id") from None


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``; all ORM access goes through
    the service/repository layer.
    """

    queryset = Order.objects.none()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer__name"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Define escopos de throttling por ação."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    @property
    def requester(self) -> Requester:
        return Requester.from_user(self.request.user)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header: replaying
        a key returns the original order's result.
        """
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        dto = CreateOrderDTO(
            customer_id=data.get("customer_id"),
            customer_email=data.get("customer_email"),
            items=[
                CreateOrderItemDTO(
                    product_id=item["product_id"],
                    quantity=item["quantity"],
                )
                for item in data["items"]
            ],
            payment_method=data["payment_method"],
            card_token=data.get("card_token") or None,
            coupon_code=data.get("coupon_code") or None,
            express_delivery=data.get("express_delivery", False),
            notes=data.get("notes", ""),
            idempotency_key=request.headers.get("Idempotency-Key"),
        )

        result = self._service.create_order(dto, self.requester)
        return Response(result.model_dump(mode="json"), status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def get_queryset(self):
        return self._service.list_orders(self.requester)

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, customer, date range, total range) is handled
        by ``OrderFilter`` via ``filter_backends``.  Ordering is handled
        by ``OrderingFilter``.  Results are paginated and restricted to the
        requester's scope.
        """
        queryset = self.filter_queryset(self.get_queryset())

        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/ (customer data scoped by role)"""
        requester = self.requester
        order = self._service.get_order(str(_parse_order_id(pk)), requester)
        serializer = OrderSerializer(order, context={"requester": requester})
        return Response(serializer.data)

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Moves the order along the fulfilment path.  Cancellations are
        **not** allowed via this endpoint; use ``POST /orders/{id}/cancel/``.
        """
        serializer = UpdateOrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        requester = self.requester
        order = self._service.update_status(
            order_id=_parse_order_id(pk),
            new_status=serializer.validated_data["status"],
            requester=requester,
            notes=serializer.validated_data["notes"],
        )
        return Response(OrderSerializer(order, context={"requester": requester}).data)

    # ------------------------------------------------------------------
    # Cancel (dedicated action)
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Refunds paid orders on the refund schedule and releases reserved
        stock (RN-EST-005/006).
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = self._service.cancel_order(
            order_id=_parse_order_id(pk),
            requester=self.requester,
            notes=serializer.validated_data["notes"],
        )
        return Response(result.model_dump(mode="json"))

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    @action(detail=False, methods=["get"], url_path="reports/daily")
    def daily_report(self, request: Request) -> Response:
        """GET /api/v1/orders/reports/daily/?days=7

        Staff only; sales reps see their assigned customers' orders.
        """
        raw_days = request.query_params.get("days", DAILY_REPORT_DEFAULT_DAYS)
        try:
            days = int(raw_days)
        except (TypeError, ValueError):
            raise InvalidRequest("days must be an integer.", field="days") from None

        report = self._service.daily_report(self.requester, days=days)
        return Response(report.model_dump(mode="json"))
