"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.  Product cost is never serialized.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import PaymentMethod
from modules.orders.dtos import CustomerViewDTO
from modules.orders.models import Order, OrderItem, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    customer_id = serializers.UUIDField(required=False, allow_null=True)
    customer_email = serializers.EmailField(required=False, allow_null=True)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    card_token = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=255
    )
    coupon_code = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, max_length=40
    )
    express_delivery = serializers.BooleanField(required=False, default=False)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class UpdateOrderStatusSerializer(serializers.Serializer):
    """Target status is checked against the fulfilment path by the service."""

    status = serializers.CharField(max_length=20)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and history.

    Expects ``requester`` in the serializer context: customer data and the
    reconciliation flag are reduced to what the requester's role may see.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    customer = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer",
            "status",
            "payment_status",
            "payment_method",
            "subtotal",
            "discount",
            "shipping_fee",
            "total_amount",
            "coupon_code",
            "express_delivery",
            "shipping_zip_code",
            "shipping_city",
            "shipping_state",
            "needs_reconciliation",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "status_history",
        ]
        read_only_fields = fields

    def get_customer(self, order: Order) -> dict:
        requester = self.context["requester"]
        view = CustomerViewDTO.for_requester(order.customer, requester)
        return view.model_dump(mode="json", exclude_none=True)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not self.context["requester"].is_admin:
            data.pop("needs_reconciliation", None)
        return data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "status",
            "payment_status",
            "total_amount",
            "created_at",
        ]
        read_only_fields = fields
