"""Order domain constants.

Defines status choices, payment choices, the valid status transitions of
the order state machine and the cancellation/refund schedule.
"""

from datetime import timedelta
from decimal import Decimal

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "PENDING", "Pendente"
    PAID = "PAID", "Pago"
    PAYMENT_FAILED = "PAYMENT_FAILED", "Pagamento recusado"
    PREPARING = "PREPARING", "Em separação"
    SHIPPED = "SHIPPED", "Enviado"
    IN_TRANSIT = "IN_TRANSIT", "Em trânsito"
    DELIVERED = "DELIVERED", "Entregue"
    CANCELLED = "CANCELLED", "Cancelado"
    REFUNDED = "REFUNDED", "Reembolsado"


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pendente"
    PROCESSING = "PROCESSING", "Processando"
    PAID = "PAID", "Pago"
    FAILED = "FAILED", "Recusado"
    OVERDUE = "OVERDUE", "Em atraso"
    REFUNDED = "REFUNDED", "Reembolsado"


class PaymentMethod(models.TextChoices):
    CREDIT_CARD = "CREDIT_CARD", "Cartão de crédito"
    DEBIT_CARD = "DEBIT_CARD", "Cartão de débito"
    PIX = "PIX", "PIX"
    BOLETO = "BOLETO", "Boleto"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {
        OrderStatus.PAID,
        OrderStatus.PAYMENT_FAILED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PAID: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PAYMENT_FAILED: {OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.IN_TRANSIT, OrderStatus.DELIVERED},
    OrderStatus.IN_TRANSIT: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
    OrderStatus.REFUNDED: set(),
}

TERMINAL_STATES: set[str] = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REFUNDED,
}

FULFILMENT_STATES: set[str] = {
    OrderStatus.PREPARING,
    OrderStatus.SHIPPED,
    OrderStatus.IN_TRANSIT,
}

# Statuses staff may set through the status endpoint; payment outcomes and
# cancellation have dedicated workflows.
MANUAL_TRANSITION_TARGETS: frozenset[str] = frozenset(
    {
        OrderStatus.PREPARING,
        OrderStatus.SHIPPED,
        OrderStatus.IN_TRANSIT,
        OrderStatus.DELIVERED,
    }
)

# Orders counted as "completed" by loyalty and first-order rules.
COMPLETED_STATES: tuple[str, ...] = (OrderStatus.DELIVERED,)

# Payment states whose order totals still consume customer credit.
OUTSTANDING_PAYMENT_STATES: tuple[str, ...] = (
    PaymentStatus.PENDING,
    PaymentStatus.PROCESSING,
)

CREDIT_PAYMENT_METHODS: frozenset[str] = frozenset(
    {PaymentMethod.CREDIT_CARD, PaymentMethod.BOLETO}
)

FIRST_ORDER_CREDIT_CAP = Decimal("500.00")
DELINQUENT_LIMIT_FACTOR = Decimal("0.5")

CUSTOMER_CANCELLATION_WINDOW = timedelta(hours=2)
PAID_CANCELLATION_WINDOW = timedelta(hours=24)

# (elapsed hours strictly below, refund percentage); older orders get the floor.
REFUND_SCHEDULE: tuple[tuple[int, Decimal], ...] = (
    (1, Decimal("100")),
    (6, Decimal("95")),
    (12, Decimal("90")),
)
REFUND_FLOOR_PERCENTAGE = Decimal("85")

ORDER_NUMBER_MAX_RETRIES = 5

DAILY_REPORT_DEFAULT_DAYS = 7
DAILY_REPORT_MAX_DAYS = 90
