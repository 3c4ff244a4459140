"""Order service layer (Use Cases).

Orchestrates order creation, payment capture, compensation, fulfilment
status changes and cancellation.  The service defines the unit-of-work
boundaries:

- Stock reservation, order persistence, the initial history row and the
  ``OrderCreated`` outbox event commit in one transaction.
- Payment capture runs *outside* that transaction.  Its outcome is applied
  in a second transaction; a failed capture triggers compensation (stock
  release + ``PAYMENT_FAILED``) instead of a cross-system rollback.
- When compensation itself fails, or a captured payment cannot be
  recorded, the order is flagged ``needs_reconciliation`` and the caller
  receives ``ReconciliationRequired``.
- Cancellation refunds first, then releases stock and changes status in
  one transaction.  A refund failure changes nothing.

Business rules enforced:
- RN-CLI-003: Customer must be active.
- RN-PRO-002: Product must be active.
- RN-EST-001/002/003/004: Atomic stock reservation (conditional UPDATE).
- RN-EST-005/006: Atomic stock release on compensation and cancellation.
- RN-PED-001: Status transitions validated against state machine.
- RN-PED-002/003: History recorded on every status change.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional
from uuid import UUID

import structlog
from django.db import IntegrityError, transaction
from django.db.models import Count, Sum
from django.db.models.functions import TruncDate
from django.utils import timezone

from modules.core.authorization import AccessPolicy, Action, Requester
from modules.core.exceptions import AccessDenied, InvalidRequest
from modules.orders.cancellation import CancellationPolicy, RefundPlan
from modules.orders.constants import (
    DAILY_REPORT_DEFAULT_DAYS,
    DAILY_REPORT_MAX_DAYS,
    MANUAL_TRANSITION_TARGETS,
    OrderStatus,
    PaymentStatus,
)
from modules.orders.credit import CreditPolicy
from modules.orders.dtos import (
    CancellationResultDTO,
    DailyOrderStatsDTO,
    DailyReportDTO,
    OrderResultDTO,
)
from modules.orders.events import (
    OrderCancelled,
    OrderCreated,
    OrderPaid,
    OrderPaymentFailed,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    AlreadyFinal,
    CustomerNotFound,
    InactiveCustomer,
    InsufficientStock,
    InvalidOrderStatus,
    OrderNotFound,
    PaymentFailed,
    ReconciliationRequired,
    RefundFailed,
)
from modules.payments.gateway import (
    CaptureResult,
    PaymentDeclined,
    PaymentGatewayError,
    RefundResult,
)

if TYPE_CHECKING:
    from modules.core.audit import IAuditSink
    from modules.customers.models import Customer
    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.notifications.senders import INotificationSender
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.gateway import IPaymentGateway
    from modules.pricing.engine import PriceQuote, PricingEngine
    from modules.pricing.repositories.interfaces import ICouponRepository
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and collaborators via constructor injection (DIP).
    ``clock`` returns the current aware datetime and is injectable so the
    time-based cancellation rules can be exercised deterministically.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        product_repository: IProductRepository,
        coupon_repository: ICouponRepository,
        pricing_engine: PricingEngine,
        payment_gateway: IPaymentGateway,
        notification_sender: INotificationSender,
        audit_sink: IAuditSink,
        access_policy: Optional[AccessPolicy] = None,
        credit_policy: Optional[CreditPolicy] = None,
        cancellation_policy: Optional[CancellationPolicy] = None,
        clock: Callable[[], datetime] = timezone.now,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._product_repo = product_repository
        self._coupon_repo = coupon_repository
        self._pricing = pricing_engine
        self._gateway = payment_gateway
        self._notifier = notification_sender
        self._audit = audit_sink
        self._access = access_policy or AccessPolicy()
        self._credit = credit_policy or CreditPolicy()
        self._cancellation = cancellation_policy or CancellationPolicy()
        self._clock = clock

    # ------------------------------------------------------------------
    # Commands: creation
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO, requester: Requester) -> OrderResultDTO:
        """Price, reserve, persist and charge a new order.

        Raises:
            CustomerNotFound: customer does not exist.
            InactiveCustomer: customer is inactive (RN-CLI-003).
            AccessDenied: requester may not order for this customer.
            ProductNotFound / InactiveProduct / InsufficientStock.
            CouponRejected: coupon code given but unusable.
            CreditLimitExceeded: credit policy rejected the order.
            PaymentFailed: capture failed; stock was released.
            ReconciliationRequired: state could not be made consistent.
        """
        log = logger.bind(requester_id=requester.user_id, role=requester.role)
        log.info("order.creation_started", payment_method=dto.payment_method)

        # 0. Idempotency check
        if dto.idempotency_key:
            existing = self._find_idempotent(dto.idempotency_key, requester)
            if existing is not None:
                return existing

        # 1. Customer and authorization
        customer = self._resolve_customer(dto, requester)
        log = log.bind(customer_id=str(customer.id))

        # 2. Pricing and credit (read-only)
        now = self._clock()
        stats = self._customer_repo.get_purchase_stats(customer.id)
        quote = self._pricing.quote(
            customer,
            dto.items,
            coupon_code=dto.coupon_code,
            express_delivery=dto.express_delivery,
            purchase_stats=stats,
            now=now,
        )
        if self._credit.applies_to(dto.payment_method):
            usage = self._customer_repo.get_credit_usage(customer.id)
            self._credit.enforce(
                dto.payment_method,
                credit_limit=customer.credit_limit,
                outstanding=usage.outstanding,
                requested=quote.total,
                completed_orders=stats.completed_orders,
                overdue_payments=usage.overdue_payments,
            )

        # 3. Reserve stock + persist order (one transaction)
        try:
            order = self._reserve_and_persist(dto, requester, customer, quote)
        except IntegrityError:
            if dto.idempotency_key:
                existing = self._find_idempotent(dto.idempotency_key, requester)
                if existing is not None:
                    return existing
            raise
        log = log.bind(order_id=str(order.id), order_number=order.order_number)

        # 4. Capture payment (outside the transaction)
        capture = self._capture_or_compensate(order, dto, requester, log)

        # 5. Apply the capture outcome
        self._apply_capture(order, capture, quote, requester, log)

        # 6. Best-effort side effects
        self._send_confirmation(customer, order, quote)
        self._record_audit(
            "order.created",
            order,
            requester,
            {
                "order_number": order.order_number,
                "total": str(quote.total),
                "payment_status": capture_payment_status(capture),
                "coupon_code": quote.coupon.code if quote.coupon else None,
            },
        )

        log.info("order.created", total=str(quote.total))
        refreshed = self._order_repo.get_by_id(str(order.id)) or order
        return OrderResultDTO.from_entity(refreshed)

    def _find_idempotent(
        self, key: str, requester: Requester
    ) -> Optional[OrderResultDTO]:
        existing = self._order_repo.get_by_idempotency_key(key)
        if existing is None:
            return None
        self._access.ensure(requester, existing.customer, Action.VIEW_ORDER)
        logger.info("order.idempotency_hit", order_id=str(existing.id), key=key)
        return OrderResultDTO.from_entity(existing)

    def _resolve_customer(self, dto: CreateOrderDTO, requester: Requester) -> Customer:
        if dto.customer_id is not None:
            customer = self._customer_repo.get_by_id(str(dto.customer_id))
            if customer is None or customer.is_deleted:
                raise CustomerNotFound(f"Customer {dto.customer_id} not found.")
        elif dto.customer_email is not None:
            customer = self._customer_repo.get_by_email(dto.customer_email)
            if customer is None:
                raise CustomerNotFound(
                    f"No customer registered with {dto.customer_email}.",
                    field="customer_email",
                )
        elif requester.is_customer:
            customer = self._customer_repo.get_by_user(requester.user_id)
            if customer is None:
                raise AccessDenied("No customer profile is linked to your account.")
        else:
            raise InvalidRequest(
                "customer_id or customer_email is required.", field="customer_id"
            )

        if not customer.is_active:
            raise InactiveCustomer(f"Customer {customer.id} is inactive.")
        self._access.ensure(requester, customer, Action.CREATE_ORDER)
        return customer

    def _reserve_and_persist(
        self,
        dto: CreateOrderDTO,
        requester: Requester,
        customer: Customer,
        quote: PriceQuote,
    ) -> Order:
        """Reserve every line and persist the order, all or nothing.

        Lines are reserved in product-id order so concurrent orders touching
        the same products take row locks in the same sequence.
        """
        with transaction.atomic():
            for line in sorted(quote.lines, key=lambda quoted: str(quoted.product.id)):
                if not self._product_repo.reserve_stock(line.product.id, line.quantity):
                    current = self._product_repo.get_by_id(str(line.product.id))
                    raise InsufficientStock(
                        product_id=line.product.id,
                        available=current.stock_quantity if current else 0,
                        requested=line.quantity,
                    )

            order = self._order_repo.create(
                {
                    "customer_id": customer.id,
                    "payment_method": dto.payment_method,
                    "subtotal": quote.subtotal,
                    "discount": quote.discount,
                    "shipping_fee": quote.shipping_fee,
                    "total_amount": quote.total,
                    "coupon_code": quote.coupon.code if quote.coupon else "",
                    "shipping_zip_code": customer.zip_code,
                    "shipping_address": customer.address,
                    "shipping_city": customer.city,
                    "shipping_state": customer.state,
                    "express_delivery": dto.express_delivery,
                    "created_by_id": requester.user_id,
                    "stock_reserved": True,
                    "notes": dto.notes or "",
                    "idempotency_key": dto.idempotency_key,
                    "items": [
                        {
                            "product": line.product,
                            "quantity": line.quantity,
                            "unit_price": line.unit_price,
                        }
                        for line in quote.lines
                    ],
                }
            )
            order.add_domain_event(
                OrderCreated(
                    aggregate_id=order.id,
                    customer_id=str(customer.id),
                    total=str(quote.total),
                    payment_method=str(dto.payment_method),
                    item_count=len(quote.lines),
                )
            )
            self._order_repo.save(order)
            self._order_repo.add_history(
                order_id=order.id,
                status=OrderStatus.PENDING,
                notes="Order created",
                user_id=requester.user_id,
            )
        return order

    # ------------------------------------------------------------------
    # Payment capture and compensation
    # ------------------------------------------------------------------

    def _capture_or_compensate(
        self,
        order: Order,
        dto: CreateOrderDTO,
        requester: Requester,
        log: Any,
    ) -> CaptureResult:
        try:
            return self._gateway.capture(
                amount=order.total_amount,
                method=str(dto.payment_method),
                token=dto.card_token,
                reference=order.order_number,
            )
        except PaymentGatewayError as exc:
            reason = "declined" if isinstance(exc, PaymentDeclined) else "gateway_unavailable"
            log.warning("order.payment_failed", reason=reason, error=str(exc))
            self._compensate(order, reason, requester, log)
            self._record_audit(
                "order.payment_failed", order, requester, {"reason": reason}
            )
            raise PaymentFailed(
                _payment_failure_message(reason),
                reason=reason,
                order_id=str(order.id),
                order_number=order.order_number,
            ) from exc
        except Exception as exc:
            # Outcome unknown: the charge may have gone through, so stock stays
            # reserved and the order goes to manual review.
            log.error("order.capture_outcome_unknown", exc_info=exc)
            self._order_repo.mark_for_reconciliation(
                order.id,
                f"Payment capture for {order.order_number} ended with an "
                f"unexpected {type(exc).__name__}; outcome unknown.",
            )
            self._record_audit(
                "order.payment_unknown", order, requester, {"error": type(exc).__name__}
            )
            raise ReconciliationRequired(order_id=str(order.id)) from exc

    def _compensate(
        self, order: Order, reason: str, requester: Requester, log: Any
    ) -> None:
        """Release the order's stock and mark it ``PAYMENT_FAILED``.

        Any failure here leaves stock reserved against an unpaid order, so
        the order is flagged for reconciliation.
        """
        try:
            with transaction.atomic():
                locked = self._order_repo.get_for_update(str(order.id))
                if locked is None:
                    raise OrderNotFound(f"Order {order.id} not found.")
                self._release_stock(locked, log)
                old_status = locked.status
                locked.status = OrderStatus.PAYMENT_FAILED
                locked.payment_status = PaymentStatus.FAILED
                locked.add_domain_event(
                    OrderPaymentFailed(aggregate_id=locked.id, reason=reason)
                )
                self._order_repo.save(locked)
                self._order_repo.add_history(
                    order_id=locked.id,
                    status=OrderStatus.PAYMENT_FAILED,
                    notes=f"Payment failed ({reason}); stock released",
                    old_status=old_status,
                    user_id=requester.user_id,
                )
        except Exception as exc:
            log.error("order.compensation_failed", reason=reason, exc_info=exc)
            self._order_repo.mark_for_reconciliation(
                order.id,
                f"Payment failed ({reason}) and stock could not be released.",
            )
            raise ReconciliationRequired(order_id=str(order.id)) from exc
        log.info("order.compensated", reason=reason)

    def _apply_capture(
        self,
        order: Order,
        capture: CaptureResult,
        quote: PriceQuote,
        requester: Requester,
        log: Any,
    ) -> None:
        """Record a successful or pending capture on the order.

        The money has moved (or is moving) at the gateway, so a failure to
        record it flags the order instead of compensating.
        """
        try:
            with transaction.atomic():
                locked = self._order_repo.get_for_update(str(order.id))
                if locked is None:
                    raise OrderNotFound(f"Order {order.id} not found.")
                locked.payment_transaction_id = capture.transaction_id
                if capture.succeeded:
                    old_status = locked.status
                    locked.status = OrderStatus.PAID
                    locked.payment_status = PaymentStatus.PAID
                    locked.add_domain_event(
                        OrderPaid(
                            aggregate_id=locked.id,
                            transaction_id=capture.transaction_id,
                            total=str(locked.total_amount),
                        )
                    )
                    self._order_repo.save(locked)
                    self._order_repo.add_history(
                        order_id=locked.id,
                        status=OrderStatus.PAID,
                        notes="Payment captured",
                        old_status=old_status,
                        user_id=requester.user_id,
                    )
                else:
                    locked.payment_status = PaymentStatus.PROCESSING
                    self._order_repo.save(locked)
                if quote.coupon is not None:
                    self._coupon_repo.record_usage(
                        coupon_id=quote.coupon.id,
                        order_id=locked.id,
                        customer_id=locked.customer_id,
                        discount_applied=quote.discount,
                    )
        except Exception as exc:
            log.error(
                "order.capture_not_recorded",
                transaction_id=capture.transaction_id,
                exc_info=exc,
            )
            self._order_repo.mark_for_reconciliation(
                order.id,
                f"Payment {capture.transaction_id} ({capture.status}) was not "
                f"recorded on the order.",
            )
            raise ReconciliationRequired(order_id=str(order.id)) from exc
        log.info("order.payment_applied", payment_status=capture_payment_status(capture))

    def _release_stock(self, order: Order, log: Any) -> None:
        if not order.stock_reserved:
            return
        for item in sorted(order.items.all(), key=lambda i: str(i.product_id)):
            self._product_repo.release_stock(item.product_id, item.quantity)
        order.stock_reserved = False
        log.info("order.stock_released", item_count=len(order.items.all()))

    # ------------------------------------------------------------------
    # Commands: status and cancellation
    # ------------------------------------------------------------------

    def update_status(
        self,
        order_id: UUID,
        new_status: str,
        requester: Requester,
        notes: str = "",
    ) -> Order:
        """Move an order along the fulfilment path.

        Acquires a row-level lock (``SELECT FOR UPDATE``) on the order
        before validating the transition.  Cancellation and payment
        outcomes have their own workflows and are rejected here.

        Raises:
            InvalidRequest: target status is not a fulfilment status.
            OrderNotFound: order does not exist.
            AccessDenied: requester may not change this order.
            InvalidOrderStatus: transition is not allowed.
        """
        new_status = str(new_status).upper()
        if new_status == OrderStatus.CANCELLED:
            raise InvalidRequest(
                "Use the cancel endpoint for cancellations.", field="status"
            )
        if new_status not in MANUAL_TRANSITION_TARGETS:
            raise InvalidRequest(
                f"Status {new_status} cannot be set manually.", field="status"
            )

        with transaction.atomic():
            order = self._order_repo.get_for_update(str(order_id))
            if not order:
                raise OrderNotFound(f"Order {order_id} not found.")
            self._access.ensure(requester, order.customer, Action.UPDATE_ORDER_STATUS)

            log = logger.bind(
                order_id=str(order_id),
                current_status=order.status,
                new_status=new_status,
            )
            if not order.can_transition_to(new_status):
                log.warning("order.invalid_transition")
                raise InvalidOrderStatus(
                    f"Cannot transition from {order.status} to {new_status}.",
                    current_status=order.status,
                    requested_status=new_status,
                )

            old_status = order.status
            order.status = new_status
            order.add_domain_event(
                OrderStatusChanged(
                    aggregate_id=order.id,
                    old_status=old_status,
                    new_status=new_status,
                )
            )
            self._order_repo.save(order)
            self._order_repo.add_history(
                order_id=order.id,
                status=new_status,
                notes=notes,
                old_status=old_status,
                user_id=requester.user_id,
            )

        log.info("order.status_updated")
        self._record_audit(
            "order.status_changed",
            order,
            requester,
            {"old_status": old_status, "new_status": new_status},
        )
        return self._order_repo.get_by_id(str(order_id))

    def cancel_order(
        self, order_id: UUID, requester: Requester, notes: str = ""
    ) -> CancellationResultDTO:
        """Cancel an order, refunding paid orders on the refund schedule.

        Steps:
        1. Authorize; end customers are limited to the first 2 hours.
        2. Check eligibility (terminal, in fulfilment, paid window).
        3. Issue the refund.  On failure nothing changes.
        4. Lock the order, re-check eligibility, release stock, mark
           ``CANCELLED`` (payment ``REFUNDED`` when refunded), history and
           outbox event, all in one transaction.

        Raises:
            OrderNotFound, AccessDenied, AlreadyFinal, NotCancellable,
            CancellationWindowExpired, RefundFailed, ReconciliationRequired.
        """
        now = self._clock()
        order = self._order_repo.get_by_id(str(order_id))
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order_id),
            current_status=order.status,
            requester_id=requester.user_id,
        )
        self._access.ensure(requester, order.customer, Action.CANCEL_ORDER)
        self._cancellation.ensure_customer_window(requester, order, now)
        self._cancellation.ensure_cancellable(order, now)

        plan = self._cancellation.refund_plan(order, now)
        refund: Optional[RefundResult] = None
        if plan.issues_refund:
            try:
                refund = self._gateway.refund(order.payment_transaction_id, plan.amount)
            except PaymentGatewayError as exc:
                log.warning("order.refund_failed", error=str(exc))
                raise RefundFailed(order_id=str(order.id)) from exc
            log.info("order.refunded", refund_amount=str(plan.amount))

        try:
            cancelled = self._apply_cancellation(order.id, plan, refund, requester, notes, now, log)
        except Exception as exc:
            if refund is None:
                raise
            if isinstance(exc, AlreadyFinal) and self._already_refunded(order.id):
                # A concurrent cancel already refunded and closed the order.
                log.info("order.cancel_superseded")
                raise
            log.error("order.cancellation_after_refund_failed", exc_info=exc)
            self._order_repo.mark_for_reconciliation(
                order.id,
                f"Refund {refund.refund_id} of {plan.amount} issued but the "
                f"order could not be cancelled.",
            )
            raise ReconciliationRequired(order_id=str(order.id)) from exc

        log.info("order.cancelled", refund_percentage=str(plan.percentage))
        self._record_audit(
            "order.cancelled",
            cancelled,
            requester,
            {
                "refund_amount": str(plan.amount),
                "refund_percentage": str(plan.percentage),
                "refund_id": refund.refund_id if refund else None,
            },
        )
        return CancellationResultDTO(
            order_id=cancelled.id,
            status=cancelled.status,
            payment_status=cancelled.payment_status,
            refund_amount=plan.amount,
            refund_percentage=plan.percentage,
        )

    def _already_refunded(self, order_id: UUID) -> bool:
        current = self._order_repo.get_by_id(str(order_id))
        return (
            current is not None
            and current.status == OrderStatus.CANCELLED
            and current.payment_status == PaymentStatus.REFUNDED
        )

    def _apply_cancellation(
        self,
        order_id: UUID,
        plan: RefundPlan,
        refund: Optional[RefundResult],
        requester: Requester,
        notes: str,
        now: datetime,
        log: Any,
    ) -> Order:
        with transaction.atomic():
            locked = self._order_repo.get_for_update(str(order_id))
            if locked is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            self._cancellation.ensure_cancellable(locked, now)

            self._release_stock(locked, log)
            old_status = locked.status
            locked.status = OrderStatus.CANCELLED
            if refund is not None:
                locked.payment_status = PaymentStatus.REFUNDED
            locked.add_domain_event(
                OrderCancelled(
                    aggregate_id=locked.id,
                    refund_amount=str(plan.amount),
                    refund_percentage=str(plan.percentage),
                )
            )
            self._order_repo.save(locked)
            self._order_repo.add_history(
                order_id=locked.id,
                status=OrderStatus.CANCELLED,
                notes=notes or "Order cancelled",
                old_status=old_status,
                user_id=requester.user_id,
            )
        return locked

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, requester: Requester) -> Order:
        """Retrieve a single order the requester may see.

        Raises:
            OrderNotFound: if the order does not exist.
            AccessDenied: if the order is outside the requester's scope.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        self._access.ensure(requester, order.customer, Action.VIEW_ORDER)
        return order

    def list_orders(
        self, requester: Requester, filters: Optional[Dict[str, Any]] = None
    ):
        """Queryset of orders restricted to the requester's scope."""
        scoped = {**(filters or {}), **self._access.scope_filters(requester)}
        return self._order_repo.list(scoped)

    def daily_report(
        self, requester: Requester, days: int = DAILY_REPORT_DEFAULT_DAYS
    ) -> DailyReportDTO:
        """Order count and revenue per day over the last *days* days.

        Admins see every order, sales reps only those of their assigned
        customers; end customers are denied.  The window is *days* local
        calendar days ending today.

        Raises:
            AccessDenied, InvalidRequest (``days`` outside 1..90).
        """
        self._access.ensure_staff(requester, Action.VIEW_REPORTS)
        if not 1 <= days <= DAILY_REPORT_MAX_DAYS:
            raise InvalidRequest(
                f"days must be between 1 and {DAILY_REPORT_MAX_DAYS}.", field="days"
            )

        now = self._clock()
        since = timezone.localdate(now) - timedelta(days=days - 1)
        rows = (
            self.list_orders(requester, {"created_at__date__gte": since})
            .annotate(day=TruncDate("created_at"))
            .values("day")
            .annotate(orders=Count("id"), revenue=Sum("total_amount"))
            .order_by("-day")
        )
        report = DailyReportDTO(
            days=days,
            filtered_by=requester.email if requester.is_sales else "all",
            generated_at=now,
            order_stats=[DailyOrderStatsDTO(**row) for row in rows],
        )
        logger.info(
            "order.daily_report",
            requester_id=requester.user_id,
            role=requester.role,
            days=days,
            rows=len(report.order_stats),
        )
        return report

    # ------------------------------------------------------------------
    # Best-effort side effects
    # ------------------------------------------------------------------

    def _send_confirmation(self, customer: Customer, order: Order, quote: PriceQuote) -> None:
        if not customer.email:
            return
        body = (
            f"Hello {customer.name},\n\n"
            f"Your order {order.order_number} was received.\n"
            f"Subtotal: R$ {quote.subtotal}\n"
            f"Discount: R$ {quote.discount}\n"
            f"Shipping: R$ {quote.shipping_fee}\n"
            f"Total: R$ {quote.total}\n"
        )
        try:
            self._notifier.send(
                customer.email, f"Order {order.order_number} confirmation", body
            )
        except Exception as exc:
            # Notification failures never affect the order.
            logger.warning(
                "order.notification_failed",
                order_id=str(order.id),
                error=str(exc),
            )

    def _record_audit(
        self,
        action: str,
        order: Order,
        requester: Requester,
        details: Dict[str, Any],
    ) -> None:
        try:
            self._audit.record(
                action, order.id, user_id=requester.user_id, details=details
            )
        except Exception as exc:
            logger.warning(
                "order.audit_failed",
                order_id=str(order.id),
                action=action,
                error=str(exc),
            )


def capture_payment_status(capture: CaptureResult) -> str:
    return PaymentStatus.PAID if capture.succeeded else PaymentStatus.PROCESSING


def _payment_failure_message(reason: str) -> str:
    if reason == "declined":
        return "Payment was declined. The order was not placed."
    return "Payment could not be confirmed. The order was not placed."
