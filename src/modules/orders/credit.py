"""Credit policy for credit-based payment methods.

``CreditPolicy`` is a pure decision over aggregates supplied by the caller;
it performs no queries.  Rules are evaluated in order and the first failing
rule decides:

1. ``limit_exceeded``: available credit (limit minus outstanding) is lower
   than the requested total.
2. ``first_order_cap``: the customer has no completed orders and the
   requested total exceeds ``FIRST_ORDER_CREDIT_CAP``.
3. ``delinquency_reduced_limit``: the customer has an overdue payment and
   outstanding plus requested exceeds half of the limit.

The aggregates are read without locking, so two concurrent orders can both
pass the check and together exceed the limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

import structlog
from rest_framework import status

from modules.core.exceptions import DomainError, ErrorKind
from modules.orders.constants import (
    CREDIT_PAYMENT_METHODS,
    DELINQUENT_LIMIT_FACTOR,
    FIRST_ORDER_CREDIT_CAP,
)

logger = structlog.get_logger(__name__)


class CreditRejection:
    LIMIT_EXCEEDED = "limit_exceeded"
    FIRST_ORDER_CAP = "first_order_cap"
    DELINQUENCY_REDUCED_LIMIT = "delinquency_reduced_limit"


_REJECTION_MESSAGES = {
    CreditRejection.LIMIT_EXCEEDED: "Order total exceeds the available credit.",
    CreditRejection.FIRST_ORDER_CAP: (
        "First orders paid on credit are limited to R$ 500.00."
    ),
    CreditRejection.DELINQUENCY_REDUCED_LIMIT: (
        "Credit limit reduced due to overdue payments."
    ),
}


class CreditLimitExceeded(DomainError):
    kind = ErrorKind.CREDIT_LIMIT_EXCEEDED
    code = "credit_limit_exceeded"
    http_status = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_message = "Order total exceeds the available credit."


@dataclass(frozen=True)
class CreditDecision:
    approved: bool
    limit: Decimal
    used: Decimal
    available: Decimal
    requested: Decimal
    reason: Optional[str] = None

    def to_error(self) -> CreditLimitExceeded:
        return CreditLimitExceeded(
            _REJECTION_MESSAGES[self.reason],
            reason=self.reason,
            limit=str(self.limit),
            used=str(self.used),
            available=str(self.available),
            requested=str(self.requested),
        )


class CreditPolicy:
    @staticmethod
    def applies_to(payment_method: str) -> bool:
        return payment_method in CREDIT_PAYMENT_METHODS

    def assess(
        self,
        payment_method: str,
        credit_limit: Decimal,
        outstanding: Decimal,
        requested: Decimal,
        completed_orders: int,
        overdue_payments: int,
    ) -> CreditDecision:
        available = credit_limit - outstanding

        def decision(reason: Optional[str] = None) -> CreditDecision:
            return CreditDecision(
                approved=reason is None,
                limit=credit_limit,
                used=outstanding,
                available=available,
                requested=requested,
                reason=reason,
            )

        if not self.applies_to(payment_method):
            return decision()
        if available < requested:
            return decision(CreditRejection.LIMIT_EXCEEDED)
        if completed_orders == 0 and requested > FIRST_ORDER_CREDIT_CAP:
            return decision(CreditRejection.FIRST_ORDER_CAP)
        if (
            overdue_payments > 0
            and outstanding + requested > credit_limit * DELINQUENT_LIMIT_FACTOR
        ):
            return decision(CreditRejection.DELINQUENCY_REDUCED_LIMIT)
        return decision()

    def enforce(self, payment_method: str, **aggregates) -> CreditDecision:
        """Assess and raise ``CreditLimitExceeded`` on rejection."""
        result = self.assess(payment_method, **aggregates)
        if not result.approved:
            logger.info(
                "credit.rejected",
                payment_method=payment_method,
                reason=result.reason,
                available=str(result.available),
                requested=str(result.requested),
            )
            raise result.to_error()
        return result
