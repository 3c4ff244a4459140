"""Single access-policy component for every workflow entry point.

Roles:

- ``ADMIN``: superusers and staff; unrestricted.
- ``SALES``: members of the ``sales`` group; restricted to customers whose
  ``sales_rep`` is the requester.
- ``CUSTOMER``: everybody else; restricted to the customer profile linked
  to the requester's user.

Services build a ``Requester`` from the authenticated user once, then ask
``AccessPolicy.ensure(requester, customer, action)`` before touching a
customer's orders.  Views never inspect roles themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Optional

import structlog

from modules.core.exceptions import AccessDenied

logger = structlog.get_logger(__name__)

SALES_GROUP_NAME = "sales"


class Role(StrEnum):
    ADMIN = "ADMIN"
    SALES = "SALES"
    CUSTOMER = "CUSTOMER"


class Action(StrEnum):
    CREATE_ORDER = "create_order"
    VIEW_ORDER = "view_order"
    LIST_ORDERS = "list_orders"
    CANCEL_ORDER = "cancel_order"
    UPDATE_ORDER_STATUS = "update_order_status"
    VIEW_REPORTS = "view_reports"


@dataclass(frozen=True)
class Requester:
    """Identity and role of whoever triggers a workflow."""

    user_id: Optional[int]
    role: Role
    email: str = ""

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_sales(self) -> bool:
        return self.role == Role.SALES

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @classmethod
    def from_user(cls, user: Any) -> Requester:
        """Derive the requester role from a Django auth user."""
        if user.is_superuser or user.is_staff:
            role = Role.ADMIN
        elif user.groups.filter(name=SALES_GROUP_NAME).exists():
            role = Role.SALES
        else:
            role = Role.CUSTOMER
        return cls(user_id=user.pk, role=role, email=user.email or "")

    @classmethod
    def system(cls) -> Requester:
        """Requester used by background jobs."""
        return cls(user_id=None, role=Role.ADMIN)


class AccessPolicy:
    """Evaluates ``(requester, customer, action)`` to allow or deny."""

    _CUSTOMER_ACTIONS = frozenset(
        {
            Action.CREATE_ORDER,
            Action.VIEW_ORDER,
            Action.LIST_ORDERS,
            Action.CANCEL_ORDER,
        }
    )

    def is_allowed(self, requester: Requester, customer: Any, action: Action) -> bool:
        if requester.is_admin:
            return True
        if requester.is_sales:
            return customer is not None and (
                customer.sales_rep_id is not None
                and customer.sales_rep_id == requester.user_id
            )
        if action not in self._CUSTOMER_ACTIONS:
            return False
        return customer is not None and (
            customer.user_id is not None and customer.user_id == requester.user_id
        )

    def ensure(self, requester: Requester, customer: Any, action: Action) -> None:
        """Raise ``AccessDenied`` unless the requester may act on *customer*."""
        if self.is_allowed(requester, customer, action):
            return
        logger.warning(
            "access.denied",
            user_id=requester.user_id,
            role=requester.role,
            action=action,
            customer_id=str(customer.id) if customer is not None else None,
        )
        raise AccessDenied(_denial_message(requester, action))

    def ensure_staff(self, requester: Requester, action: Action) -> None:
        """Raise ``AccessDenied`` for end customers.

        Staff pass; what they see is narrowed by ``scope_filters``.
        """
        if not requester.is_customer:
            return
        logger.warning(
            "access.denied", user_id=requester.user_id, role=requester.role, action=action
        )
        raise AccessDenied(_denial_message(requester, action))

    def scope_filters(self, requester: Requester) -> dict:
        """ORM look-ups restricting order queries to the requester's scope."""
        if requester.is_admin:
            return {}
        if requester.is_sales:
            return {"customer__sales_rep_id": requester.user_id}
        return {"customer__user_id": requester.user_id}


def _denial_message(requester: Requester, action: Action) -> str:
    if requester.is_sales:
        return "You can only act on orders of your assigned customers."
    if action == Action.UPDATE_ORDER_STATUS:
        return "Customers cannot change order status."
    if action == Action.VIEW_REPORTS:
        return "Reports are available to staff only."
    return "You can only act on your own orders."
