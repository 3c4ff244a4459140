"""Product repository interface.

Extends ``IRepository[Product]`` with the pricing snapshot look-up and the
atomic stock reservation used by the order workflow.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Iterable, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.products.models import Product


class IProductRepository(IRepository["Product"]):
    """Repository contract for the Product aggregate."""

    @abstractmethod
    def get_many(self, ids: Iterable[Any]) -> Dict[str, "Product"]:
        """Fetch a consistent snapshot of several products keyed by ``str(id)``.

        Unknown or malformed IDs are simply absent from the result.
        """

    @abstractmethod
    def reserve_stock(self, id: Any, quantity: int) -> bool:
        """Atomically decrement stock if at least *quantity* is available.

        Returns ``False`` (and changes nothing) when stock is insufficient.
        """

    @abstractmethod
    def release_stock(self, id: Any, quantity: int) -> None:
        """Return *quantity* units to stock."""
