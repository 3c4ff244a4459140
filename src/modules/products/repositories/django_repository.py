"""Django ORM implementation of the Product repository.

Satisfies ``IProductRepository`` using Django's QuerySet API.
Error handling follows the Null Object pattern: methods return ``None``
instead of raising HTTP-level exceptions; the Service Layer decides
how to translate a missing entity into an API response.

Stock changes are single conditional ``UPDATE`` statements, so two
concurrent reservations can never drive ``stock_quantity`` below zero.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

import structlog

from django.core.exceptions import ValidationError
from django.db.models import F

from modules.products.models import Product
from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)


class ProductDjangoRepository(IProductRepository):
    """Concrete Product repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Product]:
        """Retrieve a product by primary key.

        Returns ``None`` for non-existent or invalid IDs.
        """
        try:
            return Product.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_many(self, ids: Iterable[Any]) -> Dict[str, Product]:
        """Single query snapshot of the requested products."""
        wanted = {str(pk) for pk in ids}
        if not wanted:
            return {}
        try:
            products = Product.objects.filter(id__in=wanted)
            return {str(product.id): product for product in products}
        except (ValueError, ValidationError):
            # One malformed ID poisons the IN clause; fall back to per-ID look-ups.
            found: Dict[str, Product] = {}
            for pk in wanted:
                product = self.get_by_id(pk)
                if product is not None:
                    found[str(product.id)] = product
            return found

    def reserve_stock(self, id: Any, quantity: int) -> bool:
        """Conditional decrement: ``UPDATE ... WHERE stock_quantity >= qty``."""
        updated = Product.objects.filter(
            id=id, stock_quantity__gte=quantity
        ).update(stock_quantity=F("stock_quantity") - quantity)
        if updated:
            logger.info("product.stock_reserved", product_id=str(id), quantity=quantity)
        return bool(updated)

    def release_stock(self, id: Any, quantity: int) -> None:
        Product.objects.filter(id=id).update(
            stock_quantity=F("stock_quantity") + quantity
        )
        logger.info("product.stock_released", product_id=str(id), quantity=quantity)
