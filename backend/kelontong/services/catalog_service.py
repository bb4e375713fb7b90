# backend/kelontong/services/catalog_service.py
"""
Product Catalog

Invariants:
- Product ids are unique; the catalog never holds two records with one id.
- Every write goes through a validated ProductPatch (or a full Product that
  passes the same policy), never through ad-hoc attribute assignment.
- Stock never goes negative through decrement_stock(): over-selling is
  rejected with InsufficientStockError instead of clamped.
- Deleting a product leaves transaction history untouched; sale line items
  reference products by id only.
"""
from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..models import Product, ProductPatch
from ..validation import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    require_positive_quantity,
)
from .identifier_service import IdentifierGenerator

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"


def _as_create_patch(patch: ProductPatch | dict | None) -> ProductPatch:
    if isinstance(patch, ProductPatch):
        return ProductPatch.for_create(patch.changes())
    return ProductPatch.for_create(patch)


def _as_update_patch(patch: ProductPatch | dict | None) -> ProductPatch:
    if isinstance(patch, ProductPatch):
        return ProductPatch.for_update(patch.changes())
    return ProductPatch.for_update(patch)


def _warn_if_below_cost(product: Product) -> None:
    # Allowed, but logged
    if product.cost > product.price:
        logger.warning(
            "Product %s (%s) sells below cost: price=%s cost=%s",
            product.id, product.name, product.price, product.cost,
        )


class Catalog:
    def __init__(
        self,
        products: Iterable[Product] = (),
        *,
        id_generator: IdentifierGenerator | None = None,
    ):
        self._products: dict[str, Product] = {}
        for product in products:
            if product.id in self._products:
                raise ConflictError(f"Duplicate product id {product.id!r}")
            self._products[product.id] = product
        self._ids = id_generator or IdentifierGenerator()
        self._ids.observe(self._products)

    def __len__(self) -> int:
        return len(self._products)

    def __iter__(self) -> Iterator[Product]:
        return iter(list(self._products.values()))

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._products

    def get(self, product_id: str) -> Product | None:
        return self._products.get(product_id)

    def require(self, product_id: str) -> Product:
        product = self._products.get(product_id)
        if product is None:
            raise NotFoundError(f"Product {product_id!r} not found")
        return product

    def list_products(self) -> list[Product]:
        """All products in insertion order."""
        return list(self._products.values())

    def categories(self) -> list[str]:
        seen: list[str] = []
        for product in self._products.values():
            if product.category not in seen:
                seen.append(product.category)
        return [ALL_CATEGORIES, *seen]

    def search(self, term: str = "", category: str = ALL_CATEGORIES) -> list[Product]:
        """Case-insensitive name match, optionally restricted to one category."""
        needle = (term or "").strip().lower()
        return [
            p for p in self._products.values()
            if needle in p.name.lower()
            and (category == ALL_CATEGORIES or p.category == category)
        ]

    def low_stock(self, threshold: int) -> list[Product]:
        return [p for p in self._products.values() if p.is_low_stock(threshold)]

    def add_product(self, patch: ProductPatch | dict, *, product_id: str | None = None) -> Product:
        """
        Insert a new product.

        A blank or missing name raises ValidationError. Optional fields left
        empty take PRODUCT_DEFAULTS. An explicit product_id that is already in
        use raises ConflictError.
        """
        create = _as_create_patch(patch)
        if product_id is None:
            product_id = self._ids.next_id()
        elif product_id in self._products:
            raise ConflictError(f"Product id {product_id!r} already exists")
        else:
            self._ids.observe([product_id])

        product = create.build(product_id)
        _warn_if_below_cost(product)
        self._products[product.id] = product
        logger.info("Created product id=%s name=%s", product.id, product.name)
        return product

    def update_product(self, product_id: str, patch: ProductPatch | dict) -> Product:
        """Apply a partial edit. Unknown ids raise NotFoundError."""
        current = self.require(product_id)
        update = _as_update_patch(patch)
        product = update.apply_to(current)
        _warn_if_below_cost(product)
        self._products[product_id] = product
        logger.info(
            "Updated product id=%s fields: %s",
            product_id, ", ".join(sorted(update.changes())) or "-",
        )
        return product

    def replace_product(self, product: Product) -> Product:
        """Replace the record with the same id wholesale, validated like any edit."""
        self.require(product.id)
        values = product.to_dict()
        values.pop("id")
        replacement = _as_update_patch(values).build(product.id)
        _warn_if_below_cost(replacement)
        self._products[product.id] = replacement
        logger.info("Replaced product id=%s", product.id)
        return replacement

    def delete_product(self, product_id: str) -> bool:
        """Remove a product. Returns False when it was not in the catalog."""
        if self._products.pop(product_id, None) is None:
            return False
        logger.info("Deleted product id=%s", product_id)
        return True

    def check_available(self, product_id: str, quantity: int) -> Product:
        product = self.require(product_id)
        if product.stock < quantity:
            raise InsufficientStockError(
                f"Insufficient stock for {product.name}",
                details={
                    "product_id": product_id,
                    "requested_quantity": quantity,
                    "on_hand": product.stock,
                },
            )
        return product

    def decrement_stock(self, product_id: str, quantity: int) -> Product:
        quantity = require_positive_quantity(quantity)
        product = self.check_available(product_id, quantity)
        updated = ProductPatch(stock=product.stock - quantity).apply_to(product)
        self._products[product_id] = updated
        return updated

    def increment_stock(self, product_id: str, quantity: int) -> Product:
        quantity = require_positive_quantity(quantity)
        product = self.require(product_id)
        updated = ProductPatch(stock=product.stock + quantity).apply_to(product)
        self._products[product_id] = updated
        return updated
