"""
Cart / Checkout Engine

WHY: The cart is the only place where catalog state turns into financial
history. Line items are snapshotted when a product is added, so the SALE
transaction records the price and cost the cashier saw, no matter what the
catalog says later.

Lifecycle: EMPTY -> BUILDING -> (CANCELLED | CHECKED_OUT). Both end states
hold no lines; adding a product afterwards starts a new BUILDING session.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum

from ..models import CartItem, Product, SaleLineItem, Transaction, TransactionType
from ..time_utils import utcnow
from ..validation import InsufficientStockError, NotFoundError
from .catalog_service import Catalog
from .identifier_service import IdentifierGenerator
from .ledger_service import TransactionLog

logger = logging.getLogger(__name__)


class CartState(str, Enum):
    EMPTY = "EMPTY"
    BUILDING = "BUILDING"
    CANCELLED = "CANCELLED"
    CHECKED_OUT = "CHECKED_OUT"


def _ensure_stock(product: Product, quantity: int) -> None:
    if quantity > product.stock:
        raise InsufficientStockError(
            f"Only {product.stock} {product.unit} of {product.name} in stock",
            details={
                "product_id": product.id,
                "requested_quantity": quantity,
                "on_hand": product.stock,
            },
        )


class Cart:
    def __init__(self):
        self._lines: dict[str, CartItem] = {}
        self.state = CartState.EMPTY

    def __len__(self) -> int:
        return len(self._lines)

    @property
    def is_empty(self) -> bool:
        return not self._lines

    @property
    def items(self) -> list[CartItem]:
        return list(self._lines.values())

    def get(self, product_id: str) -> CartItem | None:
        return self._lines.get(product_id)

    def add_item(self, product: Product) -> CartItem:
        """
        Add one unit of product, snapshotting it on first add.

        Stock is checked against the product passed in; price and cost stay
        as snapshotted.
        """
        existing = self._lines.get(product.id)
        if existing is not None:
            _ensure_stock(product, existing.quantity + 1)
            line = CartItem(product=existing.product, quantity=existing.quantity + 1)
        else:
            _ensure_stock(product, 1)
            line = CartItem(product=product, quantity=1)

        self._lines[product.id] = line
        self.state = CartState.BUILDING
        return line

    def remove_item(self, product_id: str) -> None:
        self._lines.pop(product_id, None)
        if not self._lines and self.state is CartState.BUILDING:
            self.state = CartState.EMPTY

    def change_quantity(self, product_id: str, delta: int) -> CartItem:
        """
        Shift a line's quantity by delta, floored at 1.

        Removal is remove_item()'s job; this never drops a line.
        """
        line = self._lines.get(product_id)
        if line is None:
            raise NotFoundError(f"Product {product_id!r} is not in the cart")

        quantity = max(1, line.quantity + delta)
        if quantity > line.quantity:
            _ensure_stock(line.product, quantity)

        line = CartItem(product=line.product, quantity=quantity)
        self._lines[product_id] = line
        return line

    def compute_total(self) -> int:
        return sum(line.line_total for line in self._lines.values())

    def cancel(self) -> None:
        self._lines.clear()
        self.state = CartState.CANCELLED

    def checkout(
        self,
        catalog: Catalog,
        log: TransactionLog,
        id_generator: IdentifierGenerator,
        *,
        now: datetime | None = None,
    ) -> Transaction | None:
        """
        Turn the cart into one SALE transaction and decrement stock per line.

        Empty cart: no-op, returns None.

        Every line is checked against the live catalog before anything is
        written, so a missing product or short stock leaves the catalog, the
        log and the cart untouched.
        """
        if self.is_empty:
            return None

        lines = self.items
        insufficient = []
        for line in lines:
            product = catalog.require(line.product_id)
            if product.stock < line.quantity:
                insufficient.append({
                    "product_id": line.product_id,
                    "requested_quantity": line.quantity,
                    "on_hand": product.stock,
                })
        if insufficient:
            raise InsufficientStockError(
                "Insufficient stock to check out",
                details={"items": insufficient},
            )

        tx = Transaction(
            id=id_generator.next_id(),
            date=now or utcnow(),
            type=TransactionType.SALE,
            total=self.compute_total(),
            items=tuple(
                SaleLineItem(
                    product_id=line.product_id,
                    name=line.product.name,
                    quantity=line.quantity,
                    price=line.product.price,
                    cost=line.product.cost,
                )
                for line in lines
            ),
        )
        log.record(tx)
        for line in lines:
            catalog.decrement_stock(line.product_id, line.quantity)

        self._lines.clear()
        self.state = CartState.CHECKED_OUT
        logger.info("Checked out sale id=%s lines=%s total=%s", tx.id, len(tx.items), tx.total)
        return tx
