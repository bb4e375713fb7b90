# Overview: Service-layer facade owning the catalog and transaction log for one shop session.

"""
Shop Service

Owns the two aggregates (Catalog, TransactionLog) and is the handle callers
depend on; nothing else keeps module-level shop state.

Every mutation follows the same path:
    validate -> mutate in memory -> persist the touched collection(s)

The financial summary is recomputed from the log on every read and is never
cached. A failed save is recorded in `persistence_ok` / `last_persistence_failure`
and logged, but the in-memory state stays authoritative.
"""

from __future__ import annotations

import logging
from typing import Iterable

from flask import current_app

from ..models import FinancialSummary, Product, ProductPatch, Transaction, TransactionType
from ..seed_data import INITIAL_PRODUCTS
from ..time_utils import utcnow
from ..validation import require_amount, require_positive_quantity
from . import reporting_service
from .advisor_service import AdvisorSession, GeminiAdvisor, build_chat_context
from .cart_service import Cart
from .catalog_service import Catalog
from .identifier_service import IdentifierGenerator
from .ledger_service import TransactionLog
from .persistence_service import BlobStore, ShopRepository, SqlBlobStore

logger = logging.getLogger(__name__)


class ShopService:
    def __init__(
        self,
        store: BlobStore,
        *,
        default_products: Iterable[Product] = INITIAL_PRODUCTS,
        id_generator: IdentifierGenerator | None = None,
        advisor=None,
        advisor_timeout: float | None = None,
        low_stock_threshold: int = reporting_service.LOW_STOCK_THRESHOLD,
    ):
        self.repository = ShopRepository(store)
        self.ids = id_generator or IdentifierGenerator()
        self.catalog = Catalog(
            self.repository.load_catalog(default_products),
            id_generator=self.ids,
        )
        self.log = TransactionLog(self.repository.load_transactions())
        self.ids.observe(self.log.ids())

        self.advisor = advisor
        self.advisor_timeout = advisor_timeout
        self.low_stock_threshold = low_stock_threshold
        self.persistence_ok = True
        self.last_persistence_failure: str | None = None

    # -- persistence -------------------------------------------------------

    def _record_save(self, key: str, ok: bool) -> None:
        if ok:
            self.persistence_ok = True
            self.last_persistence_failure = None
        else:
            self.persistence_ok = False
            self.last_persistence_failure = key

    def _save_catalog(self) -> None:
        self._record_save("products", self.repository.save_catalog(self.catalog))

    def _save_log(self) -> None:
        self._record_save("transactions", self.repository.save_transactions(self.log))

    # -- reads -------------------------------------------------------------

    def products(self) -> list[Product]:
        return self.catalog.list_products()

    def transactions(self) -> tuple[Transaction, ...]:
        return self.log.list_all()

    def summary(self) -> FinancialSummary:
        return reporting_service.summarize(self.log)

    def low_stock(self) -> list[Product]:
        return self.catalog.low_stock(self.low_stock_threshold)

    def dashboard(self) -> dict:
        return reporting_service.dashboard_snapshot(
            self.products(), self.transactions(), threshold=self.low_stock_threshold,
        )

    def finance_report(self) -> dict:
        return {
            "summary": self.summary().to_dict(),
            "rows": reporting_service.transaction_history(self.transactions()),
        }

    def chat_context(self) -> str:
        return build_chat_context(self.summary(), self.products())

    # -- inventory ---------------------------------------------------------

    def add_product(self, patch: ProductPatch | dict) -> Product:
        product = self.catalog.add_product(patch)
        self._save_catalog()
        return product

    def update_product(self, product_id: str, patch: ProductPatch | dict) -> Product:
        product = self.catalog.update_product(product_id, patch)
        self._save_catalog()
        return product

    def replace_product(self, product: Product) -> Product:
        product = self.catalog.replace_product(product)
        self._save_catalog()
        return product

    def delete_product(self, product_id: str) -> bool:
        deleted = self.catalog.delete_product(product_id)
        if deleted:
            self._save_catalog()
        return deleted

    def restock(
        self,
        product_id: str,
        quantity: int,
        *,
        unit_cost: int | None = None,
        note: str | None = None,
    ) -> Transaction:
        """Receive stock and log what it cost. RESTOCK does not enter the profit summary."""
        quantity = require_positive_quantity(quantity)
        product = self.catalog.require(product_id)
        cost = product.cost if unit_cost is None else require_amount(unit_cost, key="unit_cost")

        tx = Transaction(
            id=self.ids.next_id(),
            date=utcnow(),
            type=TransactionType.RESTOCK,
            total=require_amount(cost * quantity, key="total"),
            note=note or f"Restock {product.name} x{quantity} {product.unit}",
        )
        self.log.record(tx)
        self.catalog.increment_stock(product_id, quantity)
        self._save_log()
        self._save_catalog()
        return tx

    # -- finance -----------------------------------------------------------

    def record_expense(self, amount: int, note: str | None = None) -> Transaction:
        tx = Transaction(
            id=self.ids.next_id(),
            date=utcnow(),
            type=TransactionType.EXPENSE,
            total=require_amount(amount),
            note=(note or "").strip() or None,
        )
        self.log.record(tx)
        self._save_log()
        return tx

    # -- point of sale -----------------------------------------------------

    def new_cart(self) -> Cart:
        return Cart()

    def checkout(self, cart: Cart) -> Transaction | None:
        tx = cart.checkout(self.catalog, self.log, self.ids)
        if tx is None:
            return None
        self._save_log()
        self._save_catalog()
        return tx

    # -- advisor -----------------------------------------------------------

    def advisor_session(self) -> AdvisorSession:
        return AdvisorSession(self, self.advisor, timeout=self.advisor_timeout)

    # -- maintenance -------------------------------------------------------

    def reset(self, default_products: Iterable[Product] = INITIAL_PRODUCTS) -> None:
        """Replace the catalog with the defaults and clear the transaction log."""
        self.catalog = Catalog(default_products, id_generator=self.ids)
        self.log = TransactionLog()
        self._save_catalog()
        self._save_log()
        logger.warning("Shop data reset to %s default products", len(self.catalog))


def shop_from_app(app=None, *, store: BlobStore | None = None, advisor=None) -> ShopService:
    """Build a ShopService from Flask config. Needs an app context for the SQL store."""
    app = app or current_app
    config = app.config
    if advisor is None:
        advisor = GeminiAdvisor.from_config(config)
    timeout = config.get("ADVISOR_TIMEOUT_SECONDS")
    return ShopService(
        store or SqlBlobStore(),
        advisor=advisor,
        advisor_timeout=float(timeout) if timeout is not None else None,
        low_stock_threshold=int(config.get("LOW_STOCK_THRESHOLD", reporting_service.LOW_STOCK_THRESHOLD)),
    )
