# Overview: Service-layer operations for persistence; wholesale blob storage of the catalog and log.

"""
Persistence Adapter

Contract consumed by the shop:
- load(key) -> str | None
- save(key, blob) -> None

Blob format (schema_version 1):
    {"schema_version": 1, "items": [...]}

Schema version 0 is the original browser localStorage format: a bare JSON
list, with sale line items keyed by "productId". It is migrated on load and
written back as version 1 on the next save.

Failure policy:
- A failing save is logged and reported as False; in-memory state is kept.
- A blob that cannot be decoded raises StorageError. Falling back to the
  default dataset there would overwrite real data on the next save.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable, Protocol

from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, StorageBlob, Transaction
from ..validation import StorageError

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
PRODUCTS_KEY = "products"
TRANSACTIONS_KEY = "transactions"

# Storage quota and filesystem errors surface as OSError from file-backed stores
SAVE_ERRORS = (StorageError, OSError)


class BlobStore(Protocol):
    def load(self, key: str) -> str | None: ...

    def save(self, key: str, blob: str) -> None: ...


class InMemoryBlobStore:
    """Process-local store; used for throwaway sessions and tests."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.blobs: dict[str, str] = dict(initial or {})

    def load(self, key: str) -> str | None:
        return self.blobs.get(key)

    def save(self, key: str, blob: str) -> None:
        self.blobs[key] = blob


class SqlBlobStore:
    """Blob store on the storage_blobs table. Requires an app context."""

    def load(self, key: str) -> str | None:
        try:
            row = db.session.get(StorageBlob, key)
        except SQLAlchemyError as exc:
            raise StorageError(f"Could not read blob {key!r}") from exc
        return row.payload if row is not None else None

    def save(self, key: str, blob: str) -> None:
        try:
            row = db.session.get(StorageBlob, key)
            if row is None:
                db.session.add(StorageBlob(key=key, payload=blob))
            else:
                row.payload = blob
            db.session.commit()
        except SQLAlchemyError as exc:
            db.session.rollback()
            raise StorageError(f"Could not write blob {key!r}") from exc


def _encode(items: list[dict]) -> str:
    return json.dumps({"schema_version": SCHEMA_VERSION, "items": items}, ensure_ascii=False)


def _decode_items(key: str, blob: str) -> tuple[int, list[dict]]:
    try:
        data = json.loads(blob)
    except ValueError as exc:
        raise StorageError(f"Blob {key!r} is not valid JSON") from exc

    if isinstance(data, list):
        return 0, data
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        raise StorageError(f"Blob {key!r} has an unexpected shape")

    version = data.get("schema_version")
    if not isinstance(version, int) or version > SCHEMA_VERSION:
        raise StorageError(f"Blob {key!r} has unsupported schema_version {version!r}")
    return version, data["items"]


def _migrate_transaction_v0(raw: dict) -> dict:
    migrated = dict(raw)
    items = []
    for item in raw.get("items") or ():
        item = dict(item)
        if "productId" in item:
            item["product_id"] = item.pop("productId")
        items.append(item)
    if items:
        migrated["items"] = items
    return migrated


def encode_products(products: Iterable[Product]) -> str:
    return _encode([p.to_dict() for p in products])


def decode_products(blob: str) -> list[Product]:
    _, items = _decode_items(PRODUCTS_KEY, blob)
    try:
        return [Product.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Blob {PRODUCTS_KEY!r} holds a malformed product") from exc


def encode_transactions(transactions: Iterable[Transaction]) -> str:
    return _encode([tx.to_dict() for tx in transactions])


def decode_transactions(blob: str) -> list[Transaction]:
    version, items = _decode_items(TRANSACTIONS_KEY, blob)
    try:
        if version == 0:
            items = [_migrate_transaction_v0(item) for item in items]
        return [Transaction.from_dict(item) for item in items]
    except (KeyError, TypeError, ValueError) as exc:
        raise StorageError(f"Blob {TRANSACTIONS_KEY!r} holds a malformed transaction") from exc


class ShopRepository:
    def __init__(self, store: BlobStore):
        self.store = store

    def load_catalog(self, default_products: Iterable[Product]) -> list[Product]:
        blob = self.store.load(PRODUCTS_KEY)
        if blob is None:
            logger.info("No saved products; starting from the default dataset")
            return list(default_products)
        return decode_products(blob)

    def load_transactions(self) -> list[Transaction]:
        blob = self.store.load(TRANSACTIONS_KEY)
        if blob is None:
            return []
        return decode_transactions(blob)

    def _save(self, key: str, blob: str) -> bool:
        try:
            self.store.save(key, blob)
        except SAVE_ERRORS as exc:
            logger.warning("Could not persist %s; keeping in-memory state: %s", key, exc)
            return False
        return True

    def save_catalog(self, products: Iterable[Product]) -> bool:
        return self._save(PRODUCTS_KEY, encode_products(products))

    def save_transactions(self, transactions: Iterable[Transaction]) -> bool:
        return self._save(TRANSACTIONS_KEY, encode_transactions(transactions))

