# Overview: Service-layer operations for the transaction log.

from __future__ import annotations

import logging
from typing import Iterable, Iterator

from ..models import Transaction, TransactionType
from ..validation import ConflictError
"""
Transaction Log Invariants (authoritative)

- Append-only: record() is the only write; there is no update or delete.
- Insertion order is chronological order; readers never re-sort.
- Transactions are frozen dataclasses, so history cannot be edited in place.
- Ids are unique across the log.
"""

logger = logging.getLogger(__name__)


class TransactionLog:
    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._entries: list[Transaction] = []
        self._ids: set[str] = set()
        for tx in transactions:
            self.record(tx)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[Transaction]:
        return iter(tuple(self._entries))

    def record(self, transaction: Transaction) -> Transaction:
        """Append one transaction. A repeated id raises ConflictError."""
        if transaction.id in self._ids:
            raise ConflictError(f"Transaction {transaction.id} already recorded")
        self._entries.append(transaction)
        self._ids.add(transaction.id)
        logger.debug(
            "Recorded %s transaction id=%s total=%s",
            transaction.type.value, transaction.id, transaction.total,
        )
        return transaction

    def list_all(self) -> tuple[Transaction, ...]:
        return tuple(self._entries)

    def recent(self, limit: int) -> tuple[Transaction, ...]:
        """The last `limit` transactions, oldest first."""
        if limit <= 0:
            return ()
        return tuple(self._entries[-limit:])

    def of_type(self, tx_type: TransactionType) -> tuple[Transaction, ...]:
        return tuple(tx for tx in self._entries if tx.type is tx_type)

    def ids(self) -> set[str]:
        return set(self._ids)
