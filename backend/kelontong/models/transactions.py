from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from ..time_utils import parse_iso_datetime, to_utc_z
from ..validation import require_amount, require_positive_quantity


class TransactionType(str, Enum):
    SALE = "SALE"
    EXPENSE = "EXPENSE"
    RESTOCK = "RESTOCK"


@dataclass(frozen=True)
class SaleLineItem:
    """Product values copied at the moment of sale; never re-read from the catalog."""
    product_id: str
    name: str
    quantity: int
    price: int
    cost: int

    @property
    def line_total(self) -> int:
        return self.price * self.quantity

    @property
    def line_cost(self) -> int:
        return self.cost * self.quantity

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "name": self.name,
            "quantity": self.quantity,
            "price": self.price,
            "cost": self.cost,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SaleLineItem":
        return cls(
            product_id=str(data["product_id"]),
            name=str(data["name"]),
            quantity=require_positive_quantity(data["quantity"]),
            price=require_amount(data["price"], key="price"),
            cost=require_amount(data["cost"], key="cost"),
        )


@dataclass(frozen=True)
class Transaction:
    """
    One entry of the transaction log.

    total is always a non-negative magnitude; SALE adds to the till,
    EXPENSE and RESTOCK take from it. Only SALE carries line items.
    """
    id: str
    date: datetime
    type: TransactionType
    total: int
    items: tuple[SaleLineItem, ...] = ()
    note: str | None = None

    @property
    def is_sale(self) -> bool:
        return self.type is TransactionType.SALE

    @property
    def cogs(self) -> int:
        return sum(item.line_cost for item in self.items)

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "date": to_utc_z(self.date),
            "type": self.type.value,
            "total": self.total,
        }
        if self.items:
            data["items"] = [item.to_dict() for item in self.items]
        if self.note is not None:
            data["note"] = self.note
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Transaction":
        return cls(
            id=str(data["id"]),
            date=parse_iso_datetime(data["date"]),
            type=TransactionType(data["type"]),
            total=require_amount(data["total"], key="total"),
            items=tuple(SaleLineItem.from_dict(i) for i in data.get("items") or ()),
            note=data.get("note"),
        )


@dataclass(frozen=True)
class FinancialSummary:
    """Derived from the transaction log on every read; never stored."""
    revenue: int = 0
    cogs: int = 0
    gross_profit: int = 0
    expenses: int = 0
    net_profit: int = 0

    def to_dict(self) -> dict:
        return {
            "revenue": self.revenue,
            "cogs": self.cogs,
            "gross_profit": self.gross_profit,
            "expenses": self.expenses,
            "net_profit": self.net_profit,
        }
