# Overview: Service-layer operations for reporting; derives summaries from the transaction log.

from __future__ import annotations

from typing import Iterable, Sequence

from ..models import FinancialSummary, Product, Transaction, TransactionType
from ..time_utils import to_utc_z

LOW_STOCK_THRESHOLD = 10
CRITICAL_STOCK_THRESHOLD = 5


def format_rupiah(amount: int) -> str:
    """65000 -> 'Rp65.000' (id-ID grouping)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}Rp{abs(amount):,}".replace(",", ".")


def summarize(transactions: Iterable[Transaction]) -> FinancialSummary:
    """
    Single pass over the full log.

    revenue      = sum of SALE totals
    cogs         = sum over SALE line items of cost * quantity
    gross_profit = revenue - cogs
    expenses     = sum of EXPENSE totals
    net_profit   = gross_profit - expenses

    RESTOCK entries move stock, not profit, and are ignored here.
    """
    revenue = 0
    cogs = 0
    expenses = 0
    for tx in transactions:
        if tx.type is TransactionType.SALE:
            revenue += tx.total
            cogs += tx.cogs
        elif tx.type is TransactionType.EXPENSE:
            expenses += tx.total

    gross_profit = revenue - cogs
    return FinancialSummary(
        revenue=revenue,
        cogs=cogs,
        gross_profit=gross_profit,
        expenses=expenses,
        net_profit=gross_profit - expenses,
    )


def low_stock(products: Iterable[Product], threshold: int = LOW_STOCK_THRESHOLD) -> list[Product]:
    return [p for p in products if p.is_low_stock(threshold)]


def stock_watchlist(
    products: Iterable[Product],
    *,
    limit: int | None = None,
    critical_below: int = CRITICAL_STOCK_THRESHOLD,
) -> list[dict]:
    """Products ordered by remaining stock, lowest first."""
    ordered = sorted(products, key=lambda p: p.stock)
    if limit is not None:
        ordered = ordered[:limit]
    return [
        {
            "product_id": p.id,
            "name": p.name,
            "category": p.category,
            "stock": p.stock,
            "unit": p.unit,
            "critical": p.stock < critical_below,
        }
        for p in ordered
    ]


def sales_series(transactions: Sequence[Transaction], limit: int = 7) -> list[dict]:
    sales = [tx for tx in transactions if tx.type is TransactionType.SALE][-limit:]
    return [
        {"name": f"Tx {index}", "amount": tx.total}
        for index, tx in enumerate(sales, start=1)
    ]


def _describe(tx: Transaction) -> str:
    if tx.items:
        return f"{len(tx.items)} items (e.g. {tx.items[0].name}...)"
    return tx.note or "-"


def transaction_history(transactions: Sequence[Transaction]) -> list[dict]:
    """Finance report rows, newest first."""
    rows = []
    for tx in reversed(list(transactions)):
        sign = "+" if tx.is_sale else "-"
        rows.append(
            {
                "id": tx.id,
                "date": to_utc_z(tx.date),
                "type": tx.type.value,
                "description": _describe(tx),
                "total": tx.total,
                "signed_total": tx.total if sign == "+" else -tx.total,
                "display_total": f"{sign} {format_rupiah(tx.total)}",
            }
        )
    return rows


def dashboard_snapshot(
    products: Sequence[Product],
    transactions: Sequence[Transaction],
    *,
    threshold: int = LOW_STOCK_THRESHOLD,
) -> dict:
    summary = summarize(transactions)
    return {
        "summary": summary.to_dict(),
        "transaction_count": len(transactions),
        "low_stock_count": len(low_stock(products, threshold)),
        "sales_series": sales_series(transactions),
        "stock_watchlist": stock_watchlist(products, limit=5),
    }
