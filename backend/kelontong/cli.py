# Overview: Flask CLI command group for bootstrap, inventory, point of sale, finance and the AI advisor.

# backend/kelontong/cli.py
# Commands Legend (run from the repository root):
# Prereqs:
# - Activate your virtualenv and `pip install -e .`
# - Use: flask --app kelontong shop <command> [options]
#
# Bootstrap:
# - flask --app kelontong shop init-db
#   Create the storage table (idempotent).
# - flask --app kelontong shop reset --yes
#   Replace the catalog with the default products and clear all transactions.
#
# Inventory:
# - flask --app kelontong shop products [--search kopi] [--category Sembako]
# - flask --app kelontong shop add-product --name "Teh Celup" --category Minuman --price 6000 --cost 4500 --stock 24 --unit box
# - flask --app kelontong shop update-product 7 --price 23000
# - flask --app kelontong shop delete-product 7
# - flask --app kelontong shop restock 6 40 [--unit-cost 1050]
# - flask --app kelontong shop low-stock
#
# Point of sale / finance:
# - flask --app kelontong shop sell 1:2 5:10
#   Check out a cart of product_id:quantity pairs.
# - flask --app kelontong shop expense 150000 --note "Listrik"
# - flask --app kelontong shop summary
# - flask --app kelontong shop history
#
# AI advisor (needs GEMINI_API_KEY):
# - flask --app kelontong shop advise
# - flask --app kelontong shop ask "Bagaimana cara meningkatkan margin keuntungan?"

import asyncio

import click
from flask.cli import with_appcontext

from .extensions import db
from .services.advisor_service import View
from .services.reporting_service import format_rupiah, stock_watchlist
from .services.shop_service import ShopService, shop_from_app
from .validation import (
    ConflictError,
    InsufficientStockError,
    NotFoundError,
    StorageError,
    ValidationError,
)

DOMAIN_ERRORS = (ValidationError, ConflictError, NotFoundError, InsufficientStockError, StorageError)


def _shop() -> ShopService:
    try:
        return shop_from_app()
    except StorageError as e:
        raise click.ClickException(str(e))


def _warn_if_unsaved(shop: ShopService) -> None:
    if not shop.persistence_ok:
        click.echo(f"WARN  Could not save {shop.last_persistence_failure}; changes are in memory only")


def _parse_line(item: str) -> tuple[str, int]:
    product_id, _, qty = item.partition(":")
    try:
        quantity = int(qty) if qty else 1
    except ValueError:
        raise ValidationError(f"Invalid line item: {item}")
    if not product_id or quantity < 1:
        raise ValidationError(f"Invalid line item: {item}")
    return product_id, quantity


def _echo_product(product) -> None:
    click.echo(
        f"{product.id:<14} {product.name:<24} {product.category:<12} "
        f"{format_rupiah(product.price):>12} {format_rupiah(product.cost):>12} "
        f"{product.stock:>6} {product.unit}"
    )


@click.group('shop')
def shop_group():
    """Shop bootstrap, inventory, sales and advisor commands."""


@shop_group.command('init-db')
@with_appcontext
def init_db():
    """Create the storage table if it does not exist."""
    db.create_all()
    click.echo("PASS Storage ready")


@shop_group.command('reset')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_shop(yes):
    """
    DANGER: Restore the default catalog and clear the transaction log.

    This will DELETE ALL SALES, EXPENSES AND RESTOCKS!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL TRANSACTIONS. Are you sure?", abort=True)
    shop = _shop()
    shop.reset()
    _warn_if_unsaved(shop)
    click.echo(f"PASS Restored {len(shop.products())} default products")


@shop_group.command('products')
@click.option('--search', 'term', default='', help='Name contains (case-insensitive)')
@click.option('--category', default='All', help='Category filter')
@with_appcontext
def list_products(term, category):
    """List products."""
    shop = _shop()
    products = shop.catalog.search(term, category)
    if not products:
        click.echo("No products found.")
        return

    click.echo("\n" + "=" * 96)
    click.echo(f"{'ID':<14} {'Name':<24} {'Category':<12} {'Price':>12} {'Cost':>12} {'Stock':>6} Unit")
    click.echo("=" * 96)
    for product in products:
        _echo_product(product)
    click.echo("=" * 96 + "\n")


@shop_group.command('add-product')
@click.option('--name', required=True)
@click.option('--category', default=None)
@click.option('--price', default=None, help='Selling price (Rupiah)')
@click.option('--cost', default=None, help='Unit cost / HPP (Rupiah)')
@click.option('--stock', default=None)
@click.option('--unit', default=None)
@with_appcontext
def add_product(name, category, price, cost, stock, unit):
    """Add a product to the catalog."""
    payload = {"name": name, "category": category, "price": price, "cost": cost, "stock": stock, "unit": unit}
    shop = _shop()
    try:
        product = shop.add_product(payload)
    except DOMAIN_ERRORS as e:
        raise click.ClickException(str(e))
    _warn_if_unsaved(shop)
    click.echo(f"PASS Created product {product.name} (ID: {product.id})")


@shop_group.command('update-product')
@click.argument('product_id')
@click.option('--name', default=None)
@click.option('--category', default=None)
@click.option('--price', default=None)
@click.option('--cost', default=None)
@click.option('--stock', default=None)
@click.option('--unit', default=None)
@with_appcontext
def update_product(product_id, **fields):
    """Edit selected fields of a product."""
    payload = {k: v for k, v in fields.items() if v is not None}
    if not payload:
        raise click.ClickException("Nothing to update")
    shop = _shop()
    try:
        product = shop.update_product(product_id, payload)
    except DOMAIN_ERRORS as e:
        raise click.ClickException(str(e))
    _warn_if_unsaved(shop)
    click.echo(f"PASS Updated product {product.name} (ID: {product.id})")


@shop_group.command('delete-product')
@click.argument('product_id')
@with_appcontext
def delete_product(product_id):
    """Remove a product. Past sales keep their line items."""
    shop = _shop()
    if not shop.delete_product(product_id):
        click.echo(f"WARN  Product {product_id} not found, nothing deleted")
        return
    _warn_if_unsaved(shop)
    click.echo(f"PASS Deleted product {product_id}")


@shop_group.command('restock')
@click.argument('product_id')
@click.argument('quantity')
@click.option('--unit-cost', default=None, help='Defaults to the product cost')
@click.option('--note', default=None)
@with_appcontext
def restock(product_id, quantity, unit_cost, note):
    """Receive stock for a product."""
    shop = _shop()
    try:
        tx = shop.restock(product_id, quantity, unit_cost=unit_cost, note=note)
    except DOMAIN_ERRORS as e:
        raise click.ClickException(str(e))
    _warn_if_unsaved(shop)
    product = shop.catalog.require(product_id)
    click.echo(f"PASS {tx.note} ({format_rupiah(tx.total)}); stock now {product.stock} {product.unit}")


@shop_group.command('low-stock')
@with_appcontext
def low_stock():
    """Products below the low-stock threshold, lowest first."""
    shop = _shop()
    rows = stock_watchlist(shop.low_stock())
    if not rows:
        click.echo("PASS No low-stock products")
        return
    for row in rows:
        flag = "CRIT" if row["critical"] else "LOW "
        click.echo(f"{flag} {row['name']:<24} {row['stock']:>6} {row['unit']}")


@shop_group.command('sell')
@click.argument('lines', nargs=-1, required=True)
@with_appcontext
def sell(lines):
    """Check out product_id[:quantity] pairs as one sale."""
    shop = _shop()
    cart = shop.new_cart()
    try:
        for item in lines:
            product_id, quantity = _parse_line(item)
            cart.add_item(shop.catalog.require(product_id))
            if quantity > 1:
                cart.change_quantity(product_id, quantity - 1)
        tx = shop.checkout(cart)
    except DOMAIN_ERRORS as e:
        raise click.ClickException(str(e))
    _warn_if_unsaved(shop)
    click.echo(f"PASS Sale {tx.id}: {len(tx.items)} lines, total {format_rupiah(tx.total)}")


@shop_group.command('expense')
@click.argument('amount')
@click.option('--note', default=None)
@with_appcontext
def expense(amount, note):
    """Record an operating expense."""
    shop = _shop()
    try:
        tx = shop.record_expense(amount, note)
    except DOMAIN_ERRORS as e:
        raise click.ClickException(str(e))
    _warn_if_unsaved(shop)
    click.echo(f"PASS Expense {tx.id}: {format_rupiah(tx.total)}")


@shop_group.command('summary')
@with_appcontext
def summary():
    """Profit and loss over the whole transaction log."""
    shop = _shop()
    s = shop.summary()
    dashboard = shop.dashboard()
    click.echo("\n" + "=" * 44)
    click.echo(f"{'Pendapatan (Omzet)':<26}{format_rupiah(s.revenue):>18}")
    click.echo(f"{'HPP':<26}{format_rupiah(s.cogs):>18}")
    click.echo(f"{'Laba Kotor':<26}{format_rupiah(s.gross_profit):>18}")
    click.echo(f"{'Pengeluaran':<26}{format_rupiah(s.expenses):>18}")
    click.echo(f"{'Laba Bersih':<26}{format_rupiah(s.net_profit):>18}")
    click.echo("=" * 44)
    click.echo(f"Transactions: {dashboard['transaction_count']}  Low stock: {dashboard['low_stock_count']} item(s)\n")


@shop_group.command('history')
@click.option('--limit', default=20, show_default=True)
@with_appcontext
def history(limit):
    """Transaction history, newest first."""
    shop = _shop()
    rows = shop.finance_report()["rows"][:limit]
    if not rows:
        click.echo("Belum ada transaksi")
        return
    for row in rows:
        click.echo(f"{row['date']}  {row['type']:<8} {row['description']:<40} {row['display_total']:>16}")


@shop_group.command('advise')
@with_appcontext
def advise():
    """Ask the AI advisor for a business health analysis."""
    session = _shop().advisor_session()
    click.echo(asyncio.run(session.refresh_analysis()))


@shop_group.command('ask')
@click.argument('message')
@with_appcontext
def ask(message):
    """Ask the AI accountant a question."""
    session = _shop().advisor_session()
    session.navigate(View.AI_ADVISOR)
    reply = asyncio.run(session.send_chat(message))
    if reply is None:
        raise click.ClickException("Message is empty")
    click.echo(reply)


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(shop_group)
