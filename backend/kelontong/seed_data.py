# Overview: Default catalog loaded when the blob store holds no products yet.

from .models import Product

INITIAL_PRODUCTS: tuple[Product, ...] = (
    Product(id="1", name="Beras Premium 5kg", category="Sembako", price=65000, cost=58000, stock=20, unit="sak"),
    Product(id="2", name="Minyak Goreng 1L", category="Sembako", price=16000, cost=14000, stock=45, unit="btl"),
    Product(id="3", name="Telur Ayam 1kg", category="Sembako", price=28000, cost=25000, stock=15, unit="kg"),
    Product(id="4", name="Gula Pasir 1kg", category="Sembako", price=14500, cost=12500, stock=30, unit="bks"),
    Product(id="5", name="Indomie Goreng", category="Makanan", price=3500, cost=2900, stock=100, unit="bks"),
    Product(id="6", name="Kopi Kapal Api", category="Minuman", price=1500, cost=1100, stock=8, unit="sachet"),  # low stock
    Product(id="7", name="Sabun Mandi Cair", category="Kebersihan", price=22000, cost=18000, stock=12, unit="btl"),
)
