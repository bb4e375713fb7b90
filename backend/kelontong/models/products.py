from __future__ import annotations

from dataclasses import dataclass, fields, replace

from ..validation import MAX_AMOUNT, FieldRule, ValidationPolicy, require_amount, validate_payload


PRODUCT_POLICY = ValidationPolicy(
    rules={
        "name": FieldRule(str, max_length=255),
        "category": FieldRule(str, max_length=64),
        "price": FieldRule(int, min_value=0, max_value=MAX_AMOUNT),
        "cost": FieldRule(int, min_value=0, max_value=MAX_AMOUNT),
        "stock": FieldRule(int, min_value=0, max_value=MAX_AMOUNT),
        "unit": FieldRule(str, max_length=32),
    },
    required_on_create={"name"},
)

# Values the inventory form falls back to when a field is left empty
PRODUCT_DEFAULTS = {
    "category": "Umum",
    "price": 0,
    "cost": 0,
    "stock": 0,
    "unit": "pcs",
}


@dataclass(frozen=True)
class Product:
    """
    Product master data.

    Money fields are whole Rupiah. Records are immutable; the catalog swaps in
    a new instance on every edit, so cart snapshots and sale line items keep
    the values they were built from.
    """
    id: str
    name: str
    category: str
    price: int
    cost: int
    stock: int
    unit: str

    def is_low_stock(self, threshold: int) -> bool:
        return self.stock < threshold

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": self.price,
            "cost": self.cost,
            "stock": self.stock,
            "unit": self.unit,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        # Fractional values are rejected, not truncated
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            category=str(data.get("category") or PRODUCT_DEFAULTS["category"]),
            price=require_amount(data.get("price") or 0, key="price"),
            cost=require_amount(data.get("cost") or 0, key="cost"),
            stock=require_amount(data.get("stock") or 0, key="stock"),
            unit=str(data.get("unit") or PRODUCT_DEFAULTS["unit"]),
        )


@dataclass(frozen=True)
class ProductPatch:
    """
    Exactly the mutable product fields. A None field is left untouched.
    Build instances through for_create() / for_update() so values are
    validated before they reach the catalog.
    """
    name: str | None = None
    category: str | None = None
    price: int | None = None
    cost: int | None = None
    stock: int | None = None
    unit: str | None = None

    @classmethod
    def for_create(cls, payload: dict | None) -> "ProductPatch":
        payload = dict(payload or {})
        # Empty optional inputs take the form defaults; a blank name is still rejected
        for key in PRODUCT_DEFAULTS:
            value = payload.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                payload.pop(key, None)
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=False)
        return cls(**{**PRODUCT_DEFAULTS, **patch})

    @classmethod
    def for_update(cls, payload: dict | None) -> "ProductPatch":
        patch = validate_payload(payload=payload, policy=PRODUCT_POLICY, partial=True)
        return cls(**patch)

    def changes(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def apply_to(self, product: Product) -> Product:
        return replace(product, **self.changes())

    def build(self, product_id: str) -> Product:
        values = {**PRODUCT_DEFAULTS, **self.changes()}
        return Product(id=product_id, **values)


@dataclass(frozen=True)
class CartItem:
    """A product snapshot plus the requested quantity. Never persisted."""
    product: Product
    quantity: int

    @property
    def product_id(self) -> str:
        return self.product.id

    @property
    def line_total(self) -> int:
        return self.product.price * self.quantity

    @property
    def line_cost(self) -> int:
        return self.product.cost * self.quantity
