from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


# Maximum amount: Rp999,999,999,999
# This keeps totals well inside SQLite/JSON integer range and rejects nonsensical prices
MAX_AMOUNT = 999_999_999_999


class ValidationError(ValueError):
    """Malformed input to a catalog, cart or ledger mutation."""


class ConflictError(ValueError):
    """Business rule conflict (e.g., duplicate product or transaction id)."""


class NotFoundError(LookupError):
    """Operation targets an identifier that does not exist."""


class InsufficientStockError(ValueError):
    """Requested quantity exceeds available stock."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class AdapterFailure(RuntimeError):
    """An external collaborator (storage or AI advisor) failed."""


class StorageError(AdapterFailure):
    """Blob store could not be read, written or decoded."""


class AdvisorError(AdapterFailure):
    """AI advisor request failed or returned an unusable body."""


@dataclass(frozen=True)
class FieldRule:
    kind: type
    max_length: int | None = None
    min_value: int | None = None
    max_value: int | None = None
    allow_blank: bool = False


@dataclass(frozen=True)
class ValidationPolicy:
    """
    Central policy layer:
    - rules: every field the caller is allowed to set, with its type and bounds
    - required_on_create: fields required when creating a record
    """
    rules: dict[str, FieldRule]
    required_on_create: set[str] = field(default_factory=set)

    @property
    def writable_fields(self) -> set[str]:
        return set(self.rules)


def _coerce_value(key: str, rule: FieldRule, value: Any):
    # Integers - strict validation to reject floats and scientific notation
    if rule.kind is int:
        # Already an int (but not bool which is a subclass of int)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        # String input - must be plain digits (with optional leading minus)
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{key} must be an integer")
            # Reject scientific notation (e.g., "1e15", "1E10")
            if 'e' in stripped.lower():
                raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
            # Reject decimal points (e.g., "12.5")
            if '.' in stripped:
                raise ValidationError(f"{key} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{key} must be an integer")
        # Whole-number floats come from spreadsheets and JSON clients; anything else is rejected
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{key} must be an integer, not a decimal")
        raise ValidationError(f"{key} must be an integer")

    if rule.kind is str:
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            raise ValidationError(f"{key} must be text")
        return str(value).strip()

    return value


def validate_payload(*, payload: dict | None, policy: ValidationPolicy, partial: bool) -> dict:
    """
    Validates + normalizes an incoming mapping against a policy.
    Returns a cleaned patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k not in policy.rules:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        rule = policy.rules[k]
        if raw is None:
            raise ValidationError(f"{k} cannot be null")

        val = _coerce_value(k, rule, raw)

        if isinstance(val, str):
            if val == "" and not rule.allow_blank:
                raise ValidationError(f"{k} cannot be blank")
            if rule.max_length and len(val) > rule.max_length:
                raise ValidationError(f"{k} exceeds max length {rule.max_length}")

        if isinstance(val, int):
            if rule.min_value is not None and val < rule.min_value:
                raise ValidationError(f"{k} must be >= {rule.min_value}")
            if rule.max_value is not None and val > rule.max_value:
                raise ValidationError(f"{k} cannot exceed {rule.max_value:,}")

        patch[k] = val

    return patch


def require_positive_quantity(quantity: Any, *, key: str = "quantity") -> int:
    """Quantities moved by checkout and restock are whole units >= 1."""
    value = _coerce_value(key, FieldRule(int), quantity)
    if value < 1:
        raise ValidationError(f"{key} must be >= 1")
    return value


def require_amount(amount: Any, *, key: str = "amount") -> int:
    value = _coerce_value(key, FieldRule(int), amount)
    if value < 0:
        raise ValidationError(f"{key} must be >= 0")
    if value > MAX_AMOUNT:
        raise ValidationError(f"{key} cannot exceed {MAX_AMOUNT:,}")
    return value
