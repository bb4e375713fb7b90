import pytest

from kelontong.models import PRODUCT_DEFAULTS, PRODUCT_POLICY, ProductPatch
from kelontong.validation import (
    MAX_AMOUNT,
    ValidationError,
    require_amount,
    require_positive_quantity,
    validate_payload,
)


def test_integer_fields_accept_digit_strings_and_whole_floats():
    patch = validate_payload(
        payload={"price": " 15000 ", "cost": 12000.0, "stock": 3},
        policy=PRODUCT_POLICY,
        partial=True,
    )
    assert patch == {"price": 15000, "cost": 12000, "stock": 3}


@pytest.mark.parametrize("raw", ["1e3", "12.5", 12.5, "abc", True, [1]])
def test_integer_fields_reject_non_integers(raw):
    with pytest.raises(ValidationError):
        validate_payload(payload={"price": raw}, policy=PRODUCT_POLICY, partial=True)


def test_unknown_and_null_fields_are_rejected():
    with pytest.raises(ValidationError, match="Field not allowed: id"):
        validate_payload(payload={"id": "9"}, policy=PRODUCT_POLICY, partial=True)
    with pytest.raises(ValidationError, match="cannot be null"):
        validate_payload(payload={"name": None}, policy=PRODUCT_POLICY, partial=True)


def test_bounds_are_enforced():
    with pytest.raises(ValidationError, match="price must be >= 0"):
        validate_payload(payload={"price": -1}, policy=PRODUCT_POLICY, partial=True)
    with pytest.raises(ValidationError, match="exceeds max length"):
        validate_payload(payload={"unit": "x" * 33}, policy=PRODUCT_POLICY, partial=True)


def test_create_requires_name():
    with pytest.raises(ValidationError, match="Missing required fields: name"):
        ProductPatch.for_create({"price": 1000})


def test_create_rejects_blank_name():
    with pytest.raises(ValidationError, match="name cannot be blank"):
        ProductPatch.for_create({"name": "   "})


def test_create_fills_empty_optional_fields_with_defaults():
    patch = ProductPatch.for_create({"name": "Teh Celup", "category": "", "price": None, "unit": "  "})
    assert patch.name == "Teh Celup"
    assert patch.category == PRODUCT_DEFAULTS["category"]
    assert patch.price == 0
    assert patch.unit == "pcs"


def test_update_patch_only_carries_given_fields():
    patch = ProductPatch.for_update({"price": "23000"})
    assert patch.changes() == {"price": 23000}


def test_require_positive_quantity():
    assert require_positive_quantity("4") == 4
    with pytest.raises(ValidationError, match="quantity must be >= 1"):
        require_positive_quantity(0)


def test_require_amount_bounds():
    assert require_amount(0) == 0
    with pytest.raises(ValidationError, match="amount must be >= 0"):
        require_amount(-5)
    with pytest.raises(ValidationError, match="cannot exceed"):
        require_amount(MAX_AMOUNT + 1)
