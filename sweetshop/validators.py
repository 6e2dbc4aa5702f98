"""
Business-rule validation for the Sweet Shop service.

These checks mirror the store's check constraints so that services reject
bad input before touching the database, whoever calls them.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Optional, Tuple

REQUIRED_TEXT_FIELDS = ("name", "category")

# Largest stock level or unit count; keeps quantity * price inside the purchase total column
MAX_QUANTITY = 1_000_000

# Largest unit price; prices carry at most two decimal places
MAX_PRICE = Decimal("1000000")
PRICE_STEP = Decimal("0.01")


def validate_quantity(quantity: Any, allow_zero: bool = False) -> Tuple[bool, str]:
    """
    Validate a unit count.

    Args:
        quantity: Value to check
        allow_zero: Accept 0 (stock levels) instead of requiring a positive count

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        return False, "Quantity must be an integer"

    if allow_zero and quantity < 0:
        return False, "Quantity cannot be negative"

    if not allow_zero and quantity <= 0:
        return False, "Quantity must be a positive integer"

    if quantity > MAX_QUANTITY:
        return False, f"Quantity exceeds maximum ({MAX_QUANTITY:,})"

    return True, ""


def validate_price(price: Any) -> Tuple[bool, str]:
    """
    Validate a unit price.

    Args:
        price: Value to check (Decimal, int, float or numeric string)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(price, bool):
        return False, "Price must be a number"
    try:
        value = Decimal(str(price))
    except (InvalidOperation, ValueError):
        return False, "Price must be a number"

    if not value.is_finite():
        return False, "Price must be a number"

    if value < 0:
        return False, "Price cannot be negative"

    if value > MAX_PRICE:
        return False, f"Price exceeds maximum ({MAX_PRICE:,})"

    if value != value.quantize(PRICE_STEP):
        return False, "Price cannot have more than two decimal places"

    return True, ""


def validate_sweet_fields(fields: Dict[str, Any], partial: bool = False) -> Tuple[bool, str]:
    """
    Validate the fields of a sweet being created or updated.

    Args:
        fields: Field values to check
        partial: Only check the fields that are present (updates)

    Returns:
        Tuple of (is_valid, error_message)
    """
    for field in REQUIRED_TEXT_FIELDS:
        if field not in fields:
            if partial:
                continue
            return False, f"{field.capitalize()} is required"
        value = fields[field]
        if not isinstance(value, str) or not value.strip():
            return False, f"{field.capitalize()} must be a non-empty string"

    if "price" in fields or not partial:
        valid, message = validate_price(fields.get("price"))
        if not valid:
            return False, message

    if "quantity" in fields or not partial:
        valid, message = validate_quantity(fields.get("quantity"), allow_zero=True)
        if not valid:
            return False, message

    return True, ""


def validate_price_range(min_price: Optional[Decimal], max_price: Optional[Decimal]) -> Tuple[bool, str]:
    """
    Validate search price bounds.

    Args:
        min_price: Inclusive lower bound, if any
        max_price: Inclusive upper bound, if any

    Returns:
        Tuple of (is_valid, error_message)
    """
    if min_price is not None and min_price < 0:
        return False, "minPrice cannot be negative"

    if max_price is not None and max_price < 0:
        return False, "maxPrice cannot be negative"

    if min_price is not None and max_price is not None and min_price > max_price:
        return False, "minPrice cannot be greater than maxPrice"

    return True, ""


def validate_restock(current: int, quantity: int) -> Tuple[bool, str]:
    """
    Validate that a restock keeps the stock level within bounds.

    Args:
        current: Units currently in stock
        quantity: Units being added

    Returns:
        Tuple of (is_valid, error_message)
    """
    if current + quantity > MAX_QUANTITY:
        return False, f"Restock would exceed maximum stock ({MAX_QUANTITY:,}); {current} already in stock"

    return True, ""
