"""
Submission validation.

Turns the raw JSON a storefront posts into a ``ValidatedOrder``. Everything
here is a pure function of its input; rejections are raised as
``OrderValidationError`` and mapped to a 400 by the API layer.
"""
import math
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import OrderValidationError
from .models import (
    CURRENCY_CLP,
    CustomerDetail,
    DeliveryDetail,
    LineItem,
    PickupDetail,
    ShippingOption,
    ValidatedOrder,
)

MAX_ITEMS = 50
MAX_QUANTITY = 99
MAX_TITLE_LENGTH = 120

# Canonical commune labels keyed by lowercase spelling
COMMUNE_LABELS: Dict[str, str] = {
    "la-serena": "La Serena",
    "laserena": "La Serena",
    "la serena": "La Serena",
    "coquimbo": "Coquimbo",
}


def to_safe_string(value: Any, max_length: int = 200) -> str:
    """Stringify, trim and cap a client value; None becomes empty."""
    if value is None:
        return ""
    return str(value).strip()[:max_length]


def to_number(value: Any) -> Optional[float]:
    """
    Coerce numbers and numeric strings.

    Returns None for anything that is not a finite number, booleans included.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def normalize_shipping_option(value: Any) -> ShippingOption:
    """Anything other than ``pickup`` means delivery."""
    if to_safe_string(value).lower() == ShippingOption.PICKUP.value:
        return ShippingOption.PICKUP
    return ShippingOption.DELIVERY


def normalize_commune(value: Any) -> str:
    """Map known commune spellings to their label; pass others through."""
    commune = to_safe_string(value, 40)
    return COMMUNE_LABELS.get(commune.lower(), commune)


def _normalize_item(raw: Any) -> Dict[str, Any]:
    raw = raw if isinstance(raw, Mapping) else {}
    quantity = raw.get("quantity")
    return {
        "title": to_safe_string(raw.get("title"), MAX_TITLE_LENGTH),
        # A missing quantity means one unit
        "quantity": 1.0 if quantity is None or quantity == "" else to_number(quantity),
        "unit_price": to_number(raw.get("unitprice")),
        "currency": CURRENCY_CLP,
    }


def _is_valid_item(item: Dict[str, Any]) -> bool:
    quantity = item["quantity"]
    unit_price = item["unit_price"]
    return bool(
        item["title"]
        and quantity is not None
        and quantity.is_integer()
        and 0 < quantity <= MAX_QUANTITY
        and unit_price is not None
        and unit_price > 0
    )


def validate_items(raw_items: Any) -> List[LineItem]:
    """
    Validate the cart lines of a submission.

    Raises:
        OrderValidationError: If the list is empty, too long, or any line is
            invalid (the batch is rejected as a whole)
    """
    if not isinstance(raw_items, list) or not raw_items:
        raise OrderValidationError("items vacío")

    if len(raw_items) > MAX_ITEMS:
        raise OrderValidationError(f"Demasiados items (max {MAX_ITEMS})")

    normalized = [_normalize_item(raw) for raw in raw_items]
    if not all(_is_valid_item(item) for item in normalized):
        raise OrderValidationError("items inválidos", detail=normalized)

    return [
        LineItem(
            title=item["title"],
            quantity=int(item["quantity"]),
            unit_price=item["unit_price"],
        )
        for item in normalized
    ]


def validate_customer_detail(
    shipping_option: ShippingOption,
    delivery: Any = None,
    pickup: Any = None,
) -> CustomerDetail:
    """
    Validate the contact block matching the shipping option.

    Raises:
        OrderValidationError: If a required field is empty
    """
    if shipping_option is ShippingOption.DELIVERY:
        data = delivery if isinstance(delivery, Mapping) else {}
        name = to_safe_string(data.get("name"), 120)
        phone = to_safe_string(data.get("phone"), 40)
        address = to_safe_string(data.get("address"), 180)
        if not name or not phone or not address:
            raise OrderValidationError("Faltan datos de delivery (name/phone/address)")
        return DeliveryDetail(
            name=name,
            phone=phone,
            address=address,
            commune=normalize_commune(data.get("commune")),
            notes=to_safe_string(data.get("notes"), 300),
        )

    data = pickup if isinstance(pickup, Mapping) else {}
    name = to_safe_string(data.get("name"), 120)
    phone = to_safe_string(data.get("phone"), 40)
    if not name or not phone:
        raise OrderValidationError("Faltan datos de retiro (name/phone)")
    return PickupDetail(
        name=name,
        phone=phone,
        rut=to_safe_string(data.get("rut"), 30),
    )


def validate_submission(
    items: Any,
    shipping_option: Any = None,
    delivery: Any = None,
    pickup: Any = None,
) -> ValidatedOrder:
    """
    Validate a full order submission.

    Items are checked before the contact block, so a bad cart is reported
    first.
    """
    option = normalize_shipping_option(shipping_option)
    line_items = validate_items(items)
    customer_detail = validate_customer_detail(option, delivery=delivery, pickup=pickup)
    return ValidatedOrder(items=tuple(line_items), customer_detail=customer_detail)
