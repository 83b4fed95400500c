"""
Read-only order projections.

Enriches stored orders with display fields (``detail``, ``detailText``,
``total``) for the JSON endpoints and the admin HTML views.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List

from .exceptions import OrderNotFoundError
from .models import ORDER_STATUS_APPROVED, DeliveryDetail, LineItem, Order
from .store import OrderStore
from .validation import normalize_commune


def order_total(items: Iterable[LineItem]) -> float:
    """Sum of unit price times quantity, shipping line included."""
    return sum(item.unit_price * item.quantity for item in items)


def build_detail(order: Order) -> Dict[str, str]:
    """Flatten the customer detail into a fixed-shape dict."""
    detail = order.customer_detail
    if isinstance(detail, DeliveryDetail):
        return {
            "type": "delivery",
            "name": detail.name,
            "phone": detail.phone,
            "address": detail.address,
            "commune": normalize_commune(detail.commune),
            "notes": detail.notes,
            "rut": "",
        }
    return {
        "type": "pickup",
        "name": detail.name,
        "phone": detail.phone,
        "address": "",
        "commune": "",
        "notes": "",
        "rut": detail.rut,
    }


def build_detail_text(order: Order) -> str:
    """One-line human description of how the order is handed over."""
    detail = build_detail(order)
    if detail["type"] == "delivery":
        parts = [part for part in (detail["address"], detail["commune"]) if part]
        base = ", ".join(parts) if parts else "-"
        if detail["notes"]:
            return f"Delivery: {base}. Notas: {detail['notes']}"
        return f"Delivery: {base}"

    if detail["rut"]:
        return f"Retiro en tienda. RUT: {detail['rut']}"
    return "Retiro en tienda."


def project_order(order: Order) -> Dict[str, Any]:
    """Serialize an order with its derived display fields."""
    view = order.model_dump(mode="json", by_alias=True)
    view["detail"] = build_detail(order)
    view["detailText"] = build_detail_text(order)
    view["total"] = order_total(order.items)
    return view


def _last_touched(order: Order) -> datetime:
    return order.updated_at or order.created_at


class OrderQueries:
    """Read side over an ``OrderStore``."""

    def __init__(self, store: OrderStore):
        self.store = store

    async def get_order(self, order_id: str) -> Order:
        """
        Fetch one order.

        Raises:
            OrderNotFoundError: If the id is unknown
        """
        order = await self.store.get(order_id)
        if order is None:
            raise OrderNotFoundError("Orden no encontrada")
        return order

    async def list_orders(self) -> List[Order]:
        """All orders, newest first; ties keep insertion order."""
        orders = await self.store.list_all()
        return sorted(orders, key=lambda o: o.created_at, reverse=True)

    async def list_approved(self) -> List[Order]:
        """Approved orders, most recently updated first."""
        orders = await self.store.list_all()
        approved = [o for o in orders if o.status == ORDER_STATUS_APPROVED]
        return sorted(approved, key=_last_touched, reverse=True)

    async def get_order_view(self, order_id: str) -> Dict[str, Any]:
        return project_order(await self.get_order(order_id))

    async def list_order_views(self) -> List[Dict[str, Any]]:
        return [project_order(o) for o in await self.list_orders()]

    async def list_approved_views(self) -> List[Dict[str, Any]]:
        return [project_order(o) for o in await self.list_approved()]
