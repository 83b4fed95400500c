"""
Admin HTML views over the order projections.

Rendered with Jinja2 (autoescaping on); data comes from the same
``OrderQueries`` the JSON endpoints use.
"""
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from ..core.queries import OrderQueries
from .dependencies import get_queries, require_admin

DISPLAY_TIMEZONE = ZoneInfo("America/Santiago")

templates_dir = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(templates_dir))

views_router = APIRouter(tags=["admin views"], dependencies=[Depends(require_admin)])


def format_clp(amount: float) -> str:
    """Format an amount with Chilean thousands separators (12.345)."""
    return f"{round(amount or 0):,}".replace(",", ".")


def format_cl_datetime(value: Optional[str]) -> str:
    """Render an ISO timestamp in Santiago local time."""
    if not value:
        return "-"
    moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
    return moment.astimezone(DISPLAY_TIMEZONE).strftime("%d-%m-%Y, %H:%M:%S")


def build_rows(views: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Flatten order projections into table rows."""
    rows = []
    for view in views:
        detail = view["detail"]
        items = view.get("items") or []
        rows.append(
            {
                "id": view["id"],
                "status": view.get("status") or "-",
                "shipping_option": view.get("shippingOption") or "-",
                "customer": detail["name"] or "-",
                "phone": detail["phone"] or "-",
                "detail": detail,
                "first_item": items[0]["title"] if items else "-",
                "total": format_clp(view["total"]),
                "created_at": format_cl_datetime(view.get("createdAt")),
                "updated_at": format_cl_datetime(view.get("updatedAt")),
            }
        )
    return rows


def _render(request: Request, title: str, header_color: str, views: List[Dict[str, Any]]) -> HTMLResponse:
    return templates.TemplateResponse(
        request,
        "orders_table.html",
        {
            "title": title,
            "header_color": header_color,
            "rows": build_rows(views),
        },
    )


@views_router.get("/orders/view", response_class=HTMLResponse)
async def orders_view(request: Request, queries: OrderQueries = Depends(get_queries)):
    """Render every order, newest first."""
    views = await queries.list_order_views()
    return _render(request, "Órdenes (últimas primero)", "#93c5fd", views)


@views_router.get("/payments/view", response_class=HTMLResponse)
async def payments_view(request: Request, queries: OrderQueries = Depends(get_queries)):
    """Render approved payments, most recently updated first."""
    views = await queries.list_approved_views()
    return _render(request, "Pagos aprobados", "#86efac", views)
