"""
Order storage.

``OrderStore`` is the seam a durable backend would plug into. The in-memory
implementation keeps records for the lifetime of the process and serializes
read-modify-write per order id, so two notifications for the same order can
never interleave their read and write phases.
"""
from __future__ import annotations

import asyncio
from typing import Callable, Dict, List, Optional, Protocol

import structlog

from .models import Order

logger = structlog.get_logger(__name__)


class DuplicateOrderError(Exception):
    """Raised when an order id is stored twice."""

    pass


class OrderStore(Protocol):
    """Interface for order storage."""

    async def get(self, order_id: str) -> Optional[Order]:
        """Return the order or None."""
        ...

    async def put(self, order: Order) -> None:
        """Store a new order. Ids are never reused."""
        ...

    async def list_all(self) -> List[Order]:
        """Return every order in insertion order."""
        ...

    async def update(
        self, order_id: str, mutate: Callable[[Order], Order]
    ) -> Optional[Order]:
        """
        Atomically replace an order with ``mutate(current)``.

        Returns the new record, or None when the id is unknown.
        """
        ...


class InMemoryOrderStore:
    """Process-lifetime order map with per-order locks."""

    def __init__(self) -> None:
        self._orders: Dict[str, Order] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._orders)

    def _lock_for(self, order_id: str) -> asyncio.Lock:
        lock = self._locks.get(order_id)
        if lock is None:
            lock = self._locks[order_id] = asyncio.Lock()
        return lock

    async def get(self, order_id: str) -> Optional[Order]:
        return self._orders.get(order_id)

    async def put(self, order: Order) -> None:
        if order.id in self._orders:
            raise DuplicateOrderError(f"Order {order.id} already exists")
        self._orders[order.id] = order
        logger.debug("order_stored", order_id=order.id, status=order.status)

    async def list_all(self) -> List[Order]:
        return list(self._orders.values())

    async def update(
        self, order_id: str, mutate: Callable[[Order], Order]
    ) -> Optional[Order]:
        if order_id not in self._orders:
            return None

        async with self._lock_for(order_id):
            current = self._orders[order_id]
            updated = mutate(current)
            if updated.id != current.id:
                raise ValueError("Order id is immutable")
            self._orders[order_id] = updated
            return updated
