# storefront/domain/repositories/order_repo.py

from __future__ import annotations
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional
from bson.decimal128 import Decimal128
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from storefront.domain.models.order import Order, OrderStatus

_PROJECTION = {"_id": 0}


def _to_bson(value: Any) -> Any:
    """Money as Decimal128 and enums as their values, recursively."""
    if isinstance(value, Decimal):
        return Decimal128(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _to_bson(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_to_bson(v) for v in value]
    return value


def to_document(order: Order) -> dict:
    return _to_bson(order.model_dump(mode="python"))


class OrderRepo:
    """
    Authoritative orders backed by the 'orders' collection.
    One order is one document, so an insert is never seen half-written.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "orders"):
        self.col = db[collection_name]

    async def create(self, order: Order) -> Order:
        await self.col.insert_one(to_document(order))
        return order

    async def find_by_id(self, order_id: str) -> Optional[Order]:
        doc = await self.col.find_one({"order_id": order_id}, _PROJECTION)
        return Order.model_validate(doc) if doc else None

    async def update(self, order: Order) -> Order:
        await self.col.replace_one({"order_id": order.order_id}, to_document(order))
        return order

    async def update_unless_status(
        self,
        order_id: str,
        blocked: Iterable[OrderStatus],
        changes: Dict[str, Any],
    ) -> Optional[Order]:
        """
        Apply `changes` in one conditional write, only while the order is not in a
        `blocked` status. Returns the updated order, or None when the condition failed.
        """
        doc = await self.col.find_one_and_update(
            {"order_id": order_id, "status": {"$nin": [OrderStatus(s).value for s in blocked]}},
            {"$set": _to_bson(changes)},
            projection=_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        return Order.model_validate(doc) if doc else None

    async def find_by_user(self, user_id: str, *, skip: int = 0, limit: int = 10) -> List[Order]:
        return await self.find_all({"user_id": user_id}, skip=skip, limit=limit)

    async def count_by_user(self, user_id: str) -> int:
        return await self.count_all({"user_id": user_id})

    async def find_all(self, query: Optional[dict] = None, *, skip: int = 0, limit: int = 20) -> List[Order]:
        cursor = (
            self.col.find(query or {}, _PROJECTION)
            .sort("created_at", DESCENDING)
            .skip(skip)
            .limit(limit)
        )
        return [Order.model_validate(doc) async for doc in cursor]

    async def count_all(self, query: Optional[dict] = None) -> int:
        return await self.col.count_documents(query or {})
