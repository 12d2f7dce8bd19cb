# storefront/domain/repositories/product_repo.py

from __future__ import annotations
from typing import Dict, Iterable, List, Optional
from datetime import datetime, timezone
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument
from storefront.core.errors import InsufficientStock, NotFound
from storefront.domain.models.product import Product

_PROJECTION = {"_id": 0}


class ProductRepo:
    """
    Authoritative product records backed by the 'products' collection.
    Stock never goes negative: every decrement is a single conditional update.
    """

    def __init__(self, db: AsyncIOMotorDatabase, collection_name: str = "products"):
        self.col = db[collection_name]

    async def find_by_id(self, product_id: str) -> Optional[Product]:
        doc = await self.col.find_one({"product_id": product_id}, _PROJECTION)
        return Product.model_validate(doc) if doc else None

    async def find_many(self, ids: Iterable[str], active_only: bool = True) -> Dict[str, Product]:
        """Batch fetch keyed by product_id. Missing ids are simply absent from the result."""
        query: dict = {"product_id": {"$in": list(ids)}}
        if active_only:
            query["is_active"] = True
        cursor = self.col.find(query, _PROJECTION)
        return {doc["product_id"]: Product.model_validate(doc) async for doc in cursor}

    async def find_by_category(
        self,
        category: str,
        *,
        exclude_id: Optional[str] = None,
        limit: int = 5,
    ) -> List[Product]:
        """Active products of a category, best rated first."""
        query: dict = {"category": category, "is_active": True}
        if exclude_id:
            query["product_id"] = {"$ne": exclude_id}
        cursor = self.col.find(query, _PROJECTION).sort([("rating", -1), ("product_id", 1)]).limit(limit)
        return [Product.model_validate(doc) async for doc in cursor]

    # ----- Stock ------------------------------------------------------------

    async def decrement_stock(self, product_id: str, quantity: int) -> Product:
        """
        Atomically take `quantity` units. Fails with InsufficientStock when the
        current stock is lower (e.g. a concurrent order took the last units).
        """
        doc = await self.col.find_one_and_update(
            {"product_id": product_id, "stock": {"$gte": quantity}},
            {"$inc": {"stock": -quantity}, "$set": {"updated_at": datetime.now(timezone.utc)}},
            projection=_PROJECTION,
            return_document=ReturnDocument.AFTER,
        )
        if doc:
            return Product.model_validate(doc)

        current = await self.find_by_id(product_id)
        if current is None:
            raise NotFound(f"Product {product_id} not found", product_id=product_id)
        raise InsufficientStock(product_id, quantity, current.stock)

    async def increment_stock(self, product_id: str, quantity: int) -> bool:
        """Give units back. Returns False if the product no longer exists."""
        res = await self.col.update_one(
            {"product_id": product_id},
            {"$inc": {"stock": quantity}, "$set": {"updated_at": datetime.now(timezone.utc)}},
            upsert=False,
        )
        return res.matched_count == 1
