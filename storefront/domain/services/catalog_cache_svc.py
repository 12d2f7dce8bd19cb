# storefront/domain/services/catalog_cache_svc.py
import logging
from typing import Any, Mapping, Optional

from storefront.core.config import Settings
from storefront.domain.models.product import Product
from storefront.domain.repositories.product_repo import ProductRepo
from storefront.domain.services.cache_keys import (
    listing_key,
    product_key,
    search_key,
    session_key,
    user_key,
)
from storefront.domain.services.cache_store import CacheStore
from storefront.domain.services.graph_svc import GraphEngine

logger = logging.getLogger(__name__)


class CatalogCache:
    """
    Cache-aside views over catalog reads plus short-lived sessions.
    Every entry is a copy of something the authoritative store can rebuild.
    A product loaded from the store on a miss is also projected into the graph.
    """

    def __init__(
        self,
        cache: CacheStore,
        products: ProductRepo,
        settings: Settings,
        graph: Optional[GraphEngine] = None,
    ):
        self.cache = cache
        self.products = products
        self.settings = settings
        self.graph = graph

    # ---------- products ----------
    async def get_product(self, product_id: str) -> Optional[Product]:
        key = product_key(product_id)
        cached = await self.cache.get(key, Product)
        if cached is not None:
            logger.debug("catalog cache_hit key=%s", key)
            return cached

        product = await self.products.find_by_id(product_id)
        if product is not None:
            await self.cache.set(key, product, self.settings.product_cache_ttl)
            if self.graph is not None:
                await self.graph.project_product(product)
        return product

    async def invalidate_product(self, product_id: str) -> bool:
        return await self.cache.delete(product_key(product_id))

    # ---------- users ----------
    async def cache_user(self, user_id: str, data: Mapping[str, Any]) -> bool:
        return await self.cache.set(user_key(user_id), dict(data), self.settings.user_cache_ttl)

    async def get_cached_user(self, user_id: str) -> Optional[dict]:
        return await self.cache.get(user_key(user_id))

    async def invalidate_user(self, user_id: str) -> bool:
        return await self.cache.delete(user_key(user_id))

    # ---------- search / listings ----------
    async def cache_search_results(self, query: str, results: Any) -> bool:
        return await self.cache.set(search_key(query), results, self.settings.search_cache_ttl)

    async def get_cached_search_results(self, query: str) -> Any:
        return await self.cache.get(search_key(query))

    async def cache_listing(self, params: Mapping[str, Any], page: Any) -> bool:
        return await self.cache.set(listing_key(params), page, self.settings.listing_cache_ttl)

    async def get_cached_listing(self, params: Mapping[str, Any]) -> Any:
        return await self.cache.get(listing_key(params))

    # ---------- sessions ----------
    async def set_session(self, session_id: str, data: Mapping[str, Any], ttl_seconds: Optional[int] = None) -> bool:
        ttl = self.settings.session_ttl if ttl_seconds is None else ttl_seconds
        return await self.cache.set(session_key(session_id), dict(data), ttl)

    async def get_session(self, session_id: str) -> Optional[dict]:
        return await self.cache.get(session_key(session_id))

    async def delete_session(self, session_id: str) -> bool:
        return await self.cache.delete(session_key(session_id))
