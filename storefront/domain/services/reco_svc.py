# storefront/domain/services/reco_svc.py
import logging
import time
from typing import Iterable, List, Optional

from storefront.domain.models.graph import (
    CategoryAffinity,
    GraphProduct,
    RecoItem,
    RecoResult,
    SimilarUser,
)
from storefront.domain.models.product import Product
from storefront.domain.repositories.product_repo import ProductRepo
from storefront.domain.services.graph_svc import DEFAULT_TRENDING_WINDOW_MS, GraphEngine

logger = logging.getLogger(__name__)


def _from_graph(p: GraphProduct, score: Optional[int] = None) -> RecoItem:
    return RecoItem(
        product_id=p.id,
        name=p.name,
        category=p.category,
        price=None if p.price is None else str(p.price),
        rating=p.rating,
        score=score,
    )


def _from_product(p: Product) -> RecoItem:
    return RecoItem(
        product_id=p.product_id,
        name=p.name,
        category=p.category,
        price=str(p.price),
        rating=p.rating,
    )


def _result(source: str, items: Iterable[RecoItem], fallback: bool = False) -> RecoResult:
    items = list(items)
    return RecoResult(source=source, items=items, count=len(items), fallback=fallback)


class RecommendationService:
    """
    Read side of the recommendation engine.

    Graph results are a lagging projection; product recommendations are checked
    against the authoritative store so inactive or deleted products never surface.
    """

    def __init__(self, graph: GraphEngine, products: ProductRepo, trending_window_ms: int = DEFAULT_TRENDING_WINDOW_MS):
        self.graph = graph
        self.products = products
        self.trending_window_ms = trending_window_ms

    async def for_product(self, product_id: str, limit: int = 5) -> RecoResult:
        t0 = time.perf_counter()
        similar = await self.graph.similar_products(product_id, limit)
        if similar:
            live = await self.products.find_many([p.id for p in similar], active_only=True)
            items = [_from_graph(p) for p in similar if p.id in live]
            if items:
                logger.info("reco product=%s source=graph items=%s time=%.3fs", product_id, len(items), time.perf_counter() - t0)
                return _result("graph", items)

        # graph empty or unreachable: best rated products of the same category
        source = await self.products.find_by_id(product_id)
        if source is None or not source.category:
            logger.info("reco product=%s no graph result and no category to fall back on", product_id)
            return _result("category", [], fallback=True)
        same_category = await self.products.find_by_category(source.category, exclude_id=product_id, limit=limit)
        logger.info(
            "reco product=%s source=category category=%s items=%s time=%.3fs",
            product_id, source.category, len(same_category), time.perf_counter() - t0,
        )
        return _result("category", (_from_product(p) for p in same_category), fallback=True)

    async def for_user(self, user_id: str, limit: int = 10) -> RecoResult:
        scored = await self.graph.collaborative(user_id, limit)
        return _result("collaborative", (_from_graph(s.product, s.score) for s in scored))

    async def trending(self, limit: int = 10) -> RecoResult:
        rows = await self.graph.trending(limit, window_ms=self.trending_window_ms)
        return _result("trending", (_from_graph(r.product, r.interaction_count) for r in rows))

    async def similar_users(self, user_id: str, limit: int = 10) -> List[SimilarUser]:
        return await self.graph.similar_users(user_id, limit)

    async def category_affinity(self, category: str, limit: int = 5) -> List[CategoryAffinity]:
        return await self.graph.category_affinity(category, limit)
