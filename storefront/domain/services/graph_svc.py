# storefront/domain/services/graph_svc.py
import logging
import time
from typing import Awaitable, Callable, List, Optional, TypeVar

from storefront.domain.models.graph import (
    CategoryAffinity,
    GraphProduct,
    GraphUser,
    Interaction,
    ScoredProduct,
    SimilarUser,
    TrendingProduct,
)
from storefront.domain.models.product import Product, UserRef
from storefront.domain.repositories.graph_repo import GraphRepo
from storefront.domain.services import ranking
from storefront.utils.best_effort import Outcome, best_effort

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TRENDING_WINDOW_MS = 7 * 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


class GraphEngine:
    """
    Interaction graph: a lagging projection of products and users plus append-only
    interaction edges, queried for recommendations.

    Nothing here is allowed to fail a caller. Every repo call runs under best_effort()
    with `timeout_s`; writes report a failed Outcome, queries return [].
    A missing repo (graph not configured) behaves like an unreachable one.
    """

    def __init__(
        self,
        repo: Optional[GraphRepo],
        timeout_s: Optional[float] = 2.0,
        clock_ms: Callable[[], int] = now_ms,
    ):
        self.repo = repo
        self.timeout_s = timeout_s
        self.clock_ms = clock_ms

    @property
    def available(self) -> bool:
        return self.repo is not None

    async def _write(self, op: str, make_call: Callable[[], Awaitable[T]]) -> Outcome[T]:
        if self.repo is None:
            logger.debug("graph skipped op=%s (not configured)", op)
            return Outcome(ok=False, error="graph not configured")
        return await best_effort(make_call(), op=op, timeout=self.timeout_s)

    async def _query(self, op: str, make_call: Callable[[], Awaitable[List[T]]]) -> List[T]:
        if self.repo is None:
            return []
        t0 = time.perf_counter()
        out = await best_effort(make_call(), op=op, default=[], timeout=self.timeout_s)
        rows = out.value or []
        logger.debug("graph %s ok=%s rows=%s time=%.3fs", op, out.ok, len(rows), time.perf_counter() - t0)
        return rows

    # ---------- projections ----------
    async def project_product(self, product: Product) -> Outcome[bool]:
        return await self._write(
            "graph.project_product",
            lambda: self.repo.merge_product(product.graph_projection()),
        )

    async def project_user(self, user: UserRef) -> Outcome[bool]:
        return await self._write(
            "graph.project_user",
            lambda: self.repo.merge_user(user.graph_projection()),
        )

    async def delete_product(self, product_id: str) -> Outcome[int]:
        return await self._write("graph.delete_product", lambda: self.repo.delete_product(product_id))

    async def delete_user(self, user_id: str) -> Outcome[int]:
        return await self._write("graph.delete_user", lambda: self.repo.delete_user(user_id))

    # ---------- edges ----------
    async def link_similar(self, product_id_1: str, product_id_2: str, weight: float = 1) -> Outcome[bool]:
        return await self._write(
            "graph.link_similar",
            lambda: self.repo.create_similarity(product_id_1, product_id_2, weight),
        )

    async def record_interaction(
        self,
        user_id: str,
        product_id: str,
        kind: Interaction,
        timestamp_ms: Optional[int] = None,
        weight: float = 1,
    ) -> Outcome[bool]:
        ts = self.clock_ms() if timestamp_ms is None else timestamp_ms
        out = await self._write(
            "graph.record_interaction",
            lambda: self.repo.create_interaction(user_id, product_id, Interaction(kind), ts, weight),
        )
        if out.ok and not out.value:
            # MATCH found no product node: the projection is lagging
            logger.info(
                "graph interaction dropped kind=%s user=%s product=%s (product node missing)",
                Interaction(kind).value, user_id, product_id,
            )
        return out

    # ---------- queries ----------
    async def similar_products(self, product_id: str, limit: int = 5) -> List[GraphProduct]:
        async def call() -> List[GraphProduct]:
            rows = await self.repo.similar_to(product_id, cap=limit)
            products = [GraphProduct.from_node(r["product"]) for r in rows]
            return ranking.rank_by_rating((p for p in products if p.id != product_id), limit)

        return await self._query("graph.similar_products", call)

    async def collaborative(self, user_id: str, limit: int = 10) -> List[ScoredProduct]:
        async def call() -> List[ScoredProduct]:
            rows = await self.repo.collaborative_candidates(user_id, cap=limit)
            scored = [
                ScoredProduct(product=GraphProduct.from_node(r["product"]), score=int(r["paths"]))
                for r in rows
            ]
            return ranking.rank_scored(scored, limit)

        return await self._query("graph.collaborative", call)

    async def trending(
        self,
        limit: int = 10,
        window_ms: int = DEFAULT_TRENDING_WINDOW_MS,
        now: Optional[int] = None,
    ) -> List[TrendingProduct]:
        cutoff = (self.clock_ms() if now is None else now) - window_ms

        async def call() -> List[TrendingProduct]:
            rows = await self.repo.interaction_counts(cutoff, cap=limit)
            counted = [
                TrendingProduct(product=GraphProduct.from_node(r["product"]), interaction_count=int(r["interactions"]))
                for r in rows
            ]
            return ranking.rank_trending(counted, limit)

        return await self._query("graph.trending", call)

    async def similar_users(self, user_id: str, limit: int = 10) -> List[SimilarUser]:
        async def call() -> List[SimilarUser]:
            rows = await self.repo.shared_product_counts(user_id, cap=limit)
            users = [
                SimilarUser(user=GraphUser.model_validate(r["user"]), common_products=int(r["common"]))
                for r in rows
                if r["user"].get("id") != user_id
            ]
            return ranking.rank_users(users, limit)

        return await self._query("graph.similar_users", call)

    async def category_affinity(self, category: str, limit: int = 5) -> List[CategoryAffinity]:
        async def call() -> List[CategoryAffinity]:
            rows = await self.repo.category_links(category, cap=limit)
            links = [
                CategoryAffinity(category=r["category"], frequency=int(r["frequency"]))
                for r in rows
                if r.get("category") and r["category"] != category
            ]
            return ranking.rank_categories(links, limit)

        return await self._query("graph.category_affinity", call)
