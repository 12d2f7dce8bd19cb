# storefront/domain/services/ranking.py
"""
Deterministic ordering of graph query results.

Cypher hands back aggregated rows; the final order is decided here so that
ties always break the same way. The last tie-break is always the id ascending.
"""
from typing import Callable, Iterable, List, Sequence, TypeVar

from storefront.domain.models.graph import (
    CategoryAffinity,
    GraphProduct,
    ScoredProduct,
    SimilarUser,
    TrendingProduct,
)

T = TypeVar("T")


def top(rows: Iterable[T], key: Callable[[T], tuple], limit: int) -> List[T]:
    if limit <= 0:
        return []
    return sorted(rows, key=key)[:limit]


def _dedupe_products(products: Iterable[GraphProduct]) -> List[GraphProduct]:
    seen: set[str] = set()
    out: List[GraphProduct] = []
    for p in products:
        if p.id not in seen:
            seen.add(p.id)
            out.append(p)
    return out


def rank_by_rating(products: Iterable[GraphProduct], limit: int) -> List[GraphProduct]:
    return top(_dedupe_products(products), lambda p: (-p.rating, p.id), limit)


def rank_scored(rows: Sequence[ScoredProduct], limit: int) -> List[ScoredProduct]:
    return top(rows, lambda r: (-r.score, -r.product.rating, r.product.id), limit)


def rank_trending(rows: Sequence[TrendingProduct], limit: int) -> List[TrendingProduct]:
    return top(rows, lambda r: (-r.interaction_count, -r.product.rating, r.product.id), limit)


def rank_users(rows: Sequence[SimilarUser], limit: int) -> List[SimilarUser]:
    return top(rows, lambda r: (-r.common_products, r.user.id), limit)


def rank_categories(rows: Sequence[CategoryAffinity], limit: int) -> List[CategoryAffinity]:
    return top(rows, lambda r: (-r.frequency, r.category), limit)
