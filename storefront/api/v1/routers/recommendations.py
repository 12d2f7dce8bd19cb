# storefront/api/v1/routers/recommendations.py
import logging
import time

from fastapi import APIRouter, Depends, Query

from storefront.api.deps import ServicesDep, rate_limit
from storefront.api.v1.schemas.reco import CategoryAffinityOut, SimilarUserOut, SimilarUsersOut
from storefront.domain.models.graph import RecoResult

logger = logging.getLogger(__name__)

router = APIRouter(tags=["recommendations"], dependencies=[Depends(rate_limit)])


@router.get("/products/{product_id}/recommendations", response_model=RecoResult)
async def product_recommendations(
    product_id: str,
    services: ServicesDep,
    limit: int = Query(5, ge=1, le=50),
):
    """
    Products linked by SIMILAR_TO in the interaction graph.
    Falls back to the best rated products of the same category when the graph has nothing.
    """
    start_time = time.perf_counter()
    res = await services.recommendations.for_product(product_id, limit)
    logger.info(
        "Response: product_recommendations product_id=%s source=%s count=%s elapsed_time=%.4fs",
        product_id, res.source, res.count, time.perf_counter() - start_time,
    )
    return res


@router.get("/users/{user_id}/recommendations", response_model=RecoResult)
async def user_recommendations(
    user_id: str,
    services: ServicesDep,
    limit: int = Query(10, ge=1, le=50),
):
    return await services.recommendations.for_user(user_id, limit)


@router.get("/recommendations/trending", response_model=RecoResult)
async def trending_products(services: ServicesDep, limit: int = Query(10, ge=1, le=50)):
    return await services.recommendations.trending(limit)


@router.get("/users/{user_id}/similar-users", response_model=SimilarUsersOut)
async def similar_users(
    user_id: str,
    services: ServicesDep,
    limit: int = Query(10, ge=1, le=50),
):
    rows = await services.recommendations.similar_users(user_id, limit)
    items = [
        SimilarUserOut(user_id=r.user.id, name=r.user.name, common_products=r.common_products)
        for r in rows
    ]
    return SimilarUsersOut(user_id=user_id, items=items, count=len(items))


@router.get("/categories/{category}/recommendations", response_model=CategoryAffinityOut)
async def category_recommendations(
    category: str,
    services: ServicesDep,
    limit: int = Query(5, ge=1, le=50),
):
    rows = await services.recommendations.category_affinity(category, limit)
    return CategoryAffinityOut(
        category=category,
        related=rows,
        count=len(rows),
    )
