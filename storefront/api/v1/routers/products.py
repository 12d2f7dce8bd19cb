# storefront/api/v1/routers/products.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from storefront.api.deps import OptionalUserDep, ServicesDep, rate_limit, require_operator
from storefront.core.errors import NotFound
from storefront.domain.models.graph import Interaction
from storefront.domain.models.product import Product

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"], dependencies=[Depends(rate_limit)])


@router.get("/{product_id}", response_model=Product)
async def get_product(product_id: str, user_id: OptionalUserDep, services: ServicesDep):
    """
    Product detail through the product cache.
    A known caller gets a VIEWED edge in the interaction graph (best effort).
    """
    product = await services.catalog.get_product(product_id)
    if product is None or not product.is_active:
        raise NotFound("Product not found", product_id=product_id)
    if user_id:
        await services.graph.record_interaction(user_id, product_id, Interaction.VIEWED)
    return product


@router.put("/{product_id}/similar/{other_id}", dependencies=[Depends(require_operator)])
async def link_similar_products(product_id: str, other_id: str, services: ServicesDep, weight: float = 1):
    """Operator curation of a SIMILAR_TO edge; both products are projected first."""
    if product_id == other_id:
        raise HTTPException(status_code=422, detail="A product cannot be similar to itself")
    live = await services.catalog.products.find_many({product_id, other_id}, active_only=True)
    for pid in (product_id, other_id):
        if pid not in live:
            raise NotFound("Product not found", product_id=pid)
    for product in live.values():
        await services.graph.project_product(product)
    out = await services.graph.link_similar(product_id, other_id, weight)
    logger.info("link_similar %s -> %s ok=%s", product_id, other_id, out.ok)
    return {"linked": bool(out.ok and out.value)}
