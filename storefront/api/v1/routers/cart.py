# storefront/api/v1/routers/cart.py
import logging

from fastapi import APIRouter, Depends

from storefront.api.deps import ServicesDep, UserDep, rate_limit
from storefront.api.v1.schemas.cart import CartCountOut, CartItemIn, CartItemUpdate
from storefront.domain.models.cart import CartView

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/cart", tags=["cart"], dependencies=[Depends(rate_limit)])


@router.get("", response_model=CartView)
async def get_cart(user_id: UserDep, services: ServicesDep):
    """Stored cart joined with live product data."""
    return await services.carts.get_cart(user_id)


@router.get("/count", response_model=CartCountOut)
async def get_cart_count(user_id: UserDep, services: ServicesDep):
    return CartCountOut(item_count=await services.carts.count(user_id))


@router.post("/items", response_model=CartCountOut)
async def add_to_cart(body: CartItemIn, user_id: UserDep, services: ServicesDep):
    logger.info("Request: add_to_cart user_id=%s product_id=%s qty=%s", user_id, body.product_id, body.quantity)
    count = await services.carts.add_item(user_id, body.product_id, body.quantity)
    return CartCountOut(item_count=count)


@router.put("/items", response_model=CartCountOut)
async def update_cart_item(body: CartItemUpdate, user_id: UserDep, services: ServicesDep):
    logger.info("Request: update_cart_item user_id=%s product_id=%s qty=%s", user_id, body.product_id, body.quantity)
    count = await services.carts.update_item(user_id, body.product_id, body.quantity)
    return CartCountOut(item_count=count)


@router.delete("/items/{product_id}", response_model=CartCountOut)
async def remove_from_cart(product_id: str, user_id: UserDep, services: ServicesDep):
    count = await services.carts.remove_item(user_id, product_id)
    return CartCountOut(item_count=count)


@router.delete("", status_code=204)
async def clear_cart(user_id: UserDep, services: ServicesDep):
    await services.carts.clear_cart(user_id)
