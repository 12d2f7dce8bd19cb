# storefront/api/v1/routers/orders.py
import logging
import time
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query

from storefront.api.deps import ServicesDep, UserDep, rate_limit, require_operator
from storefront.api.v1.schemas.orders import OrderCancel, OrderCreate, OrderStatusUpdate
from storefront.domain.models.order import Order, OrderPage, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/orders", tags=["orders"], dependencies=[Depends(rate_limit)])


@router.post("", response_model=Order, status_code=201)
async def create_order(body: OrderCreate, user_id: UserDep, services: ServicesDep):
    logger.info("Request: create_order user_id=%s lines=%s", user_id, len(body.items))
    start_time = time.perf_counter()
    order = await services.orders.place_order(
        user_id,
        body.items,
        shipping_address=body.shipping_address,
        payment_method=body.payment_method,
    )
    logger.info(
        "Response: create_order order_id=%s total=%s elapsed_time=%.4fs",
        order.order_id, order.total, time.perf_counter() - start_time,
    )
    return order


@router.get("", response_model=OrderPage)
async def list_my_orders(
    user_id: UserDep,
    services: ServicesDep,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    return await services.orders.list_orders(user_id, page=page, limit=limit)


# declared before /{order_id} so "admin" is not read as an id
@router.get("/admin/all", response_model=OrderPage, dependencies=[Depends(require_operator)])
async def list_all_orders(
    services: ServicesDep,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    status: Optional[OrderStatus] = Query(None),
    payment_status: Optional[PaymentStatus] = Query(None),
):
    return await services.orders.list_all_orders(page=page, limit=limit, status=status, payment_status=payment_status)


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: str, user_id: UserDep, services: ServicesDep):
    return await services.orders.get_order(order_id, user_id=user_id)


@router.put("/{order_id}/status", response_model=Order, dependencies=[Depends(require_operator)])
async def update_order_status(order_id: str, body: OrderStatusUpdate, services: ServicesDep):
    logger.info("Request: update_order_status order_id=%s status=%s", order_id, body.status)
    return await services.orders.update_status(
        order_id,
        status=body.status,
        payment_status=body.payment_status,
        tracking_number=body.tracking_number,
    )


@router.put("/{order_id}/cancel", response_model=Order)
async def cancel_order(
    order_id: str,
    user_id: UserDep,
    services: ServicesDep,
    body: Optional[OrderCancel] = Body(None),
):
    logger.info("Request: cancel_order order_id=%s user_id=%s", order_id, user_id)
    return await services.orders.cancel(order_id, reason=body.reason if body else None, user_id=user_id)
