# storefront/domain/services/order_svc.py
import logging
import math
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from storefront.core.config import Settings
from storefront.core.errors import AccessDenied, InsufficientStock, InvalidQuantity, InvalidState, NotFound
from storefront.core.logging import timed
from storefront.domain.models.graph import Interaction
from storefront.domain.models.order import (
    NON_CANCELLABLE,
    Order,
    OrderItemIn,
    OrderLine,
    OrderPage,
    OrderStatus,
    PaymentStatus,
)
from storefront.domain.models.product import Product
from storefront.domain.repositories.order_repo import OrderRepo
from storefront.domain.repositories.product_repo import ProductRepo
from storefront.domain.services.cache_keys import cart_key, product_key
from storefront.domain.services.cache_store import CacheStore
from storefront.domain.services.graph_svc import GraphEngine

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Pricing:
    """Order totals: flat tax rate, free shipping strictly above a threshold."""

    def __init__(self, tax_rate="0.08", free_shipping_threshold="100", flat_shipping="10"):
        self.tax_rate = Decimal(str(tax_rate))
        self.free_shipping_threshold = Decimal(str(free_shipping_threshold))
        self.flat_shipping = Decimal(str(flat_shipping))

    @classmethod
    def from_settings(cls, settings: Settings) -> "Pricing":
        return cls(settings.tax_rate, settings.free_shipping_threshold, settings.flat_shipping)

    def totals(self, lines: Sequence[OrderLine]) -> Tuple[Decimal, Decimal, Decimal, Decimal]:
        subtotal = sum((line.line_total for line in lines), Decimal("0"))
        tax = (subtotal * self.tax_rate).quantize(CENT, rounding=ROUND_HALF_UP)
        shipping = Decimal("0") if subtotal > self.free_shipping_threshold else self.flat_shipping
        return subtotal, tax, shipping, subtotal + tax + shipping


class OrderService:
    """
    Turns a list of (product, quantity) lines into a persisted order.

    Stock is the only authoritative state touched besides the order itself, and it is
    changed with conditional single-document updates. Graph edges and the cart entry
    are side effects that never fail an order.
    """

    def __init__(
        self,
        products: ProductRepo,
        orders: OrderRepo,
        cache: CacheStore,
        graph: GraphEngine,
        pricing: Optional[Pricing] = None,
    ):
        self.products = products
        self.orders = orders
        self.cache = cache
        self.graph = graph
        self.pricing = pricing or Pricing()

    # ---------- placement ----------
    async def place_order(
        self,
        user_id: str,
        items: Sequence[OrderItemIn],
        shipping_address: Optional[Dict[str, Any]] = None,
        payment_method: Optional[str] = None,
    ) -> Order:
        if not items:
            raise InvalidQuantity("Order must contain at least one item")

        with timed(logger, "place_order", user=user_id, lines=len(items)) as log:
            # 1) validate every line before touching anything
            live = await self.products.find_many({i.product_id for i in items}, active_only=True)
            for item in items:
                product = live.get(item.product_id)
                if product is None:
                    raise NotFound(f"Product {item.product_id} not found", product_id=item.product_id)
                if item.quantity > product.stock:
                    raise InsufficientStock(item.product_id, item.quantity, product.stock)

            # 2) take stock line by line, snapshotting the product as sold
            sold = await self._reserve(user_id, items)
            lines = [line for line, _ in sold]

            # 3) price
            subtotal, tax, shipping_cost, total = self.pricing.totals(lines)

            # 4) persist
            now = _utcnow()
            order = Order(
                order_id=uuid.uuid4().hex,
                user_id=user_id,
                items=lines,
                shipping_address=dict(shipping_address or {}),
                payment_method=payment_method,
                subtotal=subtotal,
                tax=tax,
                shipping_cost=shipping_cost,
                total=total,
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            try:
                await self.orders.create(order)
            except Exception:
                logger.error("place_order persist failed user=%s, restoring stock", user_id)
                await self._restore([(line.product_id, line.quantity) for line in lines])
                raise

            # 5) the cart has been turned into an order
            if not await self.cache.delete(cart_key(user_id)):
                logger.warning("place_order cart clear failed user=%s", user_id)

            # 6) purchases exist only once the order does
            for _, product in sold:
                await self.graph.project_product(product)
                await self.graph.record_interaction(user_id, product.product_id, Interaction.PURCHASED)

            log.update(order=order.order_id, total=order.total)
            return order

    async def _reserve(self, user_id: str, items: Sequence[OrderItemIn]) -> List[Tuple[OrderLine, Product]]:
        taken: List[Tuple[str, int]] = []
        sold: List[Tuple[OrderLine, Product]] = []
        for item in items:
            try:
                product = await self.products.decrement_stock(item.product_id, item.quantity)
            except (InsufficientStock, NotFound):
                # lost a race against another order: undo what this one took
                logger.warning(
                    "place_order stock race user=%s product=%s qty=%s, rolling back %s line(s)",
                    user_id, item.product_id, item.quantity, len(taken),
                )
                await self._restore(taken)
                raise
            taken.append((item.product_id, item.quantity))
            await self._forget_product(item.product_id)
            line = OrderLine(
                product_id=product.product_id,
                quantity=item.quantity,
                unit_price=product.price,
                name=product.name,
                image_url=product.image_url or "",
            )
            sold.append((line, product))
        return sold

    async def _restore(self, taken: Sequence[Tuple[str, int]]) -> None:
        for product_id, quantity in reversed(taken):
            if not await self.products.increment_stock(product_id, quantity):
                logger.warning("stock restore skipped product=%s qty=%s (product gone)", product_id, quantity)
            await self._forget_product(product_id)

    async def _forget_product(self, product_id: str) -> None:
        # cached product views carry stock
        if not await self.cache.delete(product_key(product_id)):
            logger.debug("product cache invalidation skipped product=%s", product_id)

    # ---------- transitions ----------
    async def _owned(self, order_id: str, user_id: Optional[str]) -> Order:
        order = await self.orders.find_by_id(order_id)
        if order is None:
            raise NotFound("Order not found", order_id=order_id)
        if user_id is not None and order.user_id != user_id:
            raise AccessDenied("Not authorized to access this order", order_id=order_id)
        return order

    def _refuse_cancel(self, order: Order) -> None:
        if order.status in NON_CANCELLABLE:
            raise InvalidState(
                f"Cannot cancel an order that is {order.status.value}",
                order_id=order.order_id,
                status=order.status.value,
            )

    async def cancel(self, order_id: str, reason: Optional[str] = None, user_id: Optional[str] = None) -> Order:
        order = await self._owned(order_id, user_id)
        if order.status is OrderStatus.CANCELLED:
            logger.info("cancel no-op order=%s already cancelled", order_id)
            return order
        self._refuse_cancel(order)

        # the status flip is the guard: only the request that wins it restores stock
        now = _utcnow()
        cancelled = await self.orders.update_unless_status(
            order_id,
            NON_CANCELLABLE | {OrderStatus.CANCELLED},
            {
                "status": OrderStatus.CANCELLED,
                "cancellation_reason": reason,
                "cancelled_at": now,
                "updated_at": now,
            },
        )
        if cancelled is None:
            current = await self._owned(order_id, user_id)
            if current.status is OrderStatus.CANCELLED:
                logger.info("cancel no-op order=%s cancelled concurrently", order_id)
                return current
            self._refuse_cancel(current)
            raise InvalidState("Order changed during cancellation", order_id=order_id, status=current.status.value)

        await self._restore([(line.product_id, line.quantity) for line in cancelled.items])
        logger.info("cancel done order=%s lines=%s", order_id, len(cancelled.items))
        return cancelled

    async def update_status(
        self,
        order_id: str,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
        tracking_number: Optional[str] = None,
    ) -> Order:
        """Operator transition; no state-machine check, timestamps follow the target status."""
        order = await self._owned(order_id, None)
        now = _utcnow()
        changes: Dict[str, Any] = {"updated_at": now}
        if status is not None:
            changes["status"] = OrderStatus(status)
            if changes["status"] is OrderStatus.DELIVERED:
                changes["delivered_at"] = now
            elif changes["status"] is OrderStatus.CANCELLED:
                changes["cancelled_at"] = now
        if payment_status is not None:
            changes["payment_status"] = PaymentStatus(payment_status)
        if tracking_number is not None:
            changes["tracking_number"] = tracking_number

        updated = order.model_copy(update=changes)
        await self.orders.update(updated)
        logger.info(
            "update_status order=%s status=%s payment=%s",
            order_id, updated.status.value, updated.payment_status.value,
        )
        return updated

    # ---------- reads ----------
    async def get_order(self, order_id: str, user_id: Optional[str] = None) -> Order:
        return await self._owned(order_id, user_id)

    async def list_orders(self, user_id: str, page: int = 1, limit: int = 10) -> OrderPage:
        page, limit = max(page, 1), max(limit, 1)
        items = await self.orders.find_by_user(user_id, skip=(page - 1) * limit, limit=limit)
        total = await self.orders.count_by_user(user_id)
        return _page(items, page, limit, total)

    async def list_all_orders(
        self,
        page: int = 1,
        limit: int = 20,
        status: Optional[OrderStatus] = None,
        payment_status: Optional[PaymentStatus] = None,
    ) -> OrderPage:
        page, limit = max(page, 1), max(limit, 1)
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = OrderStatus(status).value
        if payment_status is not None:
            query["payment_status"] = PaymentStatus(payment_status).value
        items = await self.orders.find_all(query, skip=(page - 1) * limit, limit=limit)
        total = await self.orders.count_all(query)
        return _page(items, page, limit, total)


def _page(items: List[Order], page: int, limit: int, total: int) -> OrderPage:
    return OrderPage(
        items=items,
        count=len(items),
        page=page,
        limit=limit,
        total=total,
        pages=math.ceil(total / limit) if total else 0,
    )
