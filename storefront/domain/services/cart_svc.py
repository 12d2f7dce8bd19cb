# storefront/domain/services/cart_svc.py
import logging
from decimal import Decimal
from typing import Optional

from storefront.core.errors import InsufficientStock, InvalidQuantity, NotFound
from storefront.domain.models.cart import Cart, CartLine, CartLineView, CartView
from storefront.domain.models.product import Product
from storefront.domain.repositories.product_repo import ProductRepo
from storefront.domain.services.cache_keys import cart_key
from storefront.domain.services.cache_store import CacheStore

logger = logging.getLogger(__name__)

CART_TTL = 24 * 60 * 60


def _check_quantity(quantity, *, allow_zero: bool) -> int:
    # bool is an int subclass; True is not a quantity
    if not isinstance(quantity, int) or isinstance(quantity, bool):
        raise InvalidQuantity("Quantity must be an integer", quantity=quantity)
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidQuantity(
            "Quantity must be >= 0" if allow_zero else "Quantity must be > 0",
            quantity=quantity,
        )
    return quantity


class CartService:
    """
    Per-user carts kept only in the cache (cart:{user_id}, TTL refreshed on every write).

    The stored cart holds product ids and quantities; prices, names and stock are
    joined from the authoritative product store at read time.
    """

    def __init__(self, cache: CacheStore, products: ProductRepo, ttl_seconds: int = CART_TTL):
        self.cache = cache
        self.products = products
        self.ttl_seconds = ttl_seconds

    async def _load(self, user_id: str) -> Optional[Cart]:
        return await self.cache.get(cart_key(user_id), Cart)

    async def _persist(self, cart: Cart) -> None:
        if not await self.cache.set(cart_key(cart.user_id), cart, self.ttl_seconds):
            logger.warning("cart persist failed user=%s items=%s", cart.user_id, len(cart.items))

    async def _active_product(self, product_id: str) -> Product:
        product = await self.products.find_by_id(product_id)
        if product is None or not product.is_active:
            raise NotFound("Product not found or not available", product_id=product_id)
        return product

    # ---------- read ----------
    async def get_cart(self, user_id: str) -> CartView:
        cart = await self._load(user_id)
        if cart is None or not cart.items:
            return CartView()

        live = await self.products.find_many([i.product_id for i in cart.items], active_only=True)
        lines = []
        for item in cart.items:
            product = live.get(item.product_id)
            if product is None:
                # inactive or deleted since it was added: hidden, stored cart left alone
                continue
            lines.append(
                CartLineView(
                    product_id=product.product_id,
                    name=product.name,
                    price=product.price,
                    image_url=product.image_url or "",
                    quantity=item.quantity,
                    stock=product.stock,
                    subtotal=product.price * item.quantity,
                )
            )
        return CartView(
            items=lines,
            subtotal=sum((line.subtotal for line in lines), Decimal("0")),
            item_count=sum(line.quantity for line in lines),
        )

    async def count(self, user_id: str) -> int:
        cart = await self._load(user_id)
        return cart.item_count if cart else 0

    # ---------- mutations ----------
    async def add_item(self, user_id: str, product_id: str, quantity: int = 1) -> int:
        """Merge `quantity` into the cart. Returns the new item count."""
        _check_quantity(quantity, allow_zero=False)
        product = await self._active_product(product_id)

        cart = await self._load(user_id) or Cart(user_id=user_id)
        existing = cart.line(product_id)
        wanted = quantity + (existing.quantity if existing else 0)
        if wanted > product.stock:
            raise InsufficientStock(product_id, wanted, product.stock)

        if existing:
            existing.quantity = wanted
        else:
            cart.items.append(CartLine(product_id=product_id, quantity=quantity))

        await self._persist(cart)
        logger.info("cart add user=%s product=%s qty=%s line_qty=%s", user_id, product_id, quantity, wanted)
        return cart.item_count

    async def update_item(self, user_id: str, product_id: str, quantity: int) -> int:
        """Set the absolute quantity of an existing line; 0 removes it."""
        _check_quantity(quantity, allow_zero=True)
        product = await self._active_product(product_id)

        cart = await self._load(user_id)
        if cart is None:
            raise NotFound("Cart not found", user_id=user_id)
        line = cart.line(product_id)
        if line is None:
            raise NotFound("Item not found in cart", user_id=user_id, product_id=product_id)

        if quantity == 0:
            cart.items = [i for i in cart.items if i.product_id != product_id]
        else:
            if quantity > product.stock:
                raise InsufficientStock(product_id, quantity, product.stock)
            line.quantity = quantity

        await self._persist(cart)
        logger.info("cart update user=%s product=%s qty=%s", user_id, product_id, quantity)
        return cart.item_count

    async def remove_item(self, user_id: str, product_id: str) -> int:
        cart = await self._load(user_id)
        if cart is None:
            return 0
        before = len(cart.items)
        cart.items = [i for i in cart.items if i.product_id != product_id]
        if len(cart.items) != before:
            await self._persist(cart)
            logger.info("cart remove user=%s product=%s", user_id, product_id)
        return cart.item_count

    async def clear_cart(self, user_id: str) -> None:
        if not await self.cache.delete(cart_key(user_id)):
            logger.warning("cart clear failed user=%s", user_id)
