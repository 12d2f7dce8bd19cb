from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from storefront.domain.models.product import Money


class OrderStatus(str, Enum):
    PENDING = "pending"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


# cancellation is refused from these states
NON_CANCELLABLE = {OrderStatus.SHIPPED, OrderStatus.DELIVERED}


class OrderItemIn(BaseModel):
    product_id: str
    quantity: int = Field(gt=0)


class OrderLine(BaseModel):
    """Snapshot of a product at purchase time."""
    product_id: str
    quantity: int
    unit_price: Money
    name: str
    image_url: str = ""

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


class Order(BaseModel):
    order_id: str
    user_id: str
    items: List[OrderLine]
    shipping_address: Dict[str, Any] = {}
    payment_method: Optional[str] = None
    subtotal: Money
    tax: Money
    shipping_cost: Money
    total: Money
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    tracking_number: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class OrderPage(BaseModel):
    items: List[Order]
    count: int
    page: int
    limit: int
    total: int
    pages: int
