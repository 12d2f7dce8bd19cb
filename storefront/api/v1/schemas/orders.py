# api/v1/schemas/orders.py
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from storefront.domain.models.order import OrderItemIn, OrderStatus, PaymentStatus


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = Field(min_length=1)
    shipping_address: Dict[str, Any] = Field(default_factory=dict)
    payment_method: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[OrderStatus] = None
    payment_status: Optional[PaymentStatus] = None
    tracking_number: Optional[str] = None


class OrderCancel(BaseModel):
    reason: Optional[str] = None
