# api/v1/schemas/cart.py
from pydantic import BaseModel, Field, StrictInt


class CartItemIn(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: StrictInt = 1


class CartItemUpdate(BaseModel):
    product_id: str = Field(min_length=1)
    quantity: StrictInt


class CartCountOut(BaseModel):
    item_count: int
