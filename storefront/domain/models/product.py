from pydantic import BaseModel, BeforeValidator, Field
from typing import Annotated, Optional, List
from datetime import datetime
from decimal import Decimal

from bson.decimal128 import Decimal128


def as_decimal(v):
    """Mongo returns Decimal128 for money fields; floats are routed through str."""
    if isinstance(v, Decimal128):
        return v.to_decimal()
    if isinstance(v, float):
        return Decimal(str(v))
    return v


Money = Annotated[Decimal, BeforeValidator(as_decimal)]


class Product(BaseModel):
    product_id: str
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: Money = Field(ge=0)
    stock: int = Field(default=0, ge=0)
    rating: float = 0.0
    rating_count: int = 0
    image_url: Optional[str] = None
    is_active: bool = True
    tags: List[str] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"frozen": True}  # immutable = safe

    def graph_projection(self) -> dict:
        """Minimal node properties replicated into the interaction graph."""
        return {
            "id": self.product_id,
            "name": self.name,
            "category": self.category,
            "brand": self.brand,
            "price": float(self.price),
            "rating": self.rating,
        }


class UserRef(BaseModel):
    """Identity projection of an authoritative user, used for graph tracking only."""
    user_id: str
    name: Optional[str] = None
    email: Optional[str] = None

    model_config = {"frozen": True}

    def graph_projection(self) -> dict:
        return {"id": self.user_id, "name": self.name, "email": self.email}
