from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel


class Interaction(str, Enum):
    VIEWED = "VIEWED"
    PURCHASED = "PURCHASED"
    SEARCHED = "SEARCHED"


class GraphProduct(BaseModel):
    """Product node as stored in the graph (a lagging projection)."""
    id: str
    name: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    price: Optional[float] = None
    rating: float = 0.0

    @classmethod
    def from_node(cls, props: Dict[str, Any]) -> "GraphProduct":
        data = dict(props)
        if data.get("rating") is None:
            data["rating"] = 0.0
        return cls.model_validate(data)


class GraphUser(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None


class ScoredProduct(BaseModel):
    product: GraphProduct
    score: int


class TrendingProduct(BaseModel):
    product: GraphProduct
    interaction_count: int


class SimilarUser(BaseModel):
    user: GraphUser
    common_products: int


class CategoryAffinity(BaseModel):
    category: str
    frequency: int


class RecoItem(BaseModel):
    product_id: str
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[str] = None
    rating: float = 0.0
    score: Optional[int] = None


class RecoResult(BaseModel):
    source: str
    items: List[RecoItem]
    count: int
    fallback: bool = False

    model_config = {"frozen": True}
