# api/v1/schemas/reco.py
from typing import List

from pydantic import BaseModel

from storefront.domain.models.graph import CategoryAffinity


class SimilarUserOut(BaseModel):
    user_id: str
    name: str | None = None
    common_products: int


class SimilarUsersOut(BaseModel):
    user_id: str
    items: List[SimilarUserOut]
    count: int


class CategoryAffinityOut(BaseModel):
    category: str
    related: List[CategoryAffinity]
    count: int
