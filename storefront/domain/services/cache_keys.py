# storefront/domain/services/cache_keys.py
"""
Key namespace for every entity kept in Redis.

Each entity kind owns one fixed prefix, so keys of different kinds cannot collide.
"""
import base64
import hashlib
import json
from typing import Any, Mapping

PREFIX_SESSION = "session"
PREFIX_CART = "cart"
PREFIX_PRODUCT = "product"
PREFIX_USER = "user"
PREFIX_SEARCH = "search"
PREFIX_LISTING = "products"
PREFIX_RATE_LIMIT = "ratelimit"


def session_key(session_id: str) -> str:
    return f"{PREFIX_SESSION}:{session_id}"


def cart_key(user_id: str) -> str:
    return f"{PREFIX_CART}:{user_id}"


def product_key(product_id: str) -> str:
    return f"{PREFIX_PRODUCT}:{product_id}"


def user_key(user_id: str) -> str:
    return f"{PREFIX_USER}:{user_id}"


def search_key(query: str) -> str:
    encoded = base64.b64encode(query.encode("utf-8")).decode("ascii")
    return f"{PREFIX_SEARCH}:{encoded}"


def listing_key(params: Mapping[str, Any]) -> str:
    """
    Key for one page of a filtered/sorted product listing.
    The whole filter/sort/pagination state goes into the hash, so cardinality grows
    with the variety of query parameters and entries are only bounded by TTL.
    """
    raw = json.dumps(dict(params), sort_keys=True, separators=(",", ":"), default=str)
    return f"{PREFIX_LISTING}:{hashlib.md5(raw.encode()).hexdigest()}"


def rate_limit_key(identity: str, window_id: int) -> str:
    return f"{PREFIX_RATE_LIMIT}:{identity}:{window_id}"
