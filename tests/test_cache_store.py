"""Tests for the cache-aside store and its key namespace."""
import base64
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from fakes import BrokenRedis, make_product
from storefront.core.errors import BackendUnavailable
from storefront.domain.models.product import Product
from storefront.domain.services import cache_keys
from storefront.domain.services.cache_store import CacheStore, LookupStatus
from storefront.domain.services.catalog_cache_svc import CatalogCache


@pytest.mark.asyncio
async def test_set_then_get_round_trips_json(cache: CacheStore):
    value = {"a": 1, "b": [1, 2, {"c": "x"}], "price": Decimal("19.99")}
    assert await cache.set("k", value, 60) is True
    assert await cache.get("k") == {"a": 1, "b": [1, 2, {"c": "x"}], "price": "19.99"}


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(cache: CacheStore, clock):
    await cache.set("k", "v", 60)
    clock.advance(59)
    assert await cache.get("k") == "v"
    clock.advance(1)
    assert await cache.get("k") is None
    assert (await cache.lookup("k")).status is LookupStatus.MISS


@pytest.mark.asyncio
async def test_rewrite_restarts_ttl(cache: CacheStore, clock):
    await cache.set("k", 1, 60)
    clock.advance(50)
    await cache.set("k", 2, 60)
    clock.advance(50)
    assert await cache.get("k") == 2


@pytest.mark.asyncio
async def test_zero_ttl_means_no_expiry(cache: CacheStore, redis, clock):
    await cache.set("k", "forever", 0)
    assert redis.ttl_of("k") is None
    clock.advance(10 ** 7)
    assert await cache.get("k") == "forever"


@pytest.mark.asyncio
async def test_default_ttl_applies_when_omitted(redis):
    store = CacheStore(redis, default_ttl=3600)
    await store.set("k", "v")
    assert redis.ttl_of("k") == 3600


@pytest.mark.asyncio
async def test_negative_ttl_is_rejected(cache: CacheStore):
    with pytest.raises(ValueError):
        await cache.set("k", "v", -1)


@pytest.mark.asyncio
async def test_delete_is_idempotent(cache: CacheStore):
    await cache.set("k", "v", 60)
    assert await cache.delete("k") is True
    assert await cache.delete("k") is True
    assert await cache.exists("k") is False


@pytest.mark.asyncio
async def test_get_validates_into_model(cache: CacheStore):
    product = make_product("p1", price="12.50")
    await cache.set("product:p1", product, 60)
    back = await cache.get("product:p1", Product)
    assert back == product
    assert back.price == Decimal("12.50")


@pytest.mark.asyncio
async def test_get_with_mismatched_model_is_absent(cache: CacheStore):
    await cache.set("product:p1", {"unexpected": True}, 60)
    assert await cache.get("product:p1", Product) is None


@pytest.mark.asyncio
async def test_undecodable_entry_is_a_miss(cache: CacheStore, redis):
    redis.data["k"] = "{not json"
    assert (await cache.lookup("k")).status is LookupStatus.MISS


@pytest.mark.asyncio
async def test_datetimes_are_written_as_iso(cache: CacheStore):
    when = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    await cache.set("k", {"at": when}, 60)
    assert await cache.get("k") == {"at": "2024-01-02T03:04:05+00:00"}


@pytest.mark.asyncio
async def test_unserializable_value_is_not_stored(cache: CacheStore):
    assert await cache.set("k", {"x": object()}, 60) is False
    assert await cache.exists("k") is False


@pytest.mark.asyncio
async def test_increment_counts_from_zero(cache: CacheStore):
    assert await cache.increment("c") == 1
    assert await cache.increment("c") == 2


@pytest.mark.asyncio
async def test_clear_deletes_matching_keys_only(cache: CacheStore):
    await cache.set("product:1", 1, 60)
    await cache.set("product:2", 2, 60)
    await cache.set("cart:u1", 3, 60)
    assert await cache.clear("product:*") is True
    assert await cache.exists("product:1") is False
    assert await cache.exists("product:2") is False
    assert await cache.exists("cart:u1") is True


@pytest.mark.asyncio
@pytest.mark.parametrize("backend", [None, BrokenRedis()])
async def test_unreachable_backend_fails_soft(backend):
    store = CacheStore(backend)
    assert await store.set("k", "v", 60) is False
    assert await store.get("k") is None
    assert (await store.lookup("k")).status is LookupStatus.BACKEND_DOWN
    assert await store.delete("k") is False
    assert await store.exists("k") is False
    assert await store.expire("k", 10) is False
    assert await store.clear() is False
    assert await store.ping() is False
    with pytest.raises(BackendUnavailable):
        await store.increment("k")


def test_keys_are_namespaced_per_entity():
    assert cache_keys.cart_key("u1") == "cart:u1"
    assert cache_keys.session_key("s1") == "session:s1"
    assert cache_keys.product_key("p1") == "product:p1"
    assert cache_keys.user_key("u1") == "user:u1"
    assert cache_keys.rate_limit_key("1.2.3.4", 42) == "ratelimit:1.2.3.4:42"


def test_search_key_is_base64_of_utf8_query():
    key = cache_keys.search_key("café mug")
    assert key == "search:" + base64.b64encode("café mug".encode("utf-8")).decode("ascii")


def test_listing_key_ignores_parameter_order():
    a = cache_keys.listing_key({"category": "mugs", "page": 1, "limit": 20, "sort": "-rating"})
    b = cache_keys.listing_key({"sort": "-rating", "limit": 20, "page": 1, "category": "mugs"})
    assert a == b
    assert a.startswith("products:")
    assert a != cache_keys.listing_key({"category": "mugs", "page": 2, "limit": 20, "sort": "-rating"})


# ---------- catalog cache-aside ----------

@pytest.mark.asyncio
async def test_product_read_populates_cache_then_serves_it(cache, product_repo, settings, redis):
    product_repo.add(make_product("p1", price="5.00"))
    catalog = CatalogCache(cache, product_repo, settings)

    first = await catalog.get_product("p1")
    assert first.product_id == "p1"
    assert redis.ttl_of("product:p1") == settings.product_cache_ttl

    # the authoritative record changes; the cached copy is served until invalidated
    product_repo.set_stock("p1", 0)
    assert (await catalog.get_product("p1")).stock == 10

    assert await catalog.invalidate_product("p1") is True
    assert (await catalog.get_product("p1")).stock == 0


@pytest.mark.asyncio
async def test_missing_product_is_not_cached(cache, product_repo, settings, redis):
    catalog = CatalogCache(cache, product_repo, settings)
    assert await catalog.get_product("nope") is None
    assert "product:nope" not in redis.data


@pytest.mark.asyncio
async def test_product_miss_projects_into_graph(cache, product_repo, settings, graph, graph_repo):
    product_repo.add(make_product("p1", category="mugs"))
    catalog = CatalogCache(cache, product_repo, settings, graph)

    await catalog.get_product("p1")
    assert graph_repo.products["p1"]["category"] == "mugs"

    # served from the cache: no second projection
    await catalog.get_product("p1")
    assert graph_repo.calls.count("merge_product") == 1


@pytest.mark.asyncio
async def test_catalog_falls_through_to_store_without_cache(product_repo, settings):
    product_repo.add(make_product("p1"))
    catalog = CatalogCache(CacheStore(None), product_repo, settings)
    assert (await catalog.get_product("p1")).product_id == "p1"


@pytest.mark.asyncio
async def test_sessions_users_and_searches(cache, product_repo, settings, redis):
    catalog = CatalogCache(cache, product_repo, settings)

    await catalog.set_session("s1", {"user_id": "u1"})
    assert redis.ttl_of("session:s1") == 86400
    assert await catalog.get_session("s1") == {"user_id": "u1"}
    await catalog.delete_session("s1")
    assert await catalog.get_session("s1") is None

    await catalog.cache_user("u1", {"name": "Ada"})
    assert await catalog.get_cached_user("u1") == {"name": "Ada"}
    await catalog.invalidate_user("u1")
    assert await catalog.get_cached_user("u1") is None

    await catalog.cache_search_results("red mug", [{"product_id": "p1"}])
    assert await catalog.get_cached_search_results("red mug") == [{"product_id": "p1"}]
    assert redis.ttl_of(cache_keys.search_key("red mug")) == 600

    params = {"category": "mugs", "page": 1}
    await catalog.cache_listing(params, {"items": [], "total": 0})
    assert await catalog.get_cached_listing(params) == {"items": [], "total": 0}
