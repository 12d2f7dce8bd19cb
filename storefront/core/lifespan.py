# storefront/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Optional

from fastapi import FastAPI
from motor.motor_asyncio import AsyncIOMotorDatabase
from neo4j import AsyncDriver
from redis.asyncio import Redis

from storefront.core.config import Settings, get_settings
from storefront.db.mongo import MongoConnection
from storefront.db.neo4j import Neo4jConnection
from storefront.db.redis import RedisConnection
from storefront.domain.repositories.graph_repo import GraphRepo
from storefront.domain.repositories.order_repo import OrderRepo
from storefront.domain.repositories.product_repo import ProductRepo
from storefront.domain.services.cache_store import CacheStore
from storefront.domain.services.cart_svc import CartService
from storefront.domain.services.catalog_cache_svc import CatalogCache
from storefront.domain.services.graph_svc import GraphEngine
from storefront.domain.services.order_svc import OrderService, Pricing
from storefront.domain.services.rate_limit_svc import RateLimiter
from storefront.domain.services.reco_svc import RecommendationService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Every component, wired once per process and read from app.state.services."""
    settings: Settings
    cache: CacheStore
    rate_limiter: RateLimiter
    catalog: CatalogCache
    carts: CartService
    orders: OrderService
    graph: GraphEngine
    recommendations: RecommendationService
    mongo: Optional[MongoConnection] = None


def build_services(
    settings: Settings,
    products: ProductRepo,
    orders: OrderRepo,
    redis: Optional[Redis],
    graph_repo: Optional[GraphRepo],
) -> Services:
    cache = CacheStore(redis, default_ttl=settings.default_cache_ttl)
    graph = GraphEngine(graph_repo, timeout_s=settings.graph_timeout_s)
    return Services(
        settings=settings,
        cache=cache,
        rate_limiter=RateLimiter(cache),
        catalog=CatalogCache(cache, products, settings, graph),
        carts=CartService(cache, products, ttl_seconds=settings.cart_ttl),
        orders=OrderService(products, orders, cache, graph, Pricing.from_settings(settings)),
        graph=graph,
        recommendations=RecommendationService(graph, products, settings.trending_window_ms),
    )


def services_from_clients(
    settings: Settings,
    db: AsyncIOMotorDatabase,
    redis: Optional[Redis],
    driver: Optional[AsyncDriver],
    database: str = "neo4j",
) -> Services:
    graph_repo = GraphRepo(driver, database) if driver is not None else None
    return build_services(settings, ProductRepo(db), OrderRepo(db), redis, graph_repo)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()

    # --- Startup ---
    # Mongo is required; Redis and Neo4j degrade to fail-soft when missing
    mongo = MongoConnection(settings)
    await mongo.connect()

    redis_conn = RedisConnection(settings)
    await redis_conn.connect()

    graph_conn = Neo4jConnection(settings)
    await graph_conn.connect()

    services = services_from_clients(settings, mongo.db, redis_conn.client, graph_conn.driver, graph_conn.database)
    services.mongo = mongo
    app.state.services = services
    logger.info(
        "services ready cache=%s graph=%s",
        "on" if services.cache.available else "off",
        "on" if services.graph.available else "off",
    )

    # Application runs
    yield

    # --- Shutdown ---
    await graph_conn.disconnect()
    await redis_conn.disconnect()
    await mongo.disconnect()
