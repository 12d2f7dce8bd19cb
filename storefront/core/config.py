from functools import lru_cache
from typing import Literal
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "Storefront"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (authoritative store)
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB: str = "storefront"
    MONGO_TLS: bool = False

    # Redis (cache + ephemeral state)
    REDIS_URL: str = "redis://localhost:6379/0"
    redis_timeout_s: float = 5.0

    # Neo4j (interaction graph)
    NEO4J_URI: str = "bolt://localhost:7687"
    NEO4J_USER: str = "neo4j"
    NEO4J_PASSWORD: str = "password"
    NEO4J_DATABASE: str = "neo4j"
    graph_timeout_s: float = 2.0               # bound on every best-effort graph call

    # Cache TTLs (seconds)
    default_cache_ttl: int = 3600
    session_ttl: int = 24 * 3600
    cart_ttl: int = 24 * 3600
    product_cache_ttl: int = 30 * 60
    user_cache_ttl: int = 30 * 60
    search_cache_ttl: int = 10 * 60
    listing_cache_ttl: int = 10 * 60

    # Rate limiting (fixed window)
    rate_limit_max: int = 100
    rate_limit_window_s: int = 15 * 60

    # Recommendations
    trending_window_ms: int = 7 * 24 * 3600 * 1000

    # Order pricing
    tax_rate: str = "0.08"                     # kept as text, parsed to Decimal
    free_shipping_threshold: str = "100"
    flat_shipping: str = "10"

    # API
    api_prefix: str = "/api"

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True, extra="ignore")

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
