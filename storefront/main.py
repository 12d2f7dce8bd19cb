import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from storefront.api.exception_handlers import register_exception_handlers
from storefront.api.v1.routers.cart import router as cart_router
from storefront.api.v1.routers.health import router as health_router
from storefront.api.v1.routers.orders import router as orders_router
from storefront.api.v1.routers.products import router as products_router
from storefront.api.v1.routers.recommendations import router as recommendations_router
from storefront.core.config import get_settings
from storefront.core.lifespan import lifespan
from storefront.core.logging import configure_logging


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(level=logging.DEBUG if settings.DEBUG else logging.INFO)

    app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

    # ------- CORS -------
    # ALLOWED_ORIGINS is a CSV, e.g. "https://shop.example.com,https://admin.example.com"
    allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "")
    allowed_origins = [o.strip() for o in allowed_origins_env.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins or ["http://localhost:3000"],
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
        max_age=86400,
    )

    register_exception_handlers(app)

    # ------- Routes -------
    app.include_router(health_router)
    app.include_router(products_router, prefix=settings.api_prefix)
    app.include_router(recommendations_router, prefix=settings.api_prefix)
    app.include_router(cart_router, prefix=settings.api_prefix)
    app.include_router(orders_router, prefix=settings.api_prefix)
    return app


app = create_app()
