# storefront/api/exception_handlers.py
import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from storefront.api.v1.schemas.common import ErrorDetail, ErrorResponse
from storefront.core.errors import (
    AccessDenied,
    BackendUnavailable,
    InsufficientStock,
    InvalidQuantity,
    InvalidState,
    NotFound,
    StorefrontError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = {
    NotFound: 404,
    InsufficientStock: 409,
    InvalidState: 409,
    InvalidQuantity: 422,
    AccessDenied: 403,
    BackendUnavailable: 503,
}


def status_for(exc: StorefrontError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


async def storefront_exception_handler(request: Request, exc: StorefrontError):
    status_code = status_for(exc)
    body = ErrorResponse(
        error=ErrorDetail(code=exc.code, message=exc.message, details=exc.context or None),
        timestamp=datetime.now(timezone.utc).isoformat(),
        path=request.url.path,
    )
    if status_code >= 500:
        logger.error("HTTP %s %s %s: %s", status_code, request.method, request.url.path, exc.message)
    else:
        logger.warning("HTTP %s %s %s: %s", status_code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_exception_handler)
