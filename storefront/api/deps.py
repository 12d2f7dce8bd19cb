# storefront/api/deps.py
from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request

from storefront.core.lifespan import Services


# Components built at startup (see core/lifespan.py)
def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


# Identity is issued upstream; this service only reads it
async def current_user(x_user_id: Annotated[Optional[str], Header()] = None) -> str:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authorized, missing X-User-Id")
    return x_user_id


async def optional_user(x_user_id: Annotated[Optional[str], Header()] = None) -> Optional[str]:
    return x_user_id or None


async def require_operator(x_user_role: Annotated[Optional[str], Header()] = None) -> None:
    if x_user_role != "admin":
        raise HTTPException(status_code=403, detail="Operator role required")


UserDep = Annotated[str, Depends(current_user)]
OptionalUserDep = Annotated[Optional[str], Depends(optional_user)]


async def rate_limit(request: Request, services: ServicesDep) -> None:
    """Fixed-window limit per client address; fails open when the cache is down."""
    identity = request.client.host if request.client else "unknown"
    settings = services.settings
    allowed = await services.rate_limiter.check_rate_limit(
        identity, settings.rate_limit_max, settings.rate_limit_window_s
    )
    if not allowed:
        raise HTTPException(
            status_code=429,
            detail="Too many requests from this IP, please try again later.",
        )
