# storefront/api/v1/routers/health.py
import subprocess
import time

from fastapi import APIRouter

from storefront.api.deps import ServicesDep
from storefront.utils.best_effort import best_effort

router = APIRouter(tags=["health"])
START_TIME = time.time()


def _git_sha(short: bool = True) -> str:
    try:
        cmd = ["git", "rev-parse", "--short" if short else "HEAD"]
        return subprocess.check_output(cmd, stderr=subprocess.DEVNULL).decode().strip()
    except (OSError, subprocess.CalledProcessError):
        return "unknown"


@router.get("/health")
async def health(services: ServicesDep):
    """
    Tolerant health check:
    - mongodb is required, its failure makes the status "error"
    - redis and neo4j are optional, "skipped" when not configured
    """
    settings = services.settings
    checks: dict[str, object] = {
        "app_name": settings.APP_NAME,
        "env": settings.APP_ENV,
        "debug": settings.DEBUG,
        "version": settings.GIT_SHA if settings.GIT_SHA != "unknown" else _git_sha(),
        "uptime_seconds": int(time.time() - START_TIME),
    }

    # --- Mongo ---
    if services.mongo is not None:
        checks["mongodb"] = "ok" if await services.mongo.ping() else "error"
    else:
        checks["mongodb"] = "skipped"

    # --- Redis (optional) ---
    if services.cache.available:
        checks["redis"] = "ok" if await services.cache.ping() else "error"
    else:
        checks["redis"] = "skipped"

    # --- Neo4j (optional) ---
    if services.graph.available:
        out = await best_effort(
            services.graph.repo.ping(), op="health.neo4j", default=False, timeout=settings.graph_timeout_s
        )
        checks["neo4j"] = "ok" if out.value else "error"
    else:
        checks["neo4j"] = "skipped"

    status = "ok" if checks["mongodb"] in ("ok", "skipped") else "error"
    degraded = [k for k in ("redis", "neo4j") if checks[k] == "error"]
    if status == "ok" and degraded:
        status = "degraded"

    return {"status": status, "checks": checks, "timestamp": int(time.time())}
