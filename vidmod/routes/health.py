"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Request

from vidmod.db.pool import db_health_check

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "video-moderation-worker"}


@router.get("/readyz")
async def readyz(request: Request):
    """
    Readiness check: database pool plus a configured moderation runner.
    """
    checks = {}
    overall_ok = True

    # 1) Database pool
    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = bool(db_health.get("healthy", False))

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        if "pool_stats" in db_health:
            checks["database"]["pool_stats"] = db_health["pool_stats"]
        if "warnings" in db_health:
            checks["database"]["warnings"] = db_health["warnings"]
        if not is_healthy:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy
    except Exception as e:
        checks["database"] = {"ok": False, "error": f"{type(e).__name__}: {e}"}
        overall_ok = False

    # 2) Moderation runner
    runner = getattr(request.app.state, "moderation_runner", None)
    checks["moderation_runner"] = {
        "ok": runner is not None,
        "in_flight": len(runner.in_flight) if runner is not None else 0,
    }
    overall_ok = overall_ok and runner is not None

    return {"overall_ok": overall_ok, "checks": checks}
