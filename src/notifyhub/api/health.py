"""Health check endpoint.

Reports backplane connectivity plus this process's connection counts,
which is handy when checking load spread across gateway instances.
"""

from fastapi import APIRouter, Request

from notifyhub import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and Redis connectivity."""
    checks = {"server": "ok", "version": __version__}

    try:
        ok = await request.app.state.bus.ping()
        checks["redis"] = "ok" if ok else "error: ping failed"
    except Exception as e:
        checks["redis"] = f"error: {e}"

    propagator = request.app.state.propagator
    checks["propagator"] = "ok" if propagator.running else "error: consumers stopped"

    status = "healthy" if all(
        v == "ok" for k, v in checks.items() if k != "version"
    ) else "degraded"

    adapter = request.app.state.adapter
    return {
        "status": status,
        **checks,
        "connections": len(adapter.server) if adapter.server else 0,
        "authenticated_users": len(adapter.registry),
    }
