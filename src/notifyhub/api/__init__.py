"""API route aggregation.

All routers registered here get mounted in main.py.

Producer routes require an ADMIN bearer token, applied at the
include_router level. Health is open.
"""

from fastapi import APIRouter, Depends

from notifyhub.api.events import router as events_router
from notifyhub.api.health import router as health_router
from notifyhub.api.notifications import router as notifications_router
from notifyhub.auth.dependencies import require_admin

_admin = [Depends(require_admin)]

api_router = APIRouter(prefix="/api/v1")

# Open routes, no auth required
api_router.include_router(health_router, tags=["health"])

# Producer routes: admin only
api_router.include_router(events_router, tags=["events"], dependencies=_admin)
api_router.include_router(notifications_router, tags=["notifications"], dependencies=_admin)
