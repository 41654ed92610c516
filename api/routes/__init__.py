"""
api.routes — one router for the destination and live-data endpoints.

``app.py`` mounts it under ``/api/v1``.
"""

from fastapi import APIRouter

from api.routes.destinations import router as destinations_router
from api.routes.live import router as live_router

router = APIRouter()

router.include_router(destinations_router)
router.include_router(live_router)
