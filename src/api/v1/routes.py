"""
API v1 routes.

Combines the registration and order routers of the v1 API.
"""

from fastapi import APIRouter

from src.api.v1 import orders, registrations

router = APIRouter(tags=["v1"])
router.include_router(registrations.router)
router.include_router(orders.router)
