"""
Central API router that aggregates all route modules.
"""

from fastapi import APIRouter
from travelbook.api.routes import bookings, maintenance, pricing, recurring, routes, schedules

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(bookings.router)
api_router.include_router(schedules.router)
api_router.include_router(routes.router)
api_router.include_router(pricing.router)
api_router.include_router(recurring.router)
api_router.include_router(maintenance.router)
