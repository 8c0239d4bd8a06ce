"""Router registrations."""

from fastapi import APIRouter

from app.api.routers import events, health, webhooks


def get_api_router() -> APIRouter:
    router = APIRouter()
    router.include_router(health.router, tags=["health"])
    router.include_router(webhooks.router, tags=["webhooks"])
    router.include_router(events.router, prefix="/api/v1/events", tags=["events"])
    return router
