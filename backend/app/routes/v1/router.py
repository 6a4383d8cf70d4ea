"""API v1 router - aggregates all route modules."""

from fastapi import APIRouter

from app.routes.v1 import mentions, notes, notifications, users, ws

api_router = APIRouter()

# Include REST API route modules
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(mentions.router, prefix="/mentions", tags=["mentions"])
api_router.include_router(notes.router, prefix="/candidates", tags=["notes"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(ws.router, tags=["websocket"])
