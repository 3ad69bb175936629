from __future__ import annotations

from fastapi import APIRouter

from app.api.v1 import admin, auth, health, leave, session

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(health.router, tags=["health"])
api_router.include_router(auth.router, tags=["auth"])
api_router.include_router(session.router, tags=["session"])
api_router.include_router(leave.router, tags=["leave"])
api_router.include_router(admin.router, tags=["admin"])
