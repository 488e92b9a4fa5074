"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import admin, auth, health, realtime, roles, sessions, system, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(sessions.router, prefix="/sessions", tags=["sessions"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(system.router, prefix="/system", tags=["system"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(realtime.router, tags=["realtime"])
