"""AuthGate API Router - aggregates all API routes."""

from fastapi import APIRouter

from authgate.api import admin, auth, health, users

api_router = APIRouter()

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(admin.router)
