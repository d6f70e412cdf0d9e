"""API v1 routers"""

from fastapi import APIRouter

from .ai import router as ai_router

v1_router = APIRouter(prefix="/v1")

v1_router.include_router(ai_router)
