"""API v1 module for loginguard."""

from fastapi import APIRouter

from loginguard.api.v1.auth import router as auth_router

router = APIRouter(prefix="/api/v1")
router.include_router(auth_router)

__all__ = ["router"]
