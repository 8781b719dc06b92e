"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .matching import router as matching_router
from .pnl import router as pnl_router

api_router = APIRouter()
api_router.include_router(matching_router, prefix="/match", tags=["matching"])
api_router.include_router(pnl_router, prefix="/pnl", tags=["pnl"])

__all__ = ["api_router"]
