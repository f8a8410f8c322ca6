"""
Top‑level API router.

Aggregates domain‑specific routers under a unified prefix.  The health
router is mounted separately at the application root by ``create_app``.
"""

from fastapi import APIRouter

from .endpoints import counters

router = APIRouter()

router.include_router(counters.router, prefix="/counters", tags=["counters"])
