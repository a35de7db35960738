"""
HTTP routes for the cell-group API, grouped by resource.
"""

from __future__ import annotations

from fastapi import APIRouter

from celulas.routes import auth, cells, health, me, prayers, reports, users

router = APIRouter()
router.include_router(health.router)
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(reports.router, prefix="/users/reports", tags=["reports"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(cells.router, prefix="/cells", tags=["cells"])
router.include_router(prayers.router, prefix="/prayers", tags=["prayers"])
router.include_router(me.router, prefix="/me", tags=["me"])
