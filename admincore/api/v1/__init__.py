"""
API v1 routes.
"""

from fastapi import APIRouter

from admincore.api.v1 import audit, modules, navigation, reconcile, sessions, stats

router = APIRouter()

router.include_router(sessions.router, prefix="/session", tags=["Session"])
router.include_router(modules.router, prefix="/modules", tags=["Modules"])
router.include_router(navigation.router, prefix="/navigation", tags=["Navigation"])
router.include_router(audit.router, prefix="/audit", tags=["Audit"])
router.include_router(reconcile.router, prefix="/reconcile", tags=["Reconciliation"])
router.include_router(stats.router, prefix="/stats", tags=["Stats"])
