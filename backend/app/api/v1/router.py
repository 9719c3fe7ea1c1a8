"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from backend.app.api.v1.endpoints import auth, admin, ledger, summary

router = APIRouter()

# Authentication endpoints
router.include_router(auth.router)

# Admin endpoints
router.include_router(admin.router)

# Ledger writes and listing
router.include_router(ledger.router)

# Monthly summary
router.include_router(summary.router)
