"""API v1 router aggregator.

All v1 endpoint routers are included here. The emailed token links live in
eventtrack.api.links and are mounted at the site root instead.
"""

from fastapi import APIRouter

from eventtrack.api.v1 import accounts, auth, contact

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
router.include_router(contact.router, prefix="/contact", tags=["contact"])
