"""
Top‑level router for version 1 of the API.

Aggregates the domain routers under their prefixes.  When a new domain
is introduced, include its router here.
"""

from fastapi import APIRouter

from .endpoints import audit, auth, bookings, notifications, payments, services

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(services.router, prefix="/services", tags=["services"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(payments.router, prefix="/payments", tags=["payments"])
router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])
