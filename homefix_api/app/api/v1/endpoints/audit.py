"""
Audit log endpoints for API v1.

Administrators can review the record of significant writes (accounts,
listings, bookings, reviews, payments) with filtering and pagination.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from homefix_api.app.core.security import Principal, require_roles
from homefix_api.app.schemas.user import Role
from homefix_api.app.services.audit_service import AuditService

router = APIRouter()


@router.get("/logs")
async def list_audit_logs(
    user_id: Optional[int] = Query(None, description="Filter by acting account ID"),
    object_type: Optional[str] = Query(None, description="Filter by object type (account, service, booking, payment)"),
    action: Optional[str] = Query(None, description="Filter by action (create, update, delete, review, confirm)"),
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    principal: Principal = Depends(require_roles(Role.admin)),
) -> List[dict]:
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        limit=limit,
        offset=offset,
    )
