"""Notification endpoints for API v1."""

from typing import List

from fastapi import APIRouter, Depends, Path, status

from homefix_api.app.core.security import Principal, get_current_principal
from homefix_api.app.schemas.notification import NotificationCreate, NotificationRead
from homefix_api.app.services.notification_service import NotificationService


router = APIRouter()


@router.get("/", response_model=List[NotificationRead])
async def list_notifications(principal: Principal = Depends(get_current_principal)) -> List[NotificationRead]:
    return await NotificationService.list_for(principal)


@router.post("/", response_model=NotificationRead, status_code=status.HTTP_201_CREATED)
async def send_notification(
    data: NotificationCreate,
    principal: Principal = Depends(get_current_principal),
) -> NotificationRead:
    return await NotificationService.send(data, principal)


@router.put("/{notification_id}/read", response_model=NotificationRead)
async def mark_as_read(
    notification_id: int = Path(..., description="ID of the notification"),
    principal: Principal = Depends(get_current_principal),
) -> NotificationRead:
    return await NotificationService.mark_as_read(notification_id, principal)
