"""
Account endpoints for API v1.

Registration and login return the account together with a bearer
token.  The profile endpoints always act on the caller's own account.
"""

from fastapi import APIRouter, Depends, status

from homefix_api.app.core.exceptions import Unauthenticated
from homefix_api.app.core.security import Principal, get_current_principal, issue_token_for
from homefix_api.app.schemas.user import (
    AccountCreate,
    AccountLogin,
    AccountRead,
    AuthResponse,
    ProfileUpdate,
)
from homefix_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(data: AccountCreate) -> AuthResponse:
    """Create a homeowner or service provider account and sign it in."""
    user = await UserService.create_user(data)
    return AuthResponse(user=user, token=issue_token_for(user.id, user.role.value))


@router.post("/login", response_model=AuthResponse)
async def login(data: AccountLogin) -> AuthResponse:
    user = await UserService.authenticate(data.email, data.password)
    if not user:
        raise Unauthenticated("Invalid credentials")
    return AuthResponse(user=user, token=issue_token_for(user.id, user.role.value))


@router.get("/profile", response_model=AccountRead)
async def get_profile(principal: Principal = Depends(get_current_principal)) -> AccountRead:
    return await UserService.get_user_by_id(principal.account_id)


@router.put("/profile", response_model=AccountRead)
async def update_profile(
    data: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
) -> AccountRead:
    """Update name, email, phone number or address.

    Returns 400 when none of these fields is supplied and 409 when the
    email or phone number is used by another account.
    """
    return await UserService.update_profile(principal, data)
