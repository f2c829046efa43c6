"""
Pydantic models for accounts.

Defines schemas for registering, logging in, reading and updating an
account.  Password hashes never leave the service layer.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class Role(str, Enum):
    homeowner = "homeowner"
    service_provider = "service_provider"
    admin = "admin"


class AccountBase(BaseModel):
    email: EmailStr = Field(..., examples=["jane@example.com"])
    first_name: str = Field(..., min_length=1, examples=["Jane"])
    last_name: str = Field(..., min_length=1, examples=["Doe"])
    phone_number: Optional[str] = Field(None, examples=["+1 555 0100"])
    address: Optional[str] = Field(None, examples=["12 Elm Street, Springfield"])


class AccountCreate(AccountBase):
    """Schema for registering an account.

    Only ``homeowner`` and ``service_provider`` may be chosen here;
    administrators are created with ``manage_accounts.py``.
    """

    password: str = Field(..., min_length=6, examples=["strongpassword"])
    role: Role = Field(Role.homeowner)


class AccountLogin(BaseModel):
    email: EmailStr
    password: str


class AccountRead(AccountBase):
    """Schema for reading an account from the API."""

    id: int
    role: Role
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }


class ProfileUpdate(BaseModel):
    """Fields an account holder may change on their own profile.

    All fields are optional; only provided fields are updated.  Role is
    intentionally absent.
    """

    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None


class AccountSummary(BaseModel):
    """Name card embedded in listings and bookings."""

    id: int
    first_name: str
    last_name: str


class AuthResponse(BaseModel):
    user: AccountRead
    token: str
    token_type: str = "bearer"
