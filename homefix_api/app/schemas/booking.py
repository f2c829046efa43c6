"""
Pydantic models for bookings.

A booking ties a customer to a provider for one service listing.  The
provider and price are copied from the listing when the booking is
created and never re‑derived.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .service import ServiceSummary
from .user import AccountSummary


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"


class BookingCreate(BaseModel):
    service_id: int = Field(..., examples=[1])
    date: datetime = Field(..., examples=["2026-11-02T09:00:00Z"])
    address: str = Field(..., min_length=1, examples=["12 Elm Street, Springfield"])
    description: str = Field(..., min_length=1, examples=["Kitchen sink is leaking"])
    emergency: bool = False


class BookingStatusUpdate(BaseModel):
    status: BookingStatus


class ReviewCreate(BaseModel):
    """Rating and review left by the customer once the job is completed."""

    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review: Optional[str] = Field(None, description="Free‑text review")

    @field_validator("review")
    @classmethod
    def sanitize_review(cls, v: Optional[str]) -> Optional[str]:
        """Trim whitespace and enforce a maximum length."""
        if v is None:
            return None
        v = v.strip()
        if len(v) > 1000:
            raise ValueError("Review must be 1000 characters or fewer")
        return v


class BookingRead(BaseModel):
    id: int
    service_id: int
    customer_id: int
    provider_id: int
    date: datetime
    status: BookingStatus
    address: str
    description: str
    price: float
    payment_status: PaymentStatus
    emergency: bool
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    service: Optional[ServiceSummary] = Field(None, description="Null once the listing is deleted")
    customer: Optional[AccountSummary] = None
    provider: Optional[AccountSummary] = None

    model_config = {
        "from_attributes": True,
    }


class BookingPaymentIntentCreate(BaseModel):
    booking_id: int


class PaymentIntentRead(BaseModel):
    """Handle returned to the client to complete the card payment."""

    client_secret: str
    payment_intent_id: str
    amount: int = Field(..., description="Amount in minor currency units (cents)")
    currency: str
