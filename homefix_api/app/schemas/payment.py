"""
Pydantic models for payment records.

A payment record is written when a gateway charge is confirmed for a
booking.  Amounts on records are in major units; amounts sent to the
gateway are in minor units.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class PaymentRecordStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class PaymentIntentCreate(BaseModel):
    """Free‑standing intent creation; ``amount`` is already in minor units."""

    amount: int = Field(..., gt=0, examples=[5000])
    currency: str = Field("usd", min_length=3, max_length=3, examples=["usd"])


class PaymentConfirm(BaseModel):
    payment_intent_id: str = Field(..., pattern=r"^[A-Za-z0-9_]+$", examples=["pi_3NxExample"])
    booking_id: int = Field(..., examples=[1])


class PaymentRead(BaseModel):
    id: int
    user_id: int
    booking_id: int
    amount: float
    currency: str
    status: PaymentRecordStatus
    payment_intent_id: str
    created_at: datetime

    model_config = {
        "from_attributes": True,
    }
