"""
Payment endpoints for API v1.

``confirm`` is the point where a succeeded gateway charge becomes a
payment record and the booking is marked paid.
"""

from typing import List

from fastapi import APIRouter, Depends

from homefix_api.app.core.security import Principal, get_current_principal
from homefix_api.app.schemas.booking import PaymentIntentRead
from homefix_api.app.schemas.payment import PaymentConfirm, PaymentIntentCreate, PaymentRead
from homefix_api.app.services.payment_gateway import PaymentGateway, get_payment_gateway
from homefix_api.app.services.payment_service import PaymentService


router = APIRouter()


@router.post("/create-payment-intent", response_model=PaymentIntentRead)
async def create_payment_intent(
    data: PaymentIntentCreate,
    principal: Principal = Depends(get_current_principal),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentIntentRead:
    return await PaymentService.create_payment_intent(data, gateway)


@router.post("/confirm", response_model=PaymentRead)
async def confirm_payment(
    data: PaymentConfirm,
    principal: Principal = Depends(get_current_principal),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentRead:
    """Record a succeeded charge for a booking.

    Calling this again for the same intent returns the existing record.
    """
    return await PaymentService.confirm_payment(data, principal, gateway)


@router.get("/history", response_model=List[PaymentRead])
async def payment_history(principal: Principal = Depends(get_current_principal)) -> List[PaymentRead]:
    return await PaymentService.payment_history(principal)
