"""
Booking endpoints for API v1.

These routes cover the booking lifecycle: creation, listing, status
changes, the customer's review and the payment intent.  Every route
requires authentication; participant checks happen in the
``BookingService``.
"""

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from homefix_api.app.core.security import Principal, get_current_principal
from homefix_api.app.schemas.booking import (
    BookingCreate,
    BookingPaymentIntentCreate,
    BookingRead,
    BookingStatus,
    BookingStatusUpdate,
    PaymentIntentRead,
    ReviewCreate,
)
from homefix_api.app.services.booking_service import BookingService
from homefix_api.app.services.payment_gateway import PaymentGateway, get_payment_gateway


router = APIRouter()


@router.post("/", response_model=BookingRead, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    """Book a listing.  Returns 404 if the listing does not exist."""
    return await BookingService.create_booking(data, principal)


@router.get("/", response_model=List[BookingRead])
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    principal: Principal = Depends(get_current_principal),
) -> List[BookingRead]:
    return await BookingService.list_bookings(
        principal,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
    )


@router.post("/payment-intent", response_model=PaymentIntentRead)
async def create_payment_intent(
    data: BookingPaymentIntentCreate,
    principal: Principal = Depends(get_current_principal),
    gateway: PaymentGateway = Depends(get_payment_gateway),
) -> PaymentIntentRead:
    """Create a gateway payment intent for the booking's price.  Customer only."""
    return await BookingService.create_payment_intent(data.booking_id, principal, gateway)


@router.get("/{booking_id}", response_model=BookingRead)
async def get_booking(
    booking_id: int = Path(..., description="ID of the booking"),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    return await BookingService.get_booking(booking_id, principal)


@router.patch("/{booking_id}/status", response_model=BookingRead)
async def update_booking_status(
    data: BookingStatusUpdate,
    booking_id: int = Path(..., description="ID of the booking"),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    """Change the booking status.

    Only the customer or provider may do this.  Changes outside the
    lifecycle table are rejected with ``invalid_transition``.
    """
    return await BookingService.update_status(booking_id, data.status, principal)


@router.post("/{booking_id}/review", response_model=BookingRead)
async def add_review(
    data: ReviewCreate,
    booking_id: int = Path(..., description="ID of the booking"),
    principal: Principal = Depends(get_current_principal),
) -> BookingRead:
    """Rate a completed booking.  Customer only, once per booking."""
    return await BookingService.add_review(booking_id, data, principal)
