"""
Business logic for bookings.

The ``BookingService`` creates bookings against a listing, applies
status changes, records the customer's review and creates the payment
intent for a booking.  Authorization and transition rules live in
``booking_lifecycle``; this module handles persistence.

Review submission writes the booking, recomputes the listing's
aggregate rating and appends the review reference inside one database
transaction, so the rating can never be left stale by a partial write.
"""

import json
import logging
import sqlite3
from datetime import datetime, timezone
from typing import Any, List, Optional

from homefix_api.app.core.config import settings
from homefix_api.app.core.db import get_connection, get_cursor
from homefix_api.app.core.exceptions import InvalidState, NotFound
from homefix_api.app.core.security import Principal
from homefix_api.app.schemas.booking import (
    BookingCreate,
    BookingRead,
    BookingStatus,
    PaymentIntentRead,
    ReviewCreate,
)
from homefix_api.app.services import booking_lifecycle
from homefix_api.app.services.audit_service import AuditService
from homefix_api.app.services.listing_service import fetch_service_row
from homefix_api.app.services.payment_gateway import PaymentGateway


logger = logging.getLogger(__name__)

BOOKING_FIELDS = (
    "id", "service_id", "customer_id", "provider_id", "date", "status", "address", "description",
    "price", "payment_status", "emergency", "rating", "review", "created_at", "updated_at",
)

# The service join is a LEFT JOIN because bookings outlive deleted listings.
BOOKING_SELECT = (
    "SELECT " + ", ".join(f"b.{f} AS {f}" for f in BOOKING_FIELDS) + ", "
    "s.name AS service_name, "
    "c.first_name AS customer_first_name, c.last_name AS customer_last_name, "
    "p.first_name AS provider_first_name, p.last_name AS provider_last_name "
    "FROM bookings b "
    "LEFT JOIN services s ON s.id = b.service_id "
    "LEFT JOIN users c ON c.id = b.customer_id "
    "LEFT JOIN users p ON p.id = b.provider_id"
)


def _service_summary(row: sqlite3.Row) -> Optional[dict]:
    if row["service_name"] is None:
        return None
    return {"id": row["service_id"], "name": row["service_name"]}


def _summary(row: sqlite3.Row, prefix: str) -> Optional[dict]:
    if row[f"{prefix}_first_name"] is None:
        return None
    return {
        "id": row[f"{prefix}_id"],
        "first_name": row[f"{prefix}_first_name"],
        "last_name": row[f"{prefix}_last_name"],
    }


def _row_to_booking(row: sqlite3.Row) -> BookingRead:
    return BookingRead(
        id=row["id"],
        service_id=row["service_id"],
        customer_id=row["customer_id"],
        provider_id=row["provider_id"],
        date=row["date"],
        status=row["status"],
        address=row["address"],
        description=row["description"],
        price=row["price"],
        payment_status=row["payment_status"],
        emergency=bool(row["emergency"]),
        rating=row["rating"],
        review=row["review"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        service=_service_summary(row),
        customer=_summary(row, "customer"),
        provider=_summary(row, "provider"),
    )


def _as_utc(value: datetime) -> str:
    """ISO string in UTC so that stored dates sort and compare as text.

    Naive datetimes are taken to be UTC already.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def fetch_booking_row(cursor: sqlite3.Cursor, booking_id: int) -> Optional[sqlite3.Row]:
    return cursor.execute(
        f"{BOOKING_SELECT} WHERE b.id = ?", (booking_id,)
    ).fetchone()


def require_booking(cursor: sqlite3.Cursor, booking_id: int) -> sqlite3.Row:
    row = fetch_booking_row(cursor, booking_id)
    if not row:
        raise NotFound("Booking not found")
    return row


class BookingService:
    """Service for the booking lifecycle."""

    @classmethod
    async def create_booking(cls, data: BookingCreate, principal: Principal) -> BookingRead:
        """Book a listing on behalf of the calling customer.

        The listing must exist.  Price and provider are copied from the
        listing as it is now; the new booking starts ``pending`` with
        payment ``pending``.  Overlapping bookings for the same slot are
        not checked.
        """
        with get_cursor() as cursor:
            service = fetch_service_row(cursor, data.service_id)
            if not service:
                raise NotFound("Service not found")
            cursor.execute(
                """
                INSERT INTO bookings (service_id, customer_id, provider_id, date, address, description, price, emergency)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    service["id"],
                    principal.account_id,
                    service["provider_id"],
                    _as_utc(data.date),
                    data.address,
                    data.description,
                    service["base_price"],
                    int(data.emergency),
                ),
            )
            booking_id = cursor.lastrowid
            row = fetch_booking_row(cursor, booking_id)
        logger.info(
            "Customer %s booked service %s (booking %s) at %.2f",
            principal.account_id, service["id"], booking_id, service["base_price"],
        )
        await AuditService.log(
            user_id=principal.account_id,
            action="create",
            object_type="booking",
            object_id=booking_id,
            details={"service_id": service["id"], "price": service["base_price"]},
        )
        return _row_to_booking(row)

    @classmethod
    async def list_bookings(
        cls,
        principal: Principal,
        status: Optional[BookingStatus] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
    ) -> List[BookingRead]:
        """Bookings the caller takes part in (all bookings for admins).

        ``start_date`` and ``end_date`` bound the scheduled date
        inclusively.  Results are ordered by scheduled date, latest
        first.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if not principal.is_admin:
            where_clauses.append("(b.customer_id = ? OR b.provider_id = ?)")
            params.extend([principal.account_id, principal.account_id])
        if status is not None:
            where_clauses.append("b.status = ?")
            params.append(status.value)
        if start_date is not None:
            where_clauses.append("b.date >= ?")
            params.append(_as_utc(start_date))
        if end_date is not None:
            where_clauses.append("b.date <= ?")
            params.append(_as_utc(end_date))
        query = BOOKING_SELECT
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY b.date DESC, b.id DESC"

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_booking(row) for row in rows]

    @classmethod
    async def get_booking(cls, booking_id: int, principal: Principal) -> BookingRead:
        """Return a booking to one of its participants or an admin."""
        conn = get_connection()
        try:
            row = require_booking(conn.cursor(), booking_id)
        finally:
            conn.close()
        if not principal.is_admin:
            booking_lifecycle.ensure_participant(principal, row["customer_id"], row["provider_id"])
        return _row_to_booking(row)

    @classmethod
    async def update_status(
        cls,
        booking_id: int,
        target: BookingStatus,
        principal: Principal,
        strict: Optional[bool] = None,
    ) -> BookingRead:
        """Move a booking to ``target``.

        The caller must be the booking's customer or provider.  Unless
        strict transitions are disabled (``STRICT_STATUS_TRANSITIONS``
        or ``strict=False``) the change must be allowed by
        ``booking_lifecycle.ALLOWED_TRANSITIONS``.
        """
        if strict is None:
            strict = settings.strict_status_transitions
        with get_cursor() as cursor:
            row = require_booking(cursor, booking_id)
            booking_lifecycle.ensure_participant(principal, row["customer_id"], row["provider_id"])
            current = BookingStatus(row["status"])
            booking_lifecycle.check_transition(current, target, strict=strict)
            cursor.execute(
                "UPDATE bookings SET status = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (target.value, booking_id),
            )
            row = fetch_booking_row(cursor, booking_id)
        logger.info(
            "Account %s moved booking %s from %s to %s",
            principal.account_id, booking_id, current.value, target.value,
        )
        await AuditService.log(
            user_id=principal.account_id,
            action="update",
            object_type="booking",
            object_id=booking_id,
            details={"from": current.value, "to": target.value},
        )
        return _row_to_booking(row)

    @staticmethod
    def _recompute_service_rating(cursor: sqlite3.Cursor, service_id: int, booking_id: int) -> Optional[float]:
        """Recompute the listing's rating from every rated booking.

        Runs on the caller's cursor so it shares the review's
        transaction.  Returns ``None`` when the listing has been
        deleted.
        """
        service = cursor.execute(
            "SELECT id, reviews FROM services WHERE id = ?", (service_id,)
        ).fetchone()
        if not service:
            return None
        ratings = [
            r["rating"]
            for r in cursor.execute(
                "SELECT rating FROM bookings WHERE service_id = ? AND rating IS NOT NULL",
                (service_id,),
            ).fetchall()
        ]
        rating = booking_lifecycle.mean_rating(ratings)
        reviews = json.loads(service["reviews"])
        if booking_id not in reviews:
            reviews.append(booking_id)
        cursor.execute(
            "UPDATE services SET rating = ?, reviews = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
            (rating, json.dumps(reviews), service_id),
        )
        return rating

    @classmethod
    async def add_review(cls, booking_id: int, data: ReviewCreate, principal: Principal) -> BookingRead:
        """Record the customer's rating and review on a completed booking.

        Fails with ``Forbidden`` for anyone but the customer (including
        the provider), with ``InvalidState`` unless the booking is
        ``completed`` and with ``InvalidState`` if a review was already
        recorded.  On success the listing's rating becomes the mean of
        all rated bookings for it.
        """
        with get_cursor() as cursor:
            row = require_booking(cursor, booking_id)
            booking_lifecycle.ensure_customer(principal, row["customer_id"])
            if row["status"] != BookingStatus.completed.value:
                raise InvalidState("Can only review completed bookings")
            if row["rating"] is not None:
                raise InvalidState("Booking has already been reviewed")
            cursor.execute(
                "UPDATE bookings SET rating = ?, review = ?, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                (data.rating, data.review, booking_id),
            )
            service_rating = cls._recompute_service_rating(cursor, row["service_id"], booking_id)
            row = fetch_booking_row(cursor, booking_id)
        logger.info(
            "Customer %s rated booking %s with %s; service %s rating is now %s",
            principal.account_id, booking_id, data.rating, row["service_id"], service_rating,
        )
        await AuditService.log(
            user_id=principal.account_id,
            action="review",
            object_type="booking",
            object_id=booking_id,
            details={"rating": data.rating, "service_rating": service_rating},
        )
        return _row_to_booking(row)

    @classmethod
    async def create_payment_intent(
        cls,
        booking_id: int,
        principal: Principal,
        gateway: PaymentGateway,
    ) -> PaymentIntentRead:
        """Ask the gateway for a payment intent covering the booking's price.

        Only the booking's customer may pay.  The booking is not marked
        paid here; that happens when the payment is confirmed.
        """
        conn = get_connection()
        try:
            row = require_booking(conn.cursor(), booking_id)
        finally:
            conn.close()
        booking_lifecycle.ensure_customer(principal, row["customer_id"])
        amount = booking_lifecycle.to_minor_units(row["price"])
        currency = settings.payment_currency
        intent = gateway.create_payment_intent(
            amount=amount,
            currency=currency,
            metadata={"booking_id": str(booking_id)},
        )
        logger.info("Created payment intent %s for booking %s (%s %s)", intent.get("id"), booking_id, amount, currency)
        return PaymentIntentRead(
            client_secret=intent["client_secret"],
            payment_intent_id=intent["id"],
            amount=amount,
            currency=currency,
        )
