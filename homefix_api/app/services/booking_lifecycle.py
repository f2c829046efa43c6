"""
Booking lifecycle rules.

Pure functions shared by the booking and payment services: who may act
on a booking, which status changes are allowed, how a listing's
aggregate rating is computed and how a price is converted to the
minor units the payment gateway expects.  Nothing here touches the
database.

With ``STRICT_STATUS_TRANSITIONS`` on, a booking moves forward
``pending -> confirmed -> in_progress -> completed`` and may be
``cancelled`` from any of the first three states.  ``completed`` and
``cancelled`` are terminal.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, FrozenSet, Iterable

from homefix_api.app.core.exceptions import Forbidden, InvalidTransition
from homefix_api.app.core.security import Principal
from homefix_api.app.schemas.booking import BookingStatus


ALLOWED_TRANSITIONS: Dict[BookingStatus, FrozenSet[BookingStatus]] = {
    BookingStatus.pending: frozenset({BookingStatus.confirmed, BookingStatus.cancelled}),
    BookingStatus.confirmed: frozenset({BookingStatus.in_progress, BookingStatus.cancelled}),
    BookingStatus.in_progress: frozenset({BookingStatus.completed, BookingStatus.cancelled}),
    BookingStatus.completed: frozenset(),
    BookingStatus.cancelled: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def ensure_participant(principal: Principal, customer_id: int, provider_id: int) -> None:
    """Raise ``Forbidden`` unless the principal is the customer or the provider."""
    if principal.account_id not in (customer_id, provider_id):
        raise Forbidden("Not authorized")


def ensure_customer(principal: Principal, customer_id: int) -> None:
    """Raise ``Forbidden`` unless the principal is the booking's customer."""
    if principal.account_id != customer_id:
        raise Forbidden("Not authorized")


def check_transition(current: BookingStatus, target: BookingStatus, strict: bool = True) -> None:
    """Validate a status change.

    With ``strict`` off every change is accepted, including moving
    backwards or re‑setting the same status.
    """
    if not strict:
        return
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot change booking status from {current.value} to {target.value}"
        )


def mean_rating(ratings: Iterable[int]) -> float:
    """Arithmetic mean of ``ratings`` at full precision, 0 when empty."""
    values = list(ratings)
    if not values:
        return 0.0
    return sum(values) / len(values)


def to_minor_units(price: float) -> int:
    """Convert a major‑unit price to cents, rounding half up at 2 dp.

    The float is converted through its shortest repr so that ``19.995``
    is treated as the decimal 19.995 (-> 2000) rather than its binary
    approximation.
    """
    cents = Decimal(repr(price)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP) * 100
    return int(cents)
