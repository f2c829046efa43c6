"""
Business logic for service listings.

Listings are public to read and writable only by the provider that
owns them.  ``rating`` and ``reviews`` are maintained by the booking
service when a review lands and cannot be written here.
"""

import json
import logging
import sqlite3
from typing import Any, List, Optional

from homefix_api.app.core.db import get_connection, get_cursor
from homefix_api.app.core.exceptions import Forbidden, NotFound
from homefix_api.app.core.security import Principal
from homefix_api.app.schemas.service import (
    Availability,
    ServiceCategory,
    ServiceCreate,
    ServiceRead,
    ServiceUpdate,
)
from homefix_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

SERVICE_FIELDS = (
    "id", "name", "description", "category", "base_price", "provider_id", "is_emergency",
    "availability_days", "availability_start", "availability_end", "rating", "reviews", "images",
    "created_at", "updated_at",
)

SERVICE_SELECT = (
    "SELECT " + ", ".join(f"s.{f} AS {f}" for f in SERVICE_FIELDS) + ", "
    "u.first_name AS provider_first_name, u.last_name AS provider_last_name "
    "FROM services s LEFT JOIN users u ON u.id = s.provider_id"
)


def _provider_summary(row: sqlite3.Row) -> Optional[dict]:
    if row["provider_first_name"] is None:
        return None
    return {
        "id": row["provider_id"],
        "first_name": row["provider_first_name"],
        "last_name": row["provider_last_name"],
    }


def _row_to_service(row: sqlite3.Row) -> ServiceRead:
    return ServiceRead(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        category=row["category"],
        base_price=row["base_price"],
        provider_id=row["provider_id"],
        is_emergency=bool(row["is_emergency"]),
        availability={
            "days": json.loads(row["availability_days"]),
            "hours": {"start": row["availability_start"], "end": row["availability_end"]},
        },
        rating=row["rating"],
        reviews=json.loads(row["reviews"]),
        images=json.loads(row["images"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        provider=_provider_summary(row),
    )


def _availability_columns(availability: Availability) -> dict:
    return {
        "availability_days": json.dumps([d.value for d in availability.days]),
        "availability_start": availability.hours.start,
        "availability_end": availability.hours.end,
    }


def fetch_service_row(cursor: sqlite3.Cursor, service_id: int) -> Optional[sqlite3.Row]:
    return cursor.execute(
        f"{SERVICE_SELECT} WHERE s.id = ?", (service_id,)
    ).fetchone()


class ListingService:
    """Service for publishing and browsing listings."""

    @classmethod
    async def create_service(cls, data: ServiceCreate, principal: Principal) -> ServiceRead:
        """Publish a listing owned by the calling provider."""
        with get_cursor() as cursor:
            columns = {
                "name": data.name,
                "description": data.description,
                "category": data.category.value,
                "base_price": data.base_price,
                "provider_id": principal.account_id,
                "is_emergency": int(data.is_emergency),
                "images": json.dumps(data.images),
                **_availability_columns(data.availability),
            }
            placeholders = ", ".join("?" for _ in columns)
            cursor.execute(
                f"INSERT INTO services ({', '.join(columns)}) VALUES ({placeholders})",
                tuple(columns.values()),
            )
            service_id = cursor.lastrowid
            row = fetch_service_row(cursor, service_id)
        logger.info("Provider %s published service %s '%s'", principal.account_id, service_id, data.name)
        await AuditService.log(
            user_id=principal.account_id,
            action="create",
            object_type="service",
            object_id=service_id,
            details={"name": data.name, "category": data.category.value},
        )
        return _row_to_service(row)

    @classmethod
    async def list_services(
        cls,
        category: Optional[ServiceCategory] = None,
        emergency: Optional[bool] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        provider_id: Optional[int] = None,
    ) -> List[ServiceRead]:
        """Return listings matching the filters, newest first."""
        where_clauses: List[str] = []
        params: List[Any] = []
        if category is not None:
            where_clauses.append("s.category = ?")
            params.append(category.value)
        if emergency is not None:
            where_clauses.append("s.is_emergency = ?")
            params.append(1 if emergency else 0)
        if min_price is not None:
            where_clauses.append("s.base_price >= ?")
            params.append(min_price)
        if max_price is not None:
            where_clauses.append("s.base_price <= ?")
            params.append(max_price)
        if provider_id is not None:
            where_clauses.append("s.provider_id = ?")
            params.append(provider_id)
        query = SERVICE_SELECT
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY s.created_at DESC, s.id DESC"

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [_row_to_service(row) for row in rows]

    @classmethod
    async def get_service(cls, service_id: int) -> ServiceRead:
        conn = get_connection()
        try:
            row = fetch_service_row(conn.cursor(), service_id)
        finally:
            conn.close()
        if not row:
            raise NotFound("Service not found")
        return _row_to_service(row)

    @staticmethod
    def _owned_row(cursor: sqlite3.Cursor, service_id: int, principal: Principal) -> sqlite3.Row:
        row = fetch_service_row(cursor, service_id)
        if not row:
            raise NotFound("Service not found")
        if row["provider_id"] != principal.account_id:
            raise Forbidden("Not authorized")
        return row

    @classmethod
    async def update_service(cls, service_id: int, data: ServiceUpdate, principal: Principal) -> ServiceRead:
        """Merge the supplied fields onto the listing.

        Fields left out of the request keep their stored values.  An
        explicit ``null`` is ignored because every listing column is
        required.
        """
        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        with get_cursor() as cursor:
            cls._owned_row(cursor, service_id, principal)
            columns: dict = {}
            if "availability" in updates:
                columns.update(_availability_columns(data.availability))
            if "category" in updates:
                columns["category"] = data.category.value
            if "is_emergency" in updates:
                columns["is_emergency"] = int(data.is_emergency)
            if "images" in updates:
                columns["images"] = json.dumps(data.images)
            for key in ("name", "description", "base_price"):
                if key in updates:
                    columns[key] = updates[key]
            if columns:
                assignments = ", ".join(f"{key} = ?" for key in columns)
                cursor.execute(
                    f"UPDATE services SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*columns.values(), service_id),
                )
            row = fetch_service_row(cursor, service_id)
        logger.info("Provider %s updated service %s fields %s", principal.account_id, service_id, sorted(updates))
        await AuditService.log(
            user_id=principal.account_id,
            action="update",
            object_type="service",
            object_id=service_id,
            details={"fields": sorted(updates)},
        )
        return _row_to_service(row)

    @classmethod
    async def delete_service(cls, service_id: int, principal: Principal) -> None:
        """Remove a listing.  Existing bookings keep their copied data."""
        with get_cursor() as cursor:
            cls._owned_row(cursor, service_id, principal)
            cursor.execute("DELETE FROM services WHERE id = ?", (service_id,))
        logger.info("Provider %s deleted service %s", principal.account_id, service_id)
        await AuditService.log(
            user_id=principal.account_id,
            action="delete",
            object_type="service",
            object_id=service_id,
        )
