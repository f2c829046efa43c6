"""
Business logic for accounts.

Registration, credential checks and profile maintenance.  Email
addresses are unique; phone numbers are unique when given.  An
account's role is fixed at registration.
"""

import logging
import sqlite3
from typing import Optional

from homefix_api.app.core.db import get_connection, get_cursor
from homefix_api.app.core.exceptions import Conflict, NotFound, ValidationError
from homefix_api.app.core.security import Principal, hash_password, verify_password
from homefix_api.app.schemas.user import AccountCreate, AccountRead, ProfileUpdate, Role
from homefix_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

ACCOUNT_COLUMNS = "id, email, first_name, last_name, role, phone_number, address, created_at"

PROFILE_FIELDS = ("first_name", "last_name", "email", "phone_number", "address")

# Columns declared NOT NULL; the rest may be cleared with an explicit null.
REQUIRED_PROFILE_FIELDS = ("first_name", "last_name", "email")


def _row_to_account(row: sqlite3.Row) -> AccountRead:
    return AccountRead(
        id=row["id"],
        email=row["email"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        role=row["role"],
        phone_number=row["phone_number"],
        address=row["address"],
        created_at=row["created_at"],
    )


class UserService:
    """Service for registering and maintaining accounts."""

    @staticmethod
    def _ensure_unique(
        cursor: sqlite3.Cursor,
        email: Optional[str],
        phone_number: Optional[str],
        exclude_id: Optional[int] = None,
    ) -> None:
        """Raise ``Conflict`` if another account already uses the email or phone."""
        if email:
            row = cursor.execute(
                "SELECT id FROM users WHERE email = ? AND id IS NOT ?",
                (email, exclude_id),
            ).fetchone()
            if row:
                raise Conflict("User with this email already exists")
        if phone_number:
            row = cursor.execute(
                "SELECT id FROM users WHERE phone_number = ? AND id IS NOT ?",
                (phone_number, exclude_id),
            ).fetchone()
            if row:
                raise Conflict("User with this phone number already exists")

    @classmethod
    async def create_user(cls, data: AccountCreate, allow_admin: bool = False) -> AccountRead:
        """Register a new account and return it.

        Self‑registration is limited to homeowners and service
        providers; ``allow_admin`` is only set by the account
        management script.
        """
        if data.role == Role.admin and not allow_admin:
            raise ValidationError("Administrator accounts cannot be self-registered")
        email = str(data.email).lower()
        logger.info("Registering %s account %s", data.role.value, email)
        try:
            with get_cursor() as cursor:
                cls._ensure_unique(cursor, email, data.phone_number)
                cursor.execute(
                    """
                    INSERT INTO users (email, password, first_name, last_name, role, phone_number, address)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        email,
                        hash_password(data.password),
                        data.first_name,
                        data.last_name,
                        data.role.value,
                        data.phone_number,
                        data.address,
                    ),
                )
                user_id = cursor.lastrowid
                row = cursor.execute(
                    f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE id = ?", (user_id,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                raise
            # Lost a race with a concurrent registration for the same email.
            raise Conflict("User with this email already exists")
        await AuditService.log(
            user_id=user_id,
            action="create",
            object_type="account",
            object_id=user_id,
            details={"email": email, "role": data.role.value},
        )
        return _row_to_account(row)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[AccountRead]:
        """Return the account if the credentials match, otherwise ``None``."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {ACCOUNT_COLUMNS}, password FROM users WHERE email = ?",
                (email.lower(),),
            ).fetchone()
        finally:
            conn.close()
        if not row or not verify_password(password, row["password"]):
            return None
        return _row_to_account(row)

    @classmethod
    async def get_user_by_id(cls, user_id: int) -> AccountRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE id = ?", (user_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound("User not found")
        return _row_to_account(row)

    @classmethod
    async def update_profile(cls, principal: Principal, data: ProfileUpdate) -> AccountRead:
        """Apply the supplied profile fields to the caller's own account.

        Raises ``ValidationError`` if nothing updatable was supplied or a
        name or the email is set to null, and ``Conflict`` if the new
        email or phone number belongs to someone else.
        """
        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if k in PROFILE_FIELDS}
        if not updates:
            raise ValidationError(
                "No valid fields to update. Allowed fields: " + ", ".join(PROFILE_FIELDS)
            )
        missing = [k for k in REQUIRED_PROFILE_FIELDS if k in updates and updates[k] is None]
        if missing:
            raise ValidationError("Fields cannot be empty: " + ", ".join(missing))
        if "email" in updates:
            updates["email"] = str(updates["email"]).lower()
        try:
            with get_cursor() as cursor:
                cls._ensure_unique(
                    cursor,
                    updates.get("email"),
                    updates.get("phone_number"),
                    exclude_id=principal.account_id,
                )
                assignments = ", ".join(f"{key} = ?" for key in updates)
                cursor.execute(
                    f"UPDATE users SET {assignments}, updated_at = CURRENT_TIMESTAMP WHERE id = ?",
                    (*updates.values(), principal.account_id),
                )
                row = cursor.execute(
                    f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE id = ?", (principal.account_id,)
                ).fetchone()
        except sqlite3.IntegrityError as e:
            if "UNIQUE" not in str(e):
                raise
            raise Conflict("Email or phone number is already in use")
        if not row:
            raise NotFound("User not found")
        logger.info("Account %s updated fields %s", principal.account_id, sorted(updates))
        await AuditService.log(
            user_id=principal.account_id,
            action="update",
            object_type="account",
            object_id=principal.account_id,
            details={"fields": sorted(updates)},
        )
        return _row_to_account(row)

    @classmethod
    async def set_password(cls, email: str, password: str) -> None:
        """Replace an account's password hash.  Used by ``manage_accounts.py``."""
        with get_cursor() as cursor:
            cursor.execute(
                "UPDATE users SET password = ?, updated_at = CURRENT_TIMESTAMP WHERE email = ?",
                (hash_password(password), email.lower()),
            )
            if cursor.rowcount == 0:
                raise NotFound(f"No user found with email: {email}")

    @classmethod
    async def get_user_by_email(cls, email: str) -> AccountRead:
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {ACCOUNT_COLUMNS} FROM users WHERE email = ?", (email.lower(),)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFound(f"No user found with email: {email}")
        return _row_to_account(row)
