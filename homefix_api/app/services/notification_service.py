"""
Business logic for in‑app notifications.

Any authenticated account may send a notification to an existing
account; only the recipient can list it or mark it read.
"""

import logging
import sqlite3
from typing import List

from homefix_api.app.core.db import get_connection, get_cursor
from homefix_api.app.core.exceptions import NotFound
from homefix_api.app.core.security import Principal
from homefix_api.app.schemas.notification import NotificationCreate, NotificationRead


logger = logging.getLogger(__name__)

NOTIFICATION_COLUMNS = "id, user_id, message, type, read, created_at, updated_at"


def _row_to_notification(row: sqlite3.Row) -> NotificationRead:
    return NotificationRead(
        id=row["id"],
        user_id=row["user_id"],
        message=row["message"],
        type=row["type"],
        read=bool(row["read"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class NotificationService:

    @classmethod
    async def send(cls, data: NotificationCreate, principal: Principal) -> NotificationRead:
        with get_cursor() as cursor:
            if not cursor.execute("SELECT id FROM users WHERE id = ?", (data.user_id,)).fetchone():
                raise NotFound("User not found")
            cursor.execute(
                "INSERT INTO notifications (user_id, message, type) VALUES (?, ?, ?)",
                (data.user_id, data.message, data.type),
            )
            row = cursor.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE id = ?", (cursor.lastrowid,)
            ).fetchone()
        logger.info("Account %s sent %s notification %s to %s", principal.account_id, data.type, row["id"], data.user_id)
        return _row_to_notification(row)

    @classmethod
    async def list_for(cls, principal: Principal) -> List[NotificationRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE user_id = ? ORDER BY created_at DESC, id DESC",
                (principal.account_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_notification(row) for row in rows]

    @classmethod
    async def mark_as_read(cls, notification_id: int, principal: Principal) -> NotificationRead:
        """Mark one of the caller's notifications read.

        Someone else's notification is reported as missing rather than
        forbidden, so other accounts cannot learn which ids exist.
        """
        with get_cursor() as cursor:
            cursor.execute(
                "UPDATE notifications SET read = 1, updated_at = CURRENT_TIMESTAMP WHERE id = ? AND user_id = ?",
                (notification_id, principal.account_id),
            )
            if cursor.rowcount == 0:
                raise NotFound("Notification not found")
            row = cursor.execute(
                f"SELECT {NOTIFICATION_COLUMNS} FROM notifications WHERE id = ?", (notification_id,)
            ).fetchone()
        return _row_to_notification(row)
