"""
Audit service for recording and querying significant writes.

Entries are appended to the ``audit_logs`` table after the business
transaction they describe has committed.  Only administrators may read
the log.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from homefix_api.app.core.db import get_connection


logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        A failure to write the record is logged and does not propagate:
        the action being audited has already been committed.

        Parameters
        ----------
        user_id : Optional[int]
            Account performing the action; ``None`` for system actions.
        action : str
            Short verb such as ``"create"``, ``"update"``, ``"review"``.
        object_type : str
            ``"account"``, ``"service"``, ``"booking"`` or ``"payment"``.
        object_id : Optional[int]
            Primary key of the affected object.
        details : Optional[dict]
            Additional structured data, stored as JSON.
        """
        try:
            conn = get_connection()
            try:
                conn.execute(
                    """
                    INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                    VALUES (?, ?, ?, ?, ?)
                    """,
                    (user_id, action, object_type, object_id, json.dumps(details) if details else None),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            logger.warning("Failed to write audit record %s %s %s: %s", action, object_type, object_id, e)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records, newest first, with optional filters."""
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if object_type:
            where_clauses.append("object_type = ?")
            params.append(object_type)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        logs = []
        for row in rows:
            details_data = None
            if row["details"]:
                try:
                    details_data = json.loads(row["details"])
                except json.JSONDecodeError:
                    details_data = row["details"]
            logs.append(
                {
                    "id": row["id"],
                    "user_id": row["user_id"],
                    "action": row["action"],
                    "object_type": row["object_type"],
                    "object_id": row["object_id"],
                    "timestamp": row["timestamp"],
                    "details": details_data,
                }
            )
        return logs
