"""
Security helpers for password hashing and JWT authentication.

This module implements a lightweight JSON Web Token (JWT) mechanism
using HMAC‑SHA256 signatures and base64url encoding.  Tokens embed the
account id as ``sub``, the account role and an expiration timestamp
(``exp``).  Passwords are hashed with PBKDF2‑HMAC‑SHA256 and a random
salt.

Authenticated requests resolve to a :class:`Principal`, an immutable
value that endpoints receive through ``Depends(get_current_principal)``
and pass explicitly into service calls.
"""

import base64
import binascii
import hashlib
import hmac
import json
import logging
import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .config import settings
from .db import get_connection
from .exceptions import Forbidden, Unauthenticated
from ..schemas.user import Role


logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 100_000


@dataclass(frozen=True)
class Principal:
    """The authenticated account a request acts on behalf of."""

    account_id: int
    email: str
    role: Role

    @property
    def is_admin(self) -> bool:
        return self.role == Role.admin


def _b64_url_encode(data: bytes) -> str:
    """Base64‑url encode bytes without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("utf-8")


def _b64_url_decode(data: str) -> bytes:
    """Decode base64‑url encoded string, adding padding if necessary."""
    padding = '=' * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def _sign(message: bytes, secret: str) -> bytes:
    """Compute HMAC‑SHA256 signature of a message using the given secret."""
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).digest()


def create_access_token(data: Dict[str, object], expires_delta: Optional[int] = None) -> str:
    """Create a signed JWT token with the given payload.

    The payload is extended with an ``exp`` field representing the
    expiration time as a UNIX timestamp.  The token is a string of the
    form ``header.payload.signature``, each part base64url encoded.

    Parameters
    ----------
    data : dict
        Claims to embed in the token (e.g. ``{"sub": "12", "role": "homeowner"}``).
    expires_delta : Optional[int]
        Lifetime of the token in seconds.  Defaults to
        ``settings.access_token_expire_minutes * 60``.
    """
    to_encode = dict(data)
    exp_seconds = expires_delta or settings.access_token_expire_minutes * 60
    to_encode["exp"] = int(time.time()) + exp_seconds
    header = {"alg": "HS256", "typ": "JWT"}
    header_b64 = _b64_url_encode(json.dumps(header, separators=(',', ':')).encode("utf-8"))
    payload_b64 = _b64_url_encode(json.dumps(to_encode, separators=(',', ':')).encode("utf-8"))
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    signature_b64 = _b64_url_encode(_sign(signing_input, settings.secret_key))
    return f"{header_b64}.{payload_b64}.{signature_b64}"


def issue_token_for(account_id: int, role: str) -> str:
    """Token for an account; ``sub`` is the account id as a string."""
    return create_access_token({"sub": str(account_id), "role": role})


def decode_access_token(token: str) -> Optional[Dict[str, object]]:
    """Verify and decode a JWT token.

    Returns the payload when the signature matches and ``exp`` lies in
    the future, otherwise ``None``.
    """
    parts = token.split('.')
    if len(parts) != 3:
        return None
    header_b64, payload_b64, signature_b64 = parts
    signing_input = f"{header_b64}.{payload_b64}".encode("utf-8")
    expected_sig = _sign(signing_input, settings.secret_key)
    try:
        actual_sig = _b64_url_decode(signature_b64)
    except (binascii.Error, ValueError):
        return None
    if not hmac.compare_digest(expected_sig, actual_sig):
        return None
    try:
        data = json.loads(_b64_url_decode(payload_b64).decode("utf-8"))
    except (binascii.Error, ValueError):
        return None
    if not isinstance(data, dict):
        return None
    if data.get("exp") is None or int(data["exp"]) < int(time.time()):
        return None
    return data


security = HTTPBearer(auto_error=False)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """Dependency that resolves the bearer token to a :class:`Principal`.

    Raises ``Unauthenticated`` when the header is missing, the token is
    invalid or expired, or the account no longer exists.
    """
    if credentials is None:
        raise Unauthenticated("No authentication token provided")
    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise Unauthenticated("Invalid or expired token")
    try:
        account_id = int(payload.get("sub"))
    except (TypeError, ValueError):
        raise Unauthenticated("Invalid or expired token")

    conn = get_connection()
    try:
        row = conn.execute(
            "SELECT id, email, role FROM users WHERE id = ?",
            (account_id,),
        ).fetchone()
    finally:
        conn.close()
    if not row:
        raise Unauthenticated("User not found")
    return Principal(account_id=row["id"], email=row["email"], role=Role(row["role"]))


# ---------------------------------------------------------------------------
# Role-based access control (RBAC) helpers
# ---------------------------------------------------------------------------

def require_roles(*roles: Role) -> Callable[[Principal], Principal]:
    """Dependency factory to enforce that the caller has one of ``roles``.

    Use as ``Depends(require_roles(Role.service_provider))``.  Raises
    ``Forbidden`` for any other role.
    """

    def _role_dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise Forbidden(f"Access denied. Allowed roles: {allowed}")
        return principal

    return _role_dependency


def hash_password(password: str) -> str:
    """Hash a password using PBKDF2‑HMAC with SHA‑256.

    Returns ``"<salt hex>$<hash hex>"`` with a fresh 16‑byte salt.
    """
    salt = os.urandom(16)
    dk = hashlib.pbkdf2_hmac('sha256', password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return f"{salt.hex()}${dk.hex()}"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a stored salt+hash string."""
    try:
        salt_hex, hash_hex = hashed_password.split('$', 1)
        salt = bytes.fromhex(salt_hex)
        stored_hash = bytes.fromhex(hash_hex)
    except (AttributeError, ValueError):
        logger.warning("Stored password hash has an unexpected format")
        return False
    dk = hashlib.pbkdf2_hmac('sha256', plain_password.encode('utf-8'), salt, PBKDF2_ITERATIONS)
    return hmac.compare_digest(dk, stored_hash)
