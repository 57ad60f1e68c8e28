# app/core/auth.py
import uuid
from typing import Any, Literal

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import SQLModel

from app.core.config import get_settings

# App-level roles. "guest" = no token, so it has no Principal.
Role = Literal["user", "admin"]

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so we can support "guest" mode (unauthenticated).
bearer_scheme = HTTPBearer(auto_error=False)


class Principal(SQLModel):
    """
    The authenticated caller, taken from Supabase JWT claims.

    Identity:
      - id: Supabase auth.users.id (JWT "sub")

    Role:
      - "admin" when app_metadata.role == "admin", else "user"
    """

    id: uuid.UUID
    email: str | None = None
    role: Role = "user"


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    # Supabase provides sub as a string; enforce UUID
    try:
        sub_uuid = uuid.UUID(sub)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid sub in token",
        )

    app_metadata = payload.get("app_metadata") or {}
    role: Role = "admin" if app_metadata.get("role") == "admin" else "user"
    return Principal(id=sub_uuid, email=payload.get("email"), role=role)


def get_current_principal(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Principal | None:
    """
    Resolve the caller from a Supabase JWT.

    Returns:
        Principal if authenticated, else None for guests.

    Raises:
        HTTPException(401): if token is malformed or missing required claims.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    return principal_from_claims(payload)


def require_auth(principal: Principal | None = Depends(get_current_principal)) -> Principal:
    """
    Enforce authentication. Guests are rejected with 401.
    """
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return principal


def require_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """
    Enforce admin role. Non-admins are rejected with 403.
    """
    if principal.role != "admin":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return principal
