"""Auth: bcrypt password hashing and JWT bearer tokens carrying the credential id."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone, timedelta
from typing import Any, Dict, Optional

import bcrypt
import jwt
from fastapi import Request


LOGGER = logging.getLogger("courseware.auth")

JWT_SECRET_ENV = "CW_JWT_SECRET"
JWT_ALGORITHM = "HS256"
JWT_EXPIRY_DAYS = 30


def _get_jwt_secret() -> str:
    secret = os.getenv(JWT_SECRET_ENV, "").strip()
    if not secret:
        raise RuntimeError(f"{JWT_SECRET_ENV} environment variable must be set.")
    return secret


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def create_jwt(credential_id: str, email: str, user_type: str) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": credential_id,
        "email": email,
        "userType": user_type,
        "iat": now,
        "exp": now + timedelta(days=JWT_EXPIRY_DAYS),
    }
    return jwt.encode(payload, _get_jwt_secret(), algorithm=JWT_ALGORITHM)


def decode_jwt(token: str) -> Dict[str, Any]:
    return jwt.decode(token, _get_jwt_secret(), algorithms=[JWT_ALGORITHM])


def get_caller_credential_id(request: Request) -> Optional[str]:
    """Return the credential id from the bearer token, or None when absent or invalid."""
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    try:
        payload = decode_jwt(token.strip())
    except jwt.InvalidTokenError as exc:
        LOGGER.info("auth.invalid_token", extra={"error": str(exc)})
        return None
    subject = payload.get("sub")
    return subject if isinstance(subject, str) and subject else None
