from __future__ import annotations

import logging
from typing import Any

from courseware.auth import create_jwt, hash_password, verify_password
from courseware.db import PROFILE_TABLES
from courseware.errors import UnauthorizedError, ValidationError
from courseware.identifiers import new_object_id
from courseware.validation import require_text


LOGGER = logging.getLogger("courseware.auth")

MIN_PASSWORD_LENGTH = 8
# bcrypt only accepts up to 72 bytes of input.
MAX_PASSWORD_BYTES = 72


def check_email_registered(db, email: str) -> None:
    if db.fetch_credential_by_email(email):
        raise ValidationError("Email is registered")


def register_credential(db, email: Any, password: Any, user_type: Any, name: Any) -> dict:
    """Create a profile of ``user_type`` and the credential that links to it.

    Exactly one of the attendee/presenter/teacher links is set, matching
    ``user_type``.
    """
    email = require_text(email, "Valid email is required").lower()
    if "@" not in email:
        raise ValidationError("Valid email is required")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    if user_type not in PROFILE_TABLES:
        raise ValidationError("User type is invalid")
    name = require_text(name, "Name is required")

    check_email_registered(db, email)

    profile_id = new_object_id()
    credential = db.register_credential(
        user_type,
        {"id": profile_id, "name": name},
        {
            "id": new_object_id(),
            "email": email,
            "password_hash": hash_password(password),
            "user_type": user_type,
            f"{user_type}_id": profile_id,
        },
    )
    LOGGER.info(
        "credential.registered",
        extra={"credential_id": credential["id"]},
    )
    return {
        "id": credential["id"],
        "email": credential["email"],
        "userType": credential["user_type"],
        "profileId": profile_id,
        "token": create_jwt(credential["id"], credential["email"], credential["user_type"]),
    }


def authenticate(db, email: Any, password: Any) -> dict:
    if not isinstance(email, str) or not isinstance(password, str):
        raise UnauthorizedError("Invalid email or password")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise UnauthorizedError("Invalid email or password")
    credential = db.fetch_credential_by_email(email.strip().lower())
    if not credential or not verify_password(password, credential["password_hash"]):
        raise UnauthorizedError("Invalid email or password")
    return {
        "id": credential["id"],
        "email": credential["email"],
        "userType": credential["user_type"],
        "token": create_jwt(credential["id"], credential["email"], credential["user_type"]),
    }
