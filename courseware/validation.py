from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional

from courseware.errors import ValidationError
from courseware.identifiers import is_object_id


def require_object_id(value: Any, message: str) -> str:
    if not is_object_id(value):
        raise ValidationError(message)
    return value.lower()


def require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


def parse_datetime(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 date or datetime string; naive values are taken as UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if raw.endswith(("Z", "z")):
            raw = raw[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def require_datetime(value: Any, message: str) -> datetime:
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValidationError(message)
    return parsed


def parse_page_param(raw: Any, default: int) -> int:
    """Lenient integer parsing for pagination query params.

    Missing, non-numeric and non-positive values fall back to ``default``.
    """
    if raw is None:
        return default
    try:
        parsed = int(str(raw).strip())
    except ValueError:
        return default
    return parsed if parsed > 0 else default
