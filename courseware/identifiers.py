from __future__ import annotations

import re
import secrets
from time import time
from typing import Any, Optional

OBJECT_ID_PATTERN = re.compile(r"^[0-9a-fA-F]{24}$")


def new_object_id(now: Optional[float] = None) -> str:
    """Return a 24 hex digit id: 8 digits of creation second + 16 random digits."""
    timestamp = int(now if now is not None else time())
    return f"{timestamp & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def is_object_id(value: Any) -> bool:
    return isinstance(value, str) and bool(OBJECT_ID_PATTERN.match(value))
