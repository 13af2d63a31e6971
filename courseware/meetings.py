"""Meeting-link provisioning.

Live meeting provisioning is an external integration that does not exist
yet. ``provision_meeting_link`` is the seam: the lecture service accepts any
callable with the same signature, and the default returns a placeholder.
"""

from __future__ import annotations

import os
from typing import Any, Callable, Dict

PLACEHOLDER_MEETING_LINK = "invalid sample link"

MeetingLinkProvider = Callable[[Dict[str, Any]], str]


def provision_meeting_link(lecture: Dict[str, Any]) -> str:
    return os.getenv("CW_MEETING_LINK_PLACEHOLDER", PLACEHOLDER_MEETING_LINK)
