"""Ownership gate shared by every update/delete path.

A mutation is only allowed when the caller's presenter (credential ->
presenter) is the presenter that owns the target record.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from courseware.errors import IntegrityError, NotFoundError, UnauthorizedError


LOGGER = logging.getLogger("courseware.ownership")

RecordLoader = Callable[[str], Optional[Dict[str, Any]]]


@dataclass(frozen=True)
class OwnershipGrant:
    presenter: Dict[str, Any]
    record: Dict[str, Any]


def resolve_presenter(db, credential_id: str) -> Dict[str, Any]:
    """Return the presenter profile linked to a credential.

    Raises:
        IntegrityError: the credential, its presenter link, or the presenter
            profile is missing. Authentication vouched for this caller, so
            any gap here is a data problem rather than a user error.
    """
    credential = db.fetch_credential(credential_id)
    if not credential:
        raise IntegrityError(f"Credential {credential_id} not found.")
    presenter_id = credential.get("presenter_id")
    if not presenter_id:
        raise IntegrityError(f"Credential {credential_id} has no presenter profile.")
    presenter = db.fetch_presenter(presenter_id)
    if not presenter:
        raise IntegrityError(f"Presenter {presenter_id} not found.")
    return presenter


def verify_ownership(
    db,
    caller_credential_id: str,
    load_record: RecordLoader,
    record_id: str,
    *,
    not_found_message: str,
) -> OwnershipGrant:
    # The two lookups are independent; both must finish before comparing.
    with ThreadPoolExecutor(max_workers=2) as pool:
        presenter_future = pool.submit(resolve_presenter, db, caller_credential_id)
        record_future = pool.submit(load_record, record_id)
        presenter = presenter_future.result()
        record = record_future.result()

    if not record:
        raise NotFoundError(not_found_message)

    if record.get("presenter_id") != presenter["id"]:
        LOGGER.warning(
            "ownership.denied",
            extra={
                "credential_id": caller_credential_id,
                "presenter_id": presenter["id"],
                "record_id": record_id,
            },
        )
        raise UnauthorizedError("Invalid user Id")

    return OwnershipGrant(presenter=presenter, record=record)
