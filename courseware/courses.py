"""Course service: reads, presenter-owned writes and image upload."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional

from courseware.errors import IntegrityError, NotFoundError, PayloadTooLargeError, ValidationError
from courseware.identifiers import new_object_id
from courseware.ownership import resolve_presenter, verify_ownership
from courseware.runtime_config import default_page_limit, max_image_upload_bytes, max_page_limit
from courseware.storage import save_image
from courseware.validation import parse_page_param, require_object_id, require_text


LOGGER = logging.getLogger("courseware.courses")

_IMAGE_EXTENSION_PATTERN = re.compile(r"^\.[a-z0-9]{1,8}$")


def isoformat(value: Any) -> Optional[str]:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def course_payload(course: Dict[str, Any]) -> dict:
    return {
        "id": course["id"],
        "name": course.get("name"),
        "presenter": {
            "id": course.get("presenter_id"),
            "name": course.get("presenter_name"),
        },
        "description": course.get("description"),
        "imageLink": course.get("image_link"),
    }


def lecture_list_item(lecture: Dict[str, Any]) -> dict:
    return {
        "id": lecture["id"],
        "name": lecture.get("name"),
        "description": lecture.get("description"),
        "time": isoformat(lecture.get("time")),
        "updatedAt": isoformat(lecture.get("updated_at")),
        "imageLink": lecture.get("image_link"),
        "teacher": {
            "id": lecture.get("teacher_id"),
            "name": lecture.get("teacher_name"),
        },
    }


def get_course(db, course_id: Any) -> dict:
    course_id = require_object_id(course_id, "Course Id is requested")
    course = db.fetch_course(course_id)
    if not course:
        raise NotFoundError("Invalid course Id")
    return course_payload(course)


def list_course_lectures(db, course_id: Any, page: Any = None, limit: Any = None) -> dict:
    course_id = require_object_id(course_id, "Course Id is requested")
    current_page = parse_page_param(page, 1)
    page_limit = min(parse_page_param(limit, default_page_limit()), max_page_limit())
    offset = (current_page - 1) * page_limit

    total = db.count_course_lectures(course_id)
    # Pages past the end never reach the database, so oversized offsets cannot overflow bigint.
    if offset >= total:
        lectures = []
    else:
        lectures = db.fetch_course_lectures(course_id, limit=page_limit, offset=offset)
    page_count = math.ceil(total / page_limit)
    return {
        "object": "list",
        "hasNext": page_count > current_page,
        "data": [lecture_list_item(lecture) for lecture in lectures],
        "currentPage": current_page,
        "limit": page_limit,
        "pageCount": page_count,
    }


def create_course(
    db,
    caller_credential_id: str,
    name: Any,
    description: Optional[str] = None,
    image_link: Optional[str] = None,
) -> dict:
    name = require_text(name, "Course name is required")
    presenter = resolve_presenter(db, caller_credential_id)

    course_id = new_object_id()
    db.insert_course(
        {
            "id": course_id,
            "name": name,
            "description": description or "",
            "image_link": image_link or "",
            "presenter_id": presenter["id"],
            "status": True,
            "updated_by": caller_credential_id,
        }
    )
    course = db.fetch_course(course_id)
    if not course:
        raise IntegrityError(f"Course {course_id} missing after insert.")

    LOGGER.info(
        "course.created",
        extra={
            "course_id": course_id,
            "presenter_id": presenter["id"],
            "credential_id": caller_credential_id,
        },
    )
    return course_payload(course)


def update_course(
    db,
    caller_credential_id: str,
    course_id: Any,
    name: Optional[str] = None,
    description: Optional[str] = None,
    image_link: Optional[str] = None,
) -> dict:
    course_id = require_object_id(course_id, "Course Id is required")
    if name is not None:
        name = require_text(name, "Course name is required")
    verify_ownership(
        db,
        caller_credential_id,
        db.fetch_course,
        course_id,
        not_found_message="Invalid course Id",
    )

    fields: Dict[str, Any] = {
        column: value
        for column, value in (
            ("name", name),
            ("description", description),
            ("image_link", image_link),
        )
        if value is not None
    }
    fields["updated_by"] = caller_credential_id
    course = db.update_course(course_id, fields)
    if not course:
        raise IntegrityError(f"Course {course_id} vanished during update.")

    LOGGER.info(
        "course.updated",
        extra={"course_id": course_id, "credential_id": caller_credential_id},
    )
    return course_payload(course)


def delete_course(db, caller_credential_id: str, course_id: Any) -> dict:
    course_id = require_object_id(course_id, "Course Id is required")
    verify_ownership(
        db,
        caller_credential_id,
        db.fetch_course,
        course_id,
        not_found_message="Invalid course Id",
    )

    if not db.update_course(course_id, {"status": False, "updated_by": caller_credential_id}):
        raise IntegrityError(f"Course {course_id} vanished during delete.")

    LOGGER.info(
        "course.deleted",
        extra={"course_id": course_id, "credential_id": caller_credential_id},
    )
    return {"id": course_id}


def _image_extension(filename: Optional[str]) -> str:
    suffix = Path(filename or "").suffix.lower()
    return suffix if _IMAGE_EXTENSION_PATTERN.match(suffix) else ""


def upload_course_image(
    db,
    caller_credential_id: str,
    course_id: Any,
    fileobj: Optional[BinaryIO],
    filename: Optional[str],
    size: Optional[int],
) -> dict:
    if fileobj is None or not size or size <= 0:
        raise ValidationError("No file uploaded.")
    course_id = require_object_id(course_id, "Course Id is required")
    verify_ownership(
        db,
        caller_credential_id,
        db.fetch_course,
        course_id,
        not_found_message="Invalid course Id",
    )

    try:
        storage_key = save_image(
            fileobj,
            f"course{course_id}{_image_extension(filename)}",
            max_bytes=max_image_upload_bytes(),
        )
    except ValueError as exc:
        raise PayloadTooLargeError(str(exc)) from exc

    if not db.update_course(
        course_id,
        {"image_link": storage_key, "updated_by": caller_credential_id},
    ):
        raise IntegrityError(f"Course {course_id} vanished during image upload.")

    LOGGER.info(
        "course.image_uploaded",
        extra={
            "course_id": course_id,
            "credential_id": caller_credential_id,
            "storage_key": storage_key,
        },
    )
    return {"imageLink": storage_key}
