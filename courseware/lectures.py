"""Lecture service.

Lectures are always listed through their course (see ``courses``); this
module covers the single-lecture reads and the presenter-owned writes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from courseware.courses import isoformat
from courseware.errors import IntegrityError, NotFoundError, ValidationError
from courseware.identifiers import new_object_id
from courseware.meetings import MeetingLinkProvider, provision_meeting_link
from courseware.ownership import resolve_presenter, verify_ownership
from courseware.validation import require_datetime, require_object_id, require_text


LOGGER = logging.getLogger("courseware.lectures")


def lecture_payload(lecture: Dict[str, Any]) -> dict:
    return {
        "id": lecture["id"],
        "name": lecture.get("name"),
        "time": isoformat(lecture.get("time")),
        "description": lecture.get("description"),
        "presenter": {
            "id": lecture.get("presenter_id"),
            "name": lecture.get("presenter_name"),
        },
        "teacher": {
            "id": lecture.get("teacher_id"),
            "name": lecture.get("teacher_name"),
        },
        "zoomLink": lecture.get("zoom_link"),
        "vimeoLink": lecture.get("vimeo_link"),
    }


def _ensure_teacher_exists(db, teacher_id: str) -> None:
    if not db.fetch_teacher(teacher_id):
        raise ValidationError("Invalid teacher Id")


def get_lecture(db, lecture_id: Any) -> dict:
    lecture_id = require_object_id(lecture_id, "Lecture Id is requested")
    lecture = db.fetch_lecture(lecture_id)
    if not lecture:
        raise NotFoundError("Invalid lecture Id")
    return lecture_payload(lecture)


def create_lecture(
    db,
    caller_credential_id: str,
    name: Any,
    teacher_id: Any,
    course_id: Any,
    time: Any,
    description: Optional[str] = None,
    provision_link: MeetingLinkProvider = provision_meeting_link,
) -> dict:
    name = require_text(name, "Lecture name is required")
    teacher_id = require_object_id(teacher_id, "Teacher Id is required")
    course_id = require_object_id(course_id, "Course Id is required")
    scheduled_at = require_datetime(time, "Date is required")

    presenter = resolve_presenter(db, caller_credential_id)
    if not db.fetch_course(course_id):
        raise ValidationError("Invalid course Id")
    _ensure_teacher_exists(db, teacher_id)

    lecture: Dict[str, Any] = {
        "id": new_object_id(),
        "name": name,
        "time": scheduled_at,
        "description": description,
        "course_id": course_id,
        "presenter_id": presenter["id"],
        "teacher_id": teacher_id,
        "status": True,
        "updated_by": caller_credential_id,
    }
    lecture["zoom_link"] = provision_link(lecture)
    db.insert_lecture(lecture)

    saved = db.fetch_lecture(lecture["id"])
    if not saved:
        raise IntegrityError(f"Lecture {lecture['id']} missing after insert.")

    LOGGER.info(
        "lecture.created",
        extra={
            "lecture_id": lecture["id"],
            "course_id": course_id,
            "teacher_id": teacher_id,
            "presenter_id": presenter["id"],
            "credential_id": caller_credential_id,
        },
    )
    return lecture_payload(saved)


def update_lecture(
    db,
    caller_credential_id: str,
    lecture_id: Any,
    name: Any,
    time: Any,
    teacher_id: Any,
    description: Optional[str] = None,
    zoom_link: Optional[str] = None,
    vimeo_link: Optional[str] = None,
) -> dict:
    lecture_id = require_object_id(lecture_id, "Lecture Id is required")
    name = require_text(name, "Lecture name is required")
    scheduled_at = require_datetime(time, "Date is required")
    teacher_id = require_object_id(teacher_id, "Teacher Id is required")

    verify_ownership(
        db,
        caller_credential_id,
        db.fetch_lecture,
        lecture_id,
        not_found_message="Invalid lecture Id",
    )
    _ensure_teacher_exists(db, teacher_id)

    fields: Dict[str, Any] = {
        "name": name,
        "time": scheduled_at,
        "teacher_id": teacher_id,
        "updated_by": caller_credential_id,
    }
    for column, value in (
        ("description", description),
        ("zoom_link", zoom_link),
        ("vimeo_link", vimeo_link),
    ):
        if value is not None:
            fields[column] = value

    lecture = db.update_lecture(lecture_id, fields)
    if not lecture:
        raise IntegrityError(f"Lecture {lecture_id} vanished during update.")

    LOGGER.info(
        "lecture.updated",
        extra={"lecture_id": lecture_id, "credential_id": caller_credential_id},
    )
    return lecture_payload(lecture)


def delete_lecture(db, caller_credential_id: str, lecture_id: Any) -> dict:
    lecture_id = require_object_id(lecture_id, "Lecture Id is required")
    verify_ownership(
        db,
        caller_credential_id,
        db.fetch_lecture,
        lecture_id,
        not_found_message="Invalid lecture Id",
    )

    if not db.update_lecture(lecture_id, {"status": False, "updated_by": caller_credential_id}):
        raise IntegrityError(f"Lecture {lecture_id} vanished during delete.")

    LOGGER.info(
        "lecture.deleted",
        extra={"lecture_id": lecture_id, "credential_id": caller_credential_id},
    )
    return {"id": lecture_id}
