from __future__ import annotations

from pathlib import Path
import sys
from datetime import datetime, timezone
from types import SimpleNamespace
from typing import Any, Dict, Optional

import pytest

ROOT = Path(__file__).resolve().parents[2]
sys.path.append(str(ROOT))

from courseware.auth import create_jwt
from courseware.db import (
    COURSE_MUTABLE_COLUMNS,
    LECTURE_MUTABLE_COLUMNS,
    utc_now,
    with_timestamps,
)
from courseware.identifiers import new_object_id


class FakeDB:
    """In-memory stand-in exposing the same methods as ``courseware.db.Database``."""

    def __init__(self) -> None:
        self.presenters: dict[str, dict] = {}
        self.teachers: dict[str, dict] = {}
        self.attendees: dict[str, dict] = {}
        self.credentials: dict[str, dict] = {}
        self.courses: dict[str, dict] = {}
        self.lectures: dict[str, dict] = {}
        self.calls: list[str] = []

    # -- seeding helpers -------------------------------------------------

    def add_profile_credential(self, user_type: str, name: str, email: Optional[str] = None) -> tuple[str, str]:
        profile_id = new_object_id()
        credential_id = new_object_id()
        self.register_credential(
            user_type,
            {"id": profile_id, "name": name},
            {
                "id": credential_id,
                "email": email or f"{name.lower()}@example.com",
                "password_hash": "not-a-real-hash",
                "user_type": user_type,
                f"{user_type}_id": profile_id,
            },
        )
        self.calls.clear()
        return credential_id, profile_id

    def add_course(self, presenter_id: str, name: str = "Course", *, status: bool = True) -> str:
        course_id = new_object_id()
        self.insert_course(
            {
                "id": course_id,
                "name": name,
                "description": "",
                "image_link": "",
                "presenter_id": presenter_id,
                "status": status,
            }
        )
        self.calls.clear()
        return course_id

    def add_lecture(
        self,
        course_id: str,
        presenter_id: str,
        teacher_id: str,
        name: str = "Lecture",
        *,
        time: Optional[datetime] = None,
        status: bool = True,
    ) -> str:
        lecture_id = new_object_id()
        self.insert_lecture(
            {
                "id": lecture_id,
                "name": name,
                "course_id": course_id,
                "presenter_id": presenter_id,
                "teacher_id": teacher_id,
                "time": time or datetime(2024, 1, 1, tzinfo=timezone.utc),
                "zoom_link": "invalid sample link",
                "status": status,
            }
        )
        self.calls.clear()
        return lecture_id

    # -- Database surface ------------------------------------------------

    def healthcheck(self) -> None:
        self.calls.append("healthcheck")

    def register_credential(self, user_type: str, profile: Dict[str, Any], credential: Dict[str, Any]) -> dict:
        self.calls.append("register_credential")
        table = {"attendee": self.attendees, "presenter": self.presenters, "teacher": self.teachers}[user_type]
        table[profile["id"]] = with_timestamps(profile)
        row = with_timestamps(
            {
                "attendee_id": None,
                "presenter_id": None,
                "teacher_id": None,
                "updated_by": None,
                **credential,
            }
        )
        self.credentials[row["id"]] = row
        return dict(row)

    def fetch_credential(self, credential_id: str) -> Optional[dict]:
        self.calls.append("fetch_credential")
        row = self.credentials.get(credential_id)
        return dict(row) if row else None

    def fetch_credential_by_email(self, email: str) -> Optional[dict]:
        self.calls.append("fetch_credential_by_email")
        for row in self.credentials.values():
            if row["email"].lower() == email.lower():
                return dict(row)
        return None

    def fetch_presenter(self, presenter_id: str) -> Optional[dict]:
        self.calls.append("fetch_presenter")
        row = self.presenters.get(presenter_id)
        return dict(row) if row else None

    def fetch_teacher(self, teacher_id: str) -> Optional[dict]:
        self.calls.append("fetch_teacher")
        row = self.teachers.get(teacher_id)
        return dict(row) if row else None

    def insert_course(self, payload: Dict[str, Any]) -> None:
        self.calls.append("insert_course")
        row = with_timestamps({"status": True, "updated_by": None, **payload})
        self.courses[row["id"]] = row

    def _joined_course(self, row: dict) -> dict:
        presenter = self.presenters.get(row.get("presenter_id")) or {}
        return {**row, "presenter_name": presenter.get("name")}

    def fetch_course(self, course_id: str, *, include_inactive: bool = False) -> Optional[dict]:
        self.calls.append("fetch_course")
        row = self.courses.get(course_id)
        if not row or (not include_inactive and not row["status"]):
            return None
        return self._joined_course(row)

    def update_course(self, course_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        self.calls.append("update_course")
        assert set(fields) <= COURSE_MUTABLE_COLUMNS
        row = self.courses.get(course_id)
        if not row:
            return None
        row.update(fields)
        row["updated_at"] = utc_now()
        return self._joined_course(row)

    def insert_lecture(self, payload: Dict[str, Any]) -> None:
        self.calls.append("insert_lecture")
        row = with_timestamps(
            {
                "description": None,
                "vimeo_link": None,
                "zoom_link": None,
                "zoom_start_link": None,
                "zoom_id": None,
                "zoom_res_body": None,
                "image_link": None,
                "status": True,
                "updated_by": None,
                **payload,
            }
        )
        self.lectures[row["id"]] = row

    def _joined_lecture(self, row: dict) -> dict:
        presenter = self.presenters.get(row.get("presenter_id")) or {}
        teacher = self.teachers.get(row.get("teacher_id")) or {}
        return {**row, "presenter_name": presenter.get("name"), "teacher_name": teacher.get("name")}

    def fetch_lecture(self, lecture_id: str, *, include_inactive: bool = False) -> Optional[dict]:
        self.calls.append("fetch_lecture")
        row = self.lectures.get(lecture_id)
        if not row or (not include_inactive and not row["status"]):
            return None
        return self._joined_lecture(row)

    def _active_course_lectures(self, course_id: str) -> list[dict]:
        rows = [
            row
            for row in self.lectures.values()
            if row["course_id"] == course_id and row["status"]
        ]
        rows.sort(key=lambda row: row["id"], reverse=True)
        rows.sort(key=lambda row: row["time"], reverse=True)
        return rows

    def fetch_course_lectures(
        self,
        course_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[dict]:
        self.calls.append("fetch_course_lectures")
        rows = self._active_course_lectures(course_id)
        if offset:
            rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return [self._joined_lecture(row) for row in rows]

    def count_course_lectures(self, course_id: str) -> int:
        self.calls.append("count_course_lectures")
        return len(self._active_course_lectures(course_id))

    def update_lecture(self, lecture_id: str, fields: Dict[str, Any]) -> Optional[dict]:
        self.calls.append("update_lecture")
        assert set(fields) <= LECTURE_MUTABLE_COLUMNS
        row = self.lectures.get(lecture_id)
        if not row:
            return None
        row.update(fields)
        row["updated_at"] = utc_now()
        return self._joined_lecture(row)


@pytest.fixture(autouse=True)
def _courseware_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("CW_JWT_SECRET", "test-secret")
    monkeypatch.setenv("STORAGE_MODE", "local")
    monkeypatch.setenv("CW_STORAGE_DIR", str(tmp_path / "storage"))
    for name in (
        "CW_PAGINATION_LIMIT",
        "CW_MAX_IMAGE_UPLOAD_MB",
        "CW_PAGINATION_MAX_LIMIT",
        "CW_LOG_LEVEL",
        "CW_MEETING_LINK_PLACEHOLDER",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_db() -> FakeDB:
    return FakeDB()


@pytest.fixture
def seeded(fake_db: FakeDB) -> SimpleNamespace:
    """Two presenters, a teacher and an attendee; Alice owns one active course."""
    alice_credential, alice_presenter = fake_db.add_profile_credential("presenter", "Alice")
    bob_credential, bob_presenter = fake_db.add_profile_credential("presenter", "Bob")
    teacher_credential, teacher_id = fake_db.add_profile_credential("teacher", "Tina")
    attendee_credential, attendee_id = fake_db.add_profile_credential("attendee", "Adam")
    course_id = fake_db.add_course(alice_presenter, "Algebra")
    return SimpleNamespace(
        db=fake_db,
        alice_credential=alice_credential,
        alice_presenter=alice_presenter,
        bob_credential=bob_credential,
        bob_presenter=bob_presenter,
        teacher_credential=teacher_credential,
        teacher_id=teacher_id,
        attendee_credential=attendee_credential,
        attendee_id=attendee_id,
        course_id=course_id,
    )


@pytest.fixture
def bearer():
    def _headers(credential_id: str, user_type: str = "presenter") -> dict[str, str]:
        token = create_jwt(credential_id, f"{credential_id}@example.com", user_type)
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def api_client(seeded, monkeypatch):
    """TestClient over the real app, wired to the seeded FakeDB."""
    from fastapi.testclient import TestClient

    import courseware.app as app_module

    monkeypatch.setattr(app_module, "get_database", lambda: seeded.db)
    return TestClient(app_module.app)
