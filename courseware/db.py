from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import psycopg
from psycopg.rows import dict_row


MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"

PROFILE_TABLES = {
    "attendee": "attendees",
    "presenter": "presenters",
    "teacher": "teachers",
}

COURSE_MUTABLE_COLUMNS = frozenset(
    {"name", "description", "image_link", "status", "updated_by"}
)

LECTURE_MUTABLE_COLUMNS = frozenset(
    {
        "name",
        "description",
        "teacher_id",
        "time",
        "vimeo_link",
        "zoom_link",
        "zoom_start_link",
        "zoom_id",
        "zoom_res_body",
        "image_link",
        "status",
        "updated_by",
    }
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def with_timestamps(payload: Dict[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Save hook: stamp ``updated_at`` and, for new records, ``created_at``."""
    stamped = dict(payload)
    moment = now or utc_now()
    stamped["updated_at"] = moment
    if not stamped.get("created_at"):
        stamped["created_at"] = moment
    return stamped


def _active_clause(alias: str, include_inactive: bool) -> str:
    # Soft-deleted rows are hidden from every read unless explicitly requested.
    return "" if include_inactive else f" and {alias}.status = true"


def _set_clause(fields: Dict[str, Any], allowed: frozenset) -> tuple[str, Dict[str, Any]]:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Unsupported update columns: {', '.join(sorted(unknown))}")
    params = dict(fields)
    params["updated_at"] = utc_now()
    assignments = [f"{column} = %({column})s" for column in sorted(params)]
    return ", ".join(assignments), params


@dataclass(frozen=True)
class Database:
    dsn: str

    def connect(self):
        return psycopg.connect(self.dsn, row_factory=dict_row, autocommit=True)

    def _connect_transactional(self):
        return psycopg.connect(self.dsn, row_factory=dict_row, autocommit=False)

    def healthcheck(self) -> None:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("select 1;")
                cur.fetchone()

    def migrate(self) -> list[str]:
        migrations = sorted(MIGRATIONS_DIR.glob("*.sql"))
        applied_now: list[str] = []
        if not migrations:
            return applied_now
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    create table if not exists schema_migrations (
                        id text primary key,
                        applied_at timestamptz not null default now()
                    );
                    """
                )
                cur.execute("select id from schema_migrations order by id;")
                applied = {row["id"] for row in cur.fetchall()}
                for migration in migrations:
                    migration_id = migration.name
                    if migration_id in applied:
                        continue
                    cur.execute(migration.read_text(encoding="utf-8"))
                    cur.execute(
                        "insert into schema_migrations (id) values (%s);",
                        (migration_id,),
                    )
                    applied_now.append(migration_id)
        return applied_now

    # =========================================================================
    # Profiles and credentials
    # =========================================================================

    def register_credential(
        self,
        user_type: str,
        profile: Dict[str, Any],
        credential: Dict[str, Any],
    ) -> Dict[str, Any]:
        """Insert a profile and the credential linking to it in one transaction."""
        table = PROFILE_TABLES[user_type]
        profile_row = with_timestamps(profile)
        credential_row = with_timestamps(credential)
        with self._connect_transactional() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    insert into {table} (id, name, created_at, updated_at)
                    values (%(id)s, %(name)s, %(created_at)s, %(updated_at)s);
                    """,
                    profile_row,
                )
                cur.execute(
                    """
                    insert into credentials (
                        id, email, password_hash, user_type, attendee_id, presenter_id,
                        teacher_id, created_at, updated_at, updated_by
                    ) values (
                        %(id)s, %(email)s, %(password_hash)s, %(user_type)s, %(attendee_id)s,
                        %(presenter_id)s, %(teacher_id)s, %(created_at)s, %(updated_at)s,
                        %(updated_by)s
                    )
                    returning id, email, user_type, attendee_id, presenter_id, teacher_id,
                        created_at, updated_at;
                    """,
                    {
                        "attendee_id": None,
                        "presenter_id": None,
                        "teacher_id": None,
                        "updated_by": None,
                        **credential_row,
                    },
                )
                return cur.fetchone()

    def fetch_credential(self, credential_id: str) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("select * from credentials where id = %s;", (credential_id,))
                return cur.fetchone()

    def fetch_credential_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("select * from credentials where lower(email) = lower(%s);", (email,))
                return cur.fetchone()

    def fetch_presenter(self, presenter_id: str) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("select * from presenters where id = %s;", (presenter_id,))
                return cur.fetchone()

    def fetch_teacher(self, teacher_id: str) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute("select * from teachers where id = %s;", (teacher_id,))
                return cur.fetchone()

    # =========================================================================
    # Courses
    # =========================================================================

    def insert_course(self, payload: Dict[str, Any]) -> None:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into courses (
                        id, name, description, presenter_id, image_link, status,
                        created_at, updated_at, updated_by
                    ) values (
                        %(id)s, %(name)s, %(description)s, %(presenter_id)s, %(image_link)s,
                        %(status)s, %(created_at)s, %(updated_at)s, %(updated_by)s
                    );
                    """,
                    with_timestamps({"status": True, "updated_by": None, **payload}),
                )

    def fetch_course(
        self,
        course_id: str,
        *,
        include_inactive: bool = False,
    ) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select c.*, p.name as presenter_name
                    from courses c
                    left join presenters p on p.id = c.presenter_id
                    where c.id = %(id)s{_active_clause("c", include_inactive)};
                    """,
                    {"id": course_id},
                )
                return cur.fetchone()

    def update_course(self, course_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = _set_clause(fields, COURSE_MUTABLE_COLUMNS)
        params["id"] = course_id
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update courses set {set_clause} where id = %(id)s returning id;",
                    params,
                )
                if cur.fetchone() is None:
                    return None
        return self.fetch_course(course_id, include_inactive=True)

    # =========================================================================
    # Lectures
    # =========================================================================

    def insert_lecture(self, payload: Dict[str, Any]) -> None:
        row = {
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
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    insert into lectures (
                        id, name, description, teacher_id, course_id, presenter_id, time,
                        vimeo_link, zoom_link, zoom_start_link, zoom_id, zoom_res_body,
                        image_link, status, created_at, updated_at, updated_by
                    ) values (
                        %(id)s, %(name)s, %(description)s, %(teacher_id)s, %(course_id)s,
                        %(presenter_id)s, %(time)s, %(vimeo_link)s, %(zoom_link)s,
                        %(zoom_start_link)s, %(zoom_id)s, %(zoom_res_body)s, %(image_link)s,
                        %(status)s, %(created_at)s, %(updated_at)s, %(updated_by)s
                    );
                    """,
                    with_timestamps(row),
                )

    def fetch_lecture(
        self,
        lecture_id: str,
        *,
        include_inactive: bool = False,
    ) -> Optional[Dict[str, Any]]:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select l.*, p.name as presenter_name, t.name as teacher_name
                    from lectures l
                    left join presenters p on p.id = l.presenter_id
                    left join teachers t on t.id = l.teacher_id
                    where l.id = %(id)s{_active_clause("l", include_inactive)};
                    """,
                    {"id": lecture_id},
                )
                return cur.fetchone()

    def fetch_course_lectures(
        self,
        course_id: str,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Dict[str, Any]]:
        params: Dict[str, Any] = {"course_id": course_id}
        limit_clause = ""
        if limit is not None:
            limit_clause += " limit %(limit)s"
            params["limit"] = limit
        if offset is not None:
            limit_clause += " offset %(offset)s"
            params["offset"] = offset
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select l.*, t.name as teacher_name
                    from lectures l
                    left join teachers t on t.id = l.teacher_id
                    where l.course_id = %(course_id)s{_active_clause("l", False)}
                    order by l.time desc nulls last, l.id desc{limit_clause};
                    """,
                    params,
                )
                return cur.fetchall()

    def count_course_lectures(self, course_id: str) -> int:
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"""
                    select count(*) as total from lectures l
                    where l.course_id = %(course_id)s{_active_clause("l", False)};
                    """,
                    {"course_id": course_id},
                )
                row = cur.fetchone()
                return int(row["total"]) if row else 0

    def update_lecture(self, lecture_id: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        set_clause, params = _set_clause(fields, LECTURE_MUTABLE_COLUMNS)
        params["id"] = lecture_id
        with self.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update lectures set {set_clause} where id = %(id)s returning id;",
                    params,
                )
                if cur.fetchone() is None:
                    return None
        return self.fetch_lecture(lecture_id, include_inactive=True)


def get_database() -> Database:
    dsn = os.getenv("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL must be set for database access.")
    db = Database(dsn=dsn)
    db.migrate()
    return db
