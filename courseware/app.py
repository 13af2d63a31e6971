from __future__ import annotations

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from typing import Optional
from uuid import uuid4

import psycopg
from fastapi import FastAPI, File, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from courseware import courses, credentials, lectures
from courseware.auth import get_caller_credential_id
from courseware.db import get_database
from courseware.errors import CoursewareError, IntegrityError, UnauthorizedError
from courseware.logging_config import configure_logging
from courseware.runtime_config import cors_allowed_origins, validate_runtime_environment
from courseware.storage import storage_root_writable


@asynccontextmanager
async def app_lifespan(_: FastAPI) -> AsyncIterator[None]:
    configure_logging()
    validate_runtime_environment("api")
    yield


app = FastAPI(title="Courseware API", lifespan=app_lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_allowed_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

LOGGER = logging.getLogger("courseware.api")

INTERNAL_ERROR_MESSAGE = "Internal server error."


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid4())
    request.state.request_id = request_id

    started_at = perf_counter()
    response = await call_next(request)
    duration_ms = (perf_counter() - started_at) * 1000

    response.headers["x-request-id"] = request_id
    LOGGER.info(
        "request.complete",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        },
    )
    return response


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _request_id(request: Request) -> Optional[str]:
    return getattr(request.state, "request_id", None)


@app.exception_handler(CoursewareError)
async def courseware_error_handler(request: Request, exc: CoursewareError) -> JSONResponse:
    if isinstance(exc, IntegrityError):
        LOGGER.error(
            "request.integrity_error",
            extra={"request_id": _request_id(request), "error": exc.message},
        )
        return _error_response(500, INTERNAL_ERROR_MESSAGE)
    return _error_response(exc.status_code, exc.message)


@app.exception_handler(psycopg.Error)
async def database_error_handler(request: Request, exc: psycopg.Error) -> JSONResponse:
    LOGGER.error(
        "request.database_error",
        exc_info=exc,
        extra={"request_id": _request_id(request), "error": str(exc)},
    )
    return _error_response(500, INTERNAL_ERROR_MESSAGE)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request.")
    return _error_response(400, f"{location}: {detail}" if location else detail)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    LOGGER.error(
        "request.unhandled_error",
        exc_info=exc,
        extra={"request_id": _request_id(request), "error": str(exc)},
    )
    return _error_response(500, INTERNAL_ERROR_MESSAGE)


class CourseCreateRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    imageLink: Optional[str] = None


class RecordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(default=None, alias="_id")


class CourseUpdateRequest(RecordRequest):
    name: Optional[str] = None
    description: Optional[str] = None
    imageLink: Optional[str] = None


class LectureCreateRequest(BaseModel):
    name: Optional[str] = None
    teacher: Optional[str] = None
    course: Optional[str] = None
    time: Optional[str] = None
    description: Optional[str] = None


class LectureUpdateRequest(RecordRequest):
    name: Optional[str] = None
    time: Optional[str] = None
    teacher: Optional[str] = None
    description: Optional[str] = None
    zoomLink: Optional[str] = None
    vimeoLink: Optional[str] = None


class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    userType: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


def _iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require_caller(request: Request) -> str:
    credential_id = get_caller_credential_id(request)
    if not credential_id:
        raise UnauthorizedError("Missing or invalid Authorization header.")
    return credential_id


def _upload_size(upload: Optional[UploadFile]) -> Optional[int]:
    if upload is None:
        return None
    if upload.size is not None:
        return upload.size
    handle = upload.file
    position = handle.tell()
    handle.seek(0, os.SEEK_END)
    size = handle.tell()
    handle.seek(position)
    return size


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "time": _iso_now()}


@app.get("/health/live")
def liveness() -> dict:
    return {"status": "ok"}


@app.get("/health/ready")
def readiness() -> JSONResponse:
    checks: dict[str, dict[str, str]] = {}
    overall_status = "ok"

    try:
        get_database().healthcheck()
        checks["database"] = {"status": "ok"}
    except Exception as exc:
        overall_status = "degraded"
        checks["database"] = {"status": "error", "reason": str(exc)}

    try:
        storage_root_writable()
        checks["storage"] = {"status": "ok"}
    except Exception as exc:
        overall_status = "degraded"
        checks["storage"] = {"status": "error", "reason": str(exc)}

    return JSONResponse(
        status_code=200 if overall_status == "ok" else 503,
        content={"status": overall_status, "time": _iso_now(), "checks": checks},
    )


# =========================================================================
# Credentials
# =========================================================================


@app.post("/auth/register")
def register(payload: RegisterRequest) -> dict:
    return credentials.register_credential(
        get_database(),
        payload.email,
        payload.password,
        payload.userType,
        payload.name,
    )


@app.post("/auth/login")
def login(payload: LoginRequest) -> dict:
    return credentials.authenticate(get_database(), payload.email, payload.password)


# =========================================================================
# Courses
# =========================================================================


@app.get("/courses/{course_id}")
def get_course(course_id: str) -> dict:
    return courses.get_course(get_database(), course_id)


@app.get("/courses/{course_id}/lectures")
def list_course_lectures(
    course_id: str,
    page: Optional[str] = Query(default=None),
    limit: Optional[str] = Query(default=None),
) -> dict:
    return courses.list_course_lectures(get_database(), course_id, page=page, limit=limit)


@app.post("/courses")
def create_course(request: Request, payload: CourseCreateRequest) -> dict:
    caller = _require_caller(request)
    return courses.create_course(
        get_database(),
        caller,
        payload.name,
        description=payload.description,
        image_link=payload.imageLink,
    )


@app.api_route("/courses", methods=["PUT", "PATCH"])
def update_course(request: Request, payload: CourseUpdateRequest) -> dict:
    caller = _require_caller(request)
    return courses.update_course(
        get_database(),
        caller,
        payload.id,
        name=payload.name,
        description=payload.description,
        image_link=payload.imageLink,
    )


@app.delete("/courses")
def delete_course(request: Request, payload: RecordRequest) -> dict:
    caller = _require_caller(request)
    return courses.delete_course(get_database(), caller, payload.id)


@app.post("/courses/{course_id}/image")
def upload_course_image(
    request: Request,
    course_id: str,
    file: Optional[UploadFile] = File(None),
) -> dict:
    caller = _require_caller(request)
    return courses.upload_course_image(
        get_database(),
        caller,
        course_id,
        file.file if file else None,
        file.filename if file else None,
        _upload_size(file),
    )


# =========================================================================
# Lectures
# =========================================================================


@app.get("/lectures/{lecture_id}")
def get_lecture(lecture_id: str) -> dict:
    return lectures.get_lecture(get_database(), lecture_id)


@app.post("/lectures")
def create_lecture(request: Request, payload: LectureCreateRequest) -> dict:
    caller = _require_caller(request)
    return lectures.create_lecture(
        get_database(),
        caller,
        payload.name,
        payload.teacher,
        payload.course,
        payload.time,
        description=payload.description,
    )


@app.api_route("/lectures", methods=["PUT", "PATCH"])
def update_lecture(request: Request, payload: LectureUpdateRequest) -> dict:
    caller = _require_caller(request)
    return lectures.update_lecture(
        get_database(),
        caller,
        payload.id,
        payload.name,
        payload.time,
        payload.teacher,
        description=payload.description,
        zoom_link=payload.zoomLink,
        vimeo_link=payload.vimeoLink,
    )


@app.delete("/lectures")
def delete_lecture(request: Request, payload: RecordRequest) -> dict:
    caller = _require_caller(request)
    return lectures.delete_lecture(get_database(), caller, payload.id)
