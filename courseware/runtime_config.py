from __future__ import annotations

import os
from typing import Mapping

from courseware.storage import _config as storage_config


DEFAULT_PAGINATION_LIMIT = 10
DEFAULT_MAX_IMAGE_UPLOAD_MB = 10
DEFAULT_PAGINATION_MAX_LIMIT = 100


def _require_positive_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw_value = env.get(name, str(default)).strip()
    try:
        parsed = int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer.") from exc
    if parsed <= 0:
        raise RuntimeError(f"{name} must be a positive integer.")
    return parsed


def parse_positive_int_env(name: str, default: int) -> int:
    return _require_positive_int(os.environ, name, default)


def default_page_limit() -> int:
    return parse_positive_int_env("CW_PAGINATION_LIMIT", DEFAULT_PAGINATION_LIMIT)


def max_page_limit() -> int:
    return parse_positive_int_env("CW_PAGINATION_MAX_LIMIT", DEFAULT_PAGINATION_MAX_LIMIT)


def max_image_upload_bytes() -> int:
    limit_mb = parse_positive_int_env("CW_MAX_IMAGE_UPLOAD_MB", DEFAULT_MAX_IMAGE_UPLOAD_MB)
    return limit_mb * 1024 * 1024


def cors_allowed_origins() -> list[str]:
    raw = os.getenv("CW_CORS_ORIGINS", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def validate_runtime_environment(mode: str, env: Mapping[str, str] | None = None) -> None:
    active_env = env if env is not None else os.environ

    errors: list[str] = []
    database_url = active_env.get("DATABASE_URL", "").strip()
    if not database_url:
        errors.append("DATABASE_URL must be set.")

    if mode == "api" and not active_env.get("CW_JWT_SECRET", "").strip():
        errors.append("CW_JWT_SECRET must be set.")

    try:
        storage_config(active_env)
    except RuntimeError as exc:
        errors.append(str(exc))

    for env_name, default in (
        ("CW_PAGINATION_LIMIT", DEFAULT_PAGINATION_LIMIT),
        ("CW_MAX_IMAGE_UPLOAD_MB", DEFAULT_MAX_IMAGE_UPLOAD_MB),
        ("CW_PAGINATION_MAX_LIMIT", DEFAULT_PAGINATION_MAX_LIMIT),
    ):
        try:
            _require_positive_int(active_env, env_name, default)
        except RuntimeError as exc:
            errors.append(str(exc))

    if errors:
        error_lines = "\n- ".join(errors)
        raise RuntimeError(f"Invalid runtime environment for {mode}:\n- {error_lines}")
