from __future__ import annotations

import io
import os
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Mapping, Optional


@dataclass(frozen=True)
class StorageConfig:
    mode: str
    local_dir: Path
    s3_bucket: Optional[str]
    s3_prefix: Optional[str]
    s3_endpoint_url: Optional[str]
    s3_region: Optional[str]


def _validate_config(config: StorageConfig) -> None:
    if config.mode not in {"local", "s3"}:
        raise RuntimeError("STORAGE_MODE must be either 'local' or 's3'.")

    if config.mode == "s3":
        if not config.s3_bucket:
            raise RuntimeError("S3_BUCKET must be set for S3 storage.")
        if not config.s3_prefix:
            raise RuntimeError("S3_PREFIX must be a non-empty path segment for S3 storage.")


def _config(env: Mapping[str, str] | None = None) -> StorageConfig:
    active_env = env if env is not None else os.environ
    config = StorageConfig(
        mode=active_env.get("STORAGE_MODE", "local"),
        local_dir=Path(active_env.get("CW_STORAGE_DIR", "storage")).resolve(),
        s3_bucket=active_env.get("S3_BUCKET"),
        s3_prefix=active_env.get("S3_PREFIX", "courseware"),
        s3_endpoint_url=active_env.get("S3_ENDPOINT_URL"),
        s3_region=active_env.get("AWS_REGION") or active_env.get("S3_REGION"),
    )
    _validate_config(config)
    return config


def _s3_client():
    cfg = _config()
    import boto3

    return boto3.client(
        "s3",
        region_name=cfg.s3_region,
        endpoint_url=cfg.s3_endpoint_url,
    )


def _local_path(category: str, filename: str) -> Path:
    cfg = _config()
    target = cfg.local_dir / category / filename
    target.parent.mkdir(parents=True, exist_ok=True)
    return target


def _copy_with_limit(fileobj: BinaryIO, handle: BinaryIO, max_bytes: Optional[int] = None) -> int:
    total = 0
    while True:
        chunk = fileobj.read(1024 * 1024)
        if not chunk:
            break
        total += len(chunk)
        if max_bytes is not None and total > max_bytes:
            raise ValueError(f"Image file exceeds upload limit of {max_bytes} bytes.")
        handle.write(chunk)
    return total


def save_image(fileobj: BinaryIO, filename: str, max_bytes: Optional[int] = None) -> str:
    """Store an image and return its storage key (local path or s3:// URI)."""
    cfg = _config()
    if cfg.mode == "s3":
        buffer = io.BytesIO()
        _copy_with_limit(fileobj, buffer, max_bytes=max_bytes)
        buffer.seek(0)
        key = f"{cfg.s3_prefix}/images/{filename}"
        _s3_client().upload_fileobj(buffer, cfg.s3_bucket, key)
        return f"s3://{cfg.s3_bucket}/{key}"

    target = _local_path("images", filename)
    try:
        with target.open("wb") as handle:
            _copy_with_limit(fileobj, handle, max_bytes=max_bytes)
    except ValueError:
        target.unlink(missing_ok=True)
        raise
    return str(target)


def storage_root_writable() -> None:
    """Raise if local storage cannot be written; a no-op in S3 mode."""
    cfg = _config()
    if cfg.mode != "local":
        return
    probe = _local_path("images", ".ready")
    probe.write_text("ok", encoding="utf-8")
    probe.unlink(missing_ok=True)
