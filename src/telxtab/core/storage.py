"""File storage for the five media buckets.

Objects live under ``{storage_dir}/{bucket}/{path}`` and are served at
``{public_base_url}/{bucket}/{path}``.
"""

from __future__ import annotations

import time
from pathlib import Path, PurePosixPath

import structlog

from telxtab.config.app_config import load_app_config

logger = structlog.get_logger(__name__)

BUCKETS = ("avatars", "blog-covers", "blog-images", "course-thumbnails", "lesson-videos")


class StorageError(Exception):
    """Invalid bucket, path or payload."""

    pass


class ObjectNotFoundError(StorageError):
    pass


def _check_bucket(bucket: str) -> None:
    if bucket not in BUCKETS:
        raise StorageError(f"Unknown bucket '{bucket}'")


def _safe_relative(path: str) -> PurePosixPath:
    relative = PurePosixPath(path)
    if not path or relative.is_absolute() or ".." in relative.parts or "\\" in path:
        raise StorageError(f"Invalid object path '{path}'")
    return relative


def object_file(bucket: str, path: str) -> Path:
    """Filesystem location of an object."""
    _check_bucket(bucket)
    relative = _safe_relative(path)
    return load_app_config().storage_dir / bucket / Path(*relative.parts)


def build_object_path(owner_id: str, filename: str) -> str:
    """``{owner_id}/{epoch_ms}.{ext}`` for an uploaded file."""
    ext = Path(filename).suffix.lstrip(".").lower() or "bin"
    return f"{owner_id}/{int(time.time() * 1000)}.{ext}"


def upload(bucket: str, path: str, data: bytes) -> str:
    """Store an object, overwriting any previous one at the same path.

    Returns:
        The object path.

    Raises:
        StorageError: On unknown bucket, unsafe path or oversize payload
    """
    max_bytes = load_app_config().storage.max_upload_bytes
    if len(data) > max_bytes:
        raise StorageError(f"File too large ({len(data)} bytes, limit {max_bytes})")

    target = object_file(bucket, path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)

    logger.info("storage.uploaded", bucket=bucket, path=path, size=len(data))
    return path


def read(bucket: str, path: str) -> Path:
    """Resolve an existing object.

    Raises:
        ObjectNotFoundError: If nothing is stored at that path
    """
    target = object_file(bucket, path)
    if not target.is_file():
        raise ObjectNotFoundError(f"Object '{bucket}/{path}' not found")
    return target


def delete(bucket: str, path: str) -> bool:
    target = object_file(bucket, path)
    if not target.is_file():
        return False
    target.unlink()
    return True


def public_url(bucket: str, path: str) -> str:
    _check_bucket(bucket)
    base = load_app_config().storage.public_base_url.rstrip("/")
    return f"{base}/{bucket}/{path}"
