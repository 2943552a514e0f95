from __future__ import annotations

import logging
import re
import time
from pathlib import Path, PurePosixPath
from uuid import uuid4

from ..config import get_settings
from ..core.constants import UPLOAD_ALLOWED_TYPES, UPLOAD_DEFAULT_FOLDER, UPLOAD_MAX_BYTES
from ..core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

BASE_MEDIA_DIR = Path(__file__).resolve().parents[1] / "media"

_FOLDER_RE = re.compile(r"^[A-Za-z0-9_\-]+(/[A-Za-z0-9_\-]+)*$")
_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def ensure_media_directory(subdir: Path | str | None = None) -> Path:
    base = BASE_MEDIA_DIR
    if subdir:
        base = base / Path(subdir)
    base.mkdir(parents=True, exist_ok=True)
    return base


def _normalize_folder(folder: str | None) -> str:
    folder = (folder or UPLOAD_DEFAULT_FOLDER).strip().strip("/")
    if not folder:
        return UPLOAD_DEFAULT_FOLDER
    if not _FOLDER_RE.match(folder):
        raise ValidationError("Folder name contains invalid characters", "INVALID_FOLDER")
    return folder


def public_url(relative_path: str) -> str:
    base = get_settings().media_base_url.rstrip("/")
    return f"{base}/{relative_path}"


def save_upload(
    content: bytes | None,
    *,
    content_type: str | None,
    original_name: str | None,
    folder: str | None = None,
) -> dict:
    if content is None:
        raise ValidationError("No file provided", "NO_FILE")
    content_type = (content_type or "").lower()
    if content_type not in UPLOAD_ALLOWED_TYPES:
        raise ValidationError(
            "Invalid file type. Allowed types: JPEG, PNG, WebP, GIF", "INVALID_TYPE"
        )
    if len(content) > UPLOAD_MAX_BYTES:
        raise ValidationError("File too large. Maximum size is 5MB", "FILE_TOO_LARGE")

    folder = _normalize_folder(folder)
    filename = f"{int(time.time() * 1000)}-{uuid4().hex[:12]}.{_EXTENSIONS[content_type]}"
    relative_path = f"{folder}/{filename}"
    path = ensure_media_directory(folder) / filename
    path.write_bytes(content)
    logger.info(
        "Stored upload",
        extra={"path": relative_path, "size": len(content), "original_name": original_name},
    )
    return {
        "url": public_url(relative_path),
        "filename": relative_path,
        "size": len(content),
        "type": content_type,
    }


def relative_media_path(url: str) -> str:
    base = get_settings().media_base_url.rstrip("/")
    path = url
    if base and path.startswith(base + "/"):
        path = path[len(base) + 1:]
    path = path.lstrip("/")
    parts = PurePosixPath(path).parts
    if not parts or any(part in ("..", ".") for part in parts):
        raise ValidationError("Invalid file URL", "INVALID_URL")
    return str(PurePosixPath(*parts))


def remove_media_file(url: str | None) -> str:
    if not url:
        raise ValidationError("No URL provided", "NO_URL")
    relative_path = relative_media_path(url)
    path = BASE_MEDIA_DIR / Path(relative_path)
    try:
        path.unlink()
    except FileNotFoundError as exc:
        raise NotFoundError("File not found", "FILE_NOT_FOUND") from exc
    logger.info("Removed upload", extra={"path": relative_path})
    return relative_path


__all__ = [
    "BASE_MEDIA_DIR",
    "ensure_media_directory",
    "public_url",
    "save_upload",
    "relative_media_path",
    "remove_media_file",
]
