"""Helpers to resolve image media URLs and download filenames."""

from typing import Optional

from models.image_record import ImageRecord


def resolve_image_url(record: ImageRecord, media_base: str) -> str:
    """Return an absolute URL for a record's stored image.

    Absolute http(s) URLs are returned unchanged. Relative media paths are
    served through the backend's `/api/media/` endpoint.
    """
    base = media_base.rstrip("/")
    original = record.image_url
    if not original:
        return f"{base}/api/media/mango_images/{record.filename or ''}"

    if original.startswith("http://") or original.startswith("https://"):
        return original

    if original.startswith("/media/"):
        file_path = original[len("/media/"):]
    elif original.startswith("media/"):
        file_path = original[len("media/"):]
    elif "mango_images/" in original:
        file_path = original[original.index("mango_images/"):]
    else:
        file_path = original.lstrip("/")
    return f"{base}/api/media/{file_path}"


def _basename(path: str) -> str:
    name = path.replace("\\", "/").rstrip("/").split("/")[-1].strip()
    return "" if name in (".", "..") else name


def image_filename(record: ImageRecord) -> str:
    """Return a bare download filename: original name, URL tail, or `image_<id>.jpg`.

    Directory parts of backend-supplied names are discarded, so the result is
    always a single path component.
    """
    name = _basename(record.filename or "")
    if name:
        return name
    if record.image_url:
        tail = _basename(record.image_url.split("?")[0])
        if tail:
            return tail if "." in tail else f"{tail}.jpg"
    return f"image_{record.id}.jpg"


def mark_unverified(filename: str, suffix: str = "_unverified") -> str:
    """Insert `suffix` before the file extension (or append it when there is none)."""
    dot = filename.rfind(".")
    if dot <= 0:
        return f"{filename}{suffix}"
    return f"{filename[:dot]}{suffix}{filename[dot:]}"


def safe_component(name: str, fallback: Optional[str] = "archive") -> str:
    """Strip path separators so a label can be used as a single path component."""
    cleaned = name.replace("/", "-").replace("\\", "-").strip()
    return cleaned or (fallback or "")
