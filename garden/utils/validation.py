"""Input validation helpers used by the entity model and the service."""

from typing import Optional
from urllib.parse import urlparse

from garden.errors import ValidationError

_ALLOWED_URL_SCHEMES = {"http", "https"}
_MEDIA_CATEGORIES = {"image", "video", "audio"}


def _require_str(value, field_name: str) -> None:
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")


def validate_channel_title(title: str) -> str:
    if title is not None:
        _require_str(title, "channel title")
    if title is None or not title.strip():
        raise ValidationError("channel title cannot be empty")
    return title


def validate_text(body: str) -> str:
    if body is not None:
        _require_str(body, "text body")
    if body is None or not body.strip():
        raise ValidationError("text block cannot be empty")
    return body


def validate_optional_text(field_name: str, value: Optional[str]) -> Optional[str]:
    """Empty is allowed for optional text; whitespace-only is not."""
    if value is None or value == "":
        return value
    _require_str(value, field_name)
    if not value.strip():
        raise ValidationError(f"{field_name} cannot be only whitespace")
    return value


def validate_url(url: str) -> str:
    if url is not None:
        _require_str(url, "URL")
    if url is None or not url.strip():
        raise ValidationError("link URL cannot be empty")
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise ValidationError(f"invalid URL '{url}': {e}") from e
    if not parsed.scheme:
        raise ValidationError(f"invalid URL '{url}': relative URL without a base")
    if parsed.scheme.lower() not in _ALLOWED_URL_SCHEMES:
        raise ValidationError(f"URL scheme '{parsed.scheme}' is not allowed, use http or https")
    if not parsed.hostname:
        raise ValidationError("URL must have a valid host")
    return url


def validate_file_path(path: str) -> str:
    if path is not None:
        _require_str(path, "file path")
    if path is None or not path.strip():
        raise ValidationError("file path cannot be empty")
    if ".." in path:
        raise ValidationError("file path cannot contain '..'")
    if path.startswith("/") or path.startswith("\\"):
        raise ValidationError("file path must be relative")
    return path


def validate_mime_type(mime_type: str, expected_category: str) -> str:
    if expected_category not in _MEDIA_CATEGORIES:
        raise ValueError(f"unknown media category: {expected_category}")
    if mime_type is not None:
        _require_str(mime_type, "MIME type")
    if mime_type is None or not mime_type.strip():
        raise ValidationError("MIME type cannot be empty")
    if not mime_type.startswith(f"{expected_category}/"):
        raise ValidationError(f"expected {expected_category} MIME type, got '{mime_type}'")
    return mime_type


def validate_position(position: int, upper: int, *, what: str = "position") -> int:
    """Check ``0 <= position <= upper`` (inclusive)."""
    if isinstance(position, bool) or not isinstance(position, int):
        raise ValidationError(f"{what} must be an integer")
    if position < 0 or position > upper:
        raise ValidationError(f"{what} {position} is out of range [0, {upper}]")
    return position
