"""Image MIME-type registry and magic-byte sniffing."""

from __future__ import annotations

from pathlib import PurePath

EXTENSION_TO_MIME: dict[str, str] = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".webp": "image/webp",
    ".bmp": "image/bmp",
    ".ico": "image/x-icon",
    ".svg": "image/svg+xml",
}

# Content types some servers use for icons without an ``image/`` prefix.
_LOOSE_TYPES = frozenset({"", "application/octet-stream", "binary/octet-stream", "text/plain"})


def _base_type(content_type: str) -> str:
    return content_type.lower().split(";")[0].strip()


def is_image_type(content_type: str) -> bool:
    """Return True for any ``image/*`` content type."""
    return _base_type(content_type).startswith("image/")


def is_loose_type(content_type: str) -> bool:
    """Return True for untyped or generic types that need sniffing."""
    return _base_type(content_type) in _LOOSE_TYPES


def mime_for(filename: str) -> str:
    """Content type for a stored asset name; icons default to ``image/x-icon``."""
    return EXTENSION_TO_MIME.get(PurePath(filename).suffix.lower(), "image/x-icon")


def sniff_image(data: bytes) -> str | None:
    """Return the MIME type suggested by *data*'s magic bytes, if any."""
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:4] == b"GIF8":
        return "image/gif"
    if len(data) > 11 and data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    if data[:2] == b"BM":
        return "image/bmp"
    if data[:4] in (b"\x00\x00\x01\x00", b"\x00\x00\x02\x00"):
        return "image/x-icon"
    head = data[:512].decode("utf-8", errors="ignore").lower()
    if "<svg" in head:
        return "image/svg+xml"
    return None
