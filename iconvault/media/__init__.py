"""Image MIME registry and content sniffing."""

from .classify import EXTENSION_TO_MIME, is_image_type, is_loose_type, mime_for, sniff_image

__all__ = ["EXTENSION_TO_MIME", "is_image_type", "is_loose_type", "mime_for", "sniff_image"]
