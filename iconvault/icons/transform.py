"""Transform engine -- pure Pillow operations on decoded icons.

Nothing here touches the filesystem or knows about file names; callers
decode once, apply a transform and encode the result themselves.  Every
operation is deterministic: identical input and parameters produce
byte-identical PNG output.
"""

from __future__ import annotations

import io
import logging
from statistics import median

from PIL import Image, ImageChops, ImageOps

from ..media import sniff_image
from .errors import DecodeFailed

logger = logging.getLogger(__name__)

_RASTER_FORMATS = ("PNG", "JPEG", "GIF", "WEBP", "BMP", "ICO", "TIFF")
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# Luminance distance from the background at which a pixel starts / stops
# counting as foreground in the grayscale pair.
_RAMP_LOW = 24
_RAMP_HIGH = 72
_RAMP_LUT = [
    0 if v <= _RAMP_LOW
    else 255 if v >= _RAMP_HIGH
    else (v - _RAMP_LOW) * 255 // (_RAMP_HIGH - _RAMP_LOW)
    for v in range(256)
]


# ---------------------------------------------------------------------------
# Decode / encode
# ---------------------------------------------------------------------------


def decode(data: bytes, max_size: int = 128) -> Image.Image:
    """Decode arbitrary icon bytes into an RGBA image no larger than *max_size*.

    Raises :class:`DecodeFailed` for empty, corrupt or unsupported input.
    """
    if not data:
        raise DecodeFailed("Empty image payload")
    kind = sniff_image(data)
    if kind == "image/svg+xml":
        image = _rasterize_svg(data, max_size)
    elif kind == "image/x-icon":
        image = _open_ico(data)
    else:
        image = _open_raster(data)
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    if image.width > max_size or image.height > max_size:
        image.thumbnail((max_size, max_size), Image.Resampling.LANCZOS)
    return image


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def normalize(data: bytes, max_size: int = 128) -> bytes:
    """Re-encode any supported input as a bounded RGBA PNG."""
    return encode_png(decode(data, max_size))


def _open_raster(data: bytes) -> Image.Image:
    try:
        with Image.open(io.BytesIO(data), formats=_RASTER_FORMATS) as im:
            im.seek(0)
            im.load()
            return im.convert("RGBA")
    except Exception as exc:
        raise DecodeFailed(f"Unsupported or corrupt image: {exc}") from exc


def _open_ico(data: bytes) -> Image.Image:
    # Pillow picks the largest entry of the icon directory.
    try:
        return _open_raster(data)
    except DecodeFailed:
        offset = data.find(_PNG_SIGNATURE)
        if offset < 0:
            raise
        logger.debug("ICO decode failed; using embedded PNG at offset %d", offset)
        return _open_raster(data[offset:])


def _rasterize_svg(data: bytes, size: int) -> Image.Image:
    try:
        import cairosvg
    except (ImportError, OSError) as exc:
        raise DecodeFailed("SVG rasterization is not available") from exc
    try:
        png = cairosvg.svg2png(bytestring=data, output_width=size)
    except Exception as exc:
        raise DecodeFailed(f"SVG rasterization failed: {exc}") from exc
    return _open_raster(png)


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------


def recolor(image: Image.Image, rgb: tuple[int, int, int]) -> Image.Image:
    """Paint every pixel *rgb*, keeping the source alpha channel exactly."""
    src = image.convert("RGBA")
    out = Image.new("RGBA", src.size, (*rgb, 255))
    out.putalpha(src.getchannel("A"))
    return out


def grayscale(image: Image.Image) -> tuple[Image.Image, Image.Image]:
    """Return ``(dark, light)`` near-binary renders of *image*.

    *dark* has a black foreground for light backgrounds, *light* a white
    foreground for dark backgrounds.  Both share one foreground mask.
    """
    src = image.convert("RGBA")
    mask = _foreground_mask(src)
    black = Image.new("L", src.size, 0)
    white = Image.new("L", src.size, 255)
    dark = Image.merge("RGBA", (black, black, black, mask))
    light = Image.merge("RGBA", (white, white, white, mask))
    return dark, light


def invert(image: Image.Image) -> Image.Image:
    """Invert RGB channels (``255 - value``); alpha is untouched."""
    src = image.convert("RGBA")
    r, g, b, a = src.split()
    out = ImageOps.invert(Image.merge("RGB", (r, g, b))).convert("RGBA")
    out.putalpha(a)
    return out


def _foreground_mask(src: Image.Image) -> Image.Image:
    alpha = src.getchannel("A")
    lum = src.convert("L")
    border = _border_pixels(src)
    visible = [l for l, a in border if a >= 128]
    # Transparent surround: every visible pixel belongs to the glyph.
    if len(visible) * 2 < len(border):
        return alpha
    background = int(median(visible))
    distance = ImageChops.difference(lum, Image.new("L", src.size, background))
    mask = ImageChops.multiply(distance.point(_RAMP_LUT), alpha)
    if mask.getbbox() is None:
        return alpha
    return mask


def _border_pixels(src: Image.Image) -> list[tuple[int, int]]:
    w, h = src.size
    lum = src.convert("L").load()
    alpha = src.getchannel("A").load()
    coords = {(x, 0) for x in range(w)} | {(x, h - 1) for x in range(w)}
    coords |= {(0, y) for y in range(h)} | {(w - 1, y) for y in range(h)}
    return [(lum[x, y], alpha[x, y]) for x, y in sorted(coords)]
