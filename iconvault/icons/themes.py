"""Dashboard theme colors used by the recolor transform."""

from __future__ import annotations

import re

from .errors import Unsupported

THEME_COLORS: dict[str, str] = {
    "Slate": "#64748b",
    "Gray": "#6b7280",
    "Zinc": "#71717a",
    "Neutral": "#737373",
    "Stone": "#78716c",
    "Red": "#ef4444",
    "Orange": "#f97316",
    "Amber": "#f59e0b",
    "Yellow": "#eab308",
    "Lime": "#84cc16",
    "Green": "#22c55e",
    "Emerald": "#10b981",
    "Teal": "#14b8a6",
    "Cyan": "#06b6d4",
    "Sky": "#0ea5e9",
    "Blue": "#3b82f6",
    "Indigo": "#6366f1",
    "Violet": "#8b5cf6",
    "Purple": "#a855f7",
    "Fuchsia": "#d946ef",
    "Pink": "#ec4899",
    "Rose": "#f43f5e",
}

_BY_LOWER = {name.lower(): name for name in THEME_COLORS}
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    m = _HEX_RE.match(value.strip())
    if not m:
        raise Unsupported(f"Invalid color: {value!r}")
    digits = m.group(1)
    return int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16)


def resolve_color(color: str) -> tuple[str, tuple[int, int, int]]:
    """Map a theme name or ``#rrggbb`` to ``(token, rgb)``.

    *token* is what goes into the ``_themed_<token>`` file suffix: the
    canonical theme name, or the lower-case hex digits.
    """
    name = _BY_LOWER.get(color.strip().lower())
    if name:
        return name, hex_to_rgb(THEME_COLORS[name])
    m = _HEX_RE.match(color.strip())
    if m:
        return m.group(1).lower(), hex_to_rgb(m.group(1))
    raise Unsupported(f"Unknown theme color: {color!r}")
