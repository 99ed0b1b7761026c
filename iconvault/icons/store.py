"""Asset store -- canonical and derived icon files in one directory.

Filenames are the only metadata.  A canonical asset is ``<base>.png``; every
derived variant appends exactly one suffix family to the same base::

    <base>_themed_<Color>.png
    <base>_grayscale_black.png / <base>_grayscale_white.png
    <base>_inverted.png

Stripping the suffix always leads back to the canonical file, which is what
"revert" and the "never derive from a derivative" guard rely on.
"""

from __future__ import annotations

import logging
import os
import re
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from ..config.settings import cfg
from ..media import mime_for
from .errors import WriteFailed
from .reference import filename_of

logger = logging.getLogger(__name__)

_NAME_RE = re.compile(
    r"^(?P<base>.+?)"
    r"(?P<suffix>_themed_[A-Za-z0-9]+"
    r"|_grayscale(?:_black|_white)?"
    r"|_monotone(?:_black|_white)?"
    r"|_inverted"
    r"|_original)?"
    r"(?P<ext>\.[A-Za-z0-9]+)?$"
)
_VALID_NAME_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
_UNSAFE_RE = re.compile(r"[^a-z0-9-]+")

# Mode-free names that resolve to a light/dark sibling at serve time.
_DUAL_SUFFIXES = ("_grayscale", "_monotone")
# Canonical copies written by older releases; not a transform.
_LEGACY_CANONICAL = "_original"

THEMES = ("light", "dark")


def split_name(path: str) -> tuple[str, str, str]:
    """Split a stored name into ``(base, suffix, ext)``."""
    name = filename_of(path)
    m = _NAME_RE.match(name)
    if not m:
        return name, "", ""
    return m.group("base"), m.group("suffix") or "", m.group("ext") or ""


def strip_transform_suffix(path: str) -> str:
    """Return the base name with any recognised suffix family removed."""
    return split_name(path)[0]


def is_derived(path: str) -> bool:
    suffix = split_name(path)[1]
    return bool(suffix) and suffix != _LEGACY_CANONICAL


def is_valid_name(name: str) -> bool:
    return bool(name) and ".." not in name and bool(_VALID_NAME_RE.match(name))


def sanitize_base_name(name: str) -> str:
    """Turn a domain or free-form label into a filesystem-safe base token."""
    token = _UNSAFE_RE.sub("_", name.strip().lower()).strip("_")
    if not token:
        token = "icon"
    if split_name(token)[1]:
        token += "_icon"
    return token


def _family(name: str) -> str:
    suffix = split_name(name)[1]
    if not suffix or suffix == _LEGACY_CANONICAL:
        return "original"
    if suffix.startswith("_themed_"):
        return "themed"
    if suffix == "_inverted":
        return "inverted"
    return "grayscale"


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB"):
        if value < 1024:
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.2f} {unit}"
        value /= 1024
    return f"{value:.2f} GB"


class AssetStore:
    """Directory-backed store of icon files, keyed by file name."""

    def __init__(self, directory: Path | None = None) -> None:
        self._dir = directory or cfg.favicon_dir
        self._dir.mkdir(parents=True, exist_ok=True)

    @property
    def directory(self) -> Path:
        return self._dir

    def _path(self, filename: str) -> Path:
        if not is_valid_name(filename):
            raise ValueError(f"Invalid asset name: {filename!r}")
        return self._dir / filename

    # -- writes ------------------------------------------------------------

    def save(self, data: bytes, suggested_base: str) -> str:
        """Store canonical *data*; returns the (possibly disambiguated) name."""
        base = sanitize_base_name(suggested_base)
        n = 1
        while True:
            name = f"{base}.png" if n == 1 else f"{base}_{n}.png"
            path = self._path(name)
            try:
                fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                n += 1
                continue
            except OSError as exc:
                raise WriteFailed(f"Cannot create {name}: {exc}") from exc
            os.close(fd)
            try:
                self._atomic_write(path, data)
            except WriteFailed:
                path.unlink(missing_ok=True)
                raise
            logger.info("Stored canonical asset %s (%d bytes)", name, len(data))
            return name

    def write(self, filename: str, data: bytes) -> str:
        """Write *data* at exactly *filename*, replacing any existing file."""
        self._atomic_write(self._path(filename), data)
        return filename

    def _atomic_write(self, path: Path, data: bytes) -> None:
        tmp = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            tmp.write_bytes(data)
            os.replace(tmp, path)
        except OSError as exc:
            tmp.unlink(missing_ok=True)
            raise WriteFailed(f"Cannot write {path.name}: {exc}") from exc

    def remove_family(self, base: str, *, keep: str = "") -> int:
        """Delete the canonical asset for *base* and all its variants."""
        removed = 0
        for name in self.list_assets():
            if name != keep and split_name(name)[0] == base:
                (self._dir / name).unlink(missing_ok=True)
                removed += 1
        if removed:
            logger.info("Removed %d file(s) for base %s", removed, base)
        return removed

    def prune(self, referenced_bases: set[str]) -> dict[str, Any]:
        """Delete every file whose base name is not in *referenced_bases*."""
        names = self.list_assets()
        removed = 0
        freed = 0
        for name in names:
            if split_name(name)[0] in referenced_bases:
                continue
            path = self._dir / name
            try:
                size = path.stat().st_size
                path.unlink()
            except OSError:
                logger.warning("Could not remove orphan %s", name, exc_info=True)
                continue
            removed += 1
            freed += size
        logger.info("Pruned %d orphan file(s), freed %s", removed, _format_bytes(freed))
        return {
            "total_files": len(names),
            "removed": removed,
            "space_freed": freed,
            "space_freed_formatted": _format_bytes(freed),
        }

    # -- reads -------------------------------------------------------------

    def exists(self, filename: str) -> bool:
        return is_valid_name(filename) and (self._dir / filename).is_file()

    def read(self, path: str) -> bytes | None:
        name = filename_of(path)
        if not self.exists(name):
            return None
        try:
            return (self._dir / name).read_bytes()
        except OSError:
            logger.warning("Failed to read asset %s", name, exc_info=True)
            return None

    def resolve_served_name(self, path: str, theme: str = "light") -> str:
        """Map a mode-free dual-variant name to its light/dark sibling."""
        name = filename_of(path)
        base, suffix, _ext = split_name(name)
        if suffix in _DUAL_SUFFIXES:
            mode = "white" if theme == "dark" else "black"
            return f"{base}{suffix}_{mode}.png"
        return name

    def serve(self, path: str, theme: str = "light") -> tuple[bytes, str] | None:
        name = self.resolve_served_name(path, theme)
        data = self.read(name)
        if data is None:
            return None
        return data, mime_for(name)

    def canonical_for(self, path: str) -> str | None:
        """Locate the canonical asset behind *path*, or None if it is gone."""
        name = filename_of(path)
        if not is_valid_name(name):
            return None
        base, suffix, ext = split_name(name)
        if suffix:
            candidates = [f"{base}.png", f"{base}{_LEGACY_CANONICAL}.png"]
            if ext and ext != ".png":
                candidates.append(f"{base}{ext}")
        else:
            candidates = [name, f"{base}.png"]
        for candidate in candidates:
            if self.exists(candidate):
                return candidate
        return None

    def list_assets(self) -> list[str]:
        try:
            return sorted(
                p.name for p in self._dir.iterdir()
                if p.is_file() and not p.name.startswith(".")
            )
        except FileNotFoundError:
            return []

    def stats(self) -> dict[str, Any]:
        files: list[dict[str, Any]] = []
        for name in self.list_assets():
            try:
                st = (self._dir / name).stat()
            except OSError:
                continue
            files.append({"name": name, "size": st.st_size, "mtime": st.st_mtime})

        families: dict[str, list[dict[str, Any]]] = {}
        for f in files:
            families.setdefault(_family(f["name"]), []).append(f)

        def _sum(items: list[dict[str, Any]]) -> int:
            return sum(i["size"] for i in items)

        originals = families.get("original", [])
        derived = [f for f in files if _family(f["name"]) != "original"]
        total = _sum(files)
        breakdown = [
            {
                "type": family,
                "count": len(families[family]),
                "size": _sum(families[family]),
                "size_formatted": _format_bytes(_sum(families[family])),
            }
            for family in ("original", "themed", "grayscale", "inverted")
            if families.get(family)
        ]
        recent = sorted(files, key=lambda f: f["mtime"], reverse=True)[:5]
        return {
            "total_files": len(files),
            "total_size": total,
            "total_size_formatted": _format_bytes(total),
            "original_count": len(originals),
            "original_size": _sum(originals),
            "derived_count": len(derived),
            "derived_size": _sum(derived),
            "breakdown": breakdown,
            "recent_files": [
                {
                    "name": f["name"],
                    "size": f["size"],
                    "modified": datetime.fromtimestamp(f["mtime"], tz=timezone.utc).isoformat(),
                }
                for f in recent
            ],
        }
