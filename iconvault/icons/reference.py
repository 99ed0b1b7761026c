"""Icon reference codec -- the tagged string stored in an item's icon field.

Four shapes share one untyped database column::

    favicon:<path>     Local          a file in the asset namespace
    selfhst:<id>       RemoteCatalog  an icon on the hosted catalog CDN
    <name>             LibraryComponent  a built-in vector icon
    ""                 Empty

Parsing is total: legacy or hand-edited values are classified, never
rejected, and ``format_reference(parse_reference(s)) == s`` for every ``s``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

LOCAL_PREFIX = "favicon:"
CATALOG_PREFIX = "selfhst:"
SERVE_PREFIX = "/api/favicons/serve/"


@dataclass(frozen=True)
class Local:
    path: str

    @property
    def filename(self) -> str:
        """The bare file name, with any legacy serve-route prefix removed."""
        return filename_of(self.path)


@dataclass(frozen=True)
class RemoteCatalog:
    id: str


@dataclass(frozen=True)
class LibraryComponent:
    name: str


@dataclass(frozen=True)
class Empty:
    pass


IconReference = Union[Local, RemoteCatalog, LibraryComponent, Empty]


def parse_reference(raw: str | None) -> IconReference:
    if not raw:
        return Empty()
    if raw.startswith(LOCAL_PREFIX):
        return Local(raw[len(LOCAL_PREFIX):])
    if raw.startswith(CATALOG_PREFIX):
        return RemoteCatalog(raw[len(CATALOG_PREFIX):])
    return LibraryComponent(raw)


def format_reference(ref: IconReference) -> str:
    if isinstance(ref, Local):
        return LOCAL_PREFIX + ref.path
    if isinstance(ref, RemoteCatalog):
        return CATALOG_PREFIX + ref.id
    if isinstance(ref, LibraryComponent):
        return ref.name
    return ""


def local(filename: str) -> str:
    """Serialised ``Local`` reference for a stored file name."""
    return format_reference(Local(filename))


def provenance(ref: IconReference) -> str:
    """Return ``'local'``, ``'remote'``, ``'library'`` or ``'none'``."""
    if isinstance(ref, Local):
        return "local"
    if isinstance(ref, RemoteCatalog):
        return "remote"
    if isinstance(ref, LibraryComponent):
        return "library"
    return "none"


def catalog_url(ref: RemoteCatalog, template: str | None = None) -> str:
    if template is None:
        from ..config.settings import cfg

        template = cfg.icon_catalog_url
    return template.format(id=ref.id)


def filename_of(path: str) -> str:
    """Reduce a reference, serve path or bare name to the stored file name."""
    if path.startswith(LOCAL_PREFIX):
        path = path[len(LOCAL_PREFIX):]
    if path.startswith(SERVE_PREFIX):
        path = path[len(SERVE_PREFIX):]
    return path
