"""Remote library materializer -- pull catalog icons into the local store."""

from __future__ import annotations

import logging

from aiohttp import ClientSession

from ..config.settings import cfg
from ..util.async_helpers import run_sync
from ..util.result import Result
from . import transform
from .errors import IconError, IconPipelineError
from .reference import (
    Empty,
    IconReference,
    LibraryComponent,
    Local,
    RemoteCatalog,
    catalog_url,
)
from .resolver import OriginResolver, client_session
from .store import AssetStore, sanitize_base_name

logger = logging.getLogger(__name__)

CATALOG_BASE_PREFIX = "selfhst_"


class RemoteMaterializer:
    """Downloads ``RemoteCatalog`` icons and stores them as canonical PNGs.

    The stored base is deterministic (``selfhst_<id>``), so a second request
    for the same id reuses the existing file instead of downloading again.
    """

    def __init__(
        self,
        store: AssetStore,
        resolver: OriginResolver | None = None,
        *,
        template: str | None = None,
        max_size: int | None = None,
    ) -> None:
        self._store = store
        self._resolver = resolver or OriginResolver()
        self._template = template
        self._max_size = max_size or cfg.icon_max_size

    @staticmethod
    def base_for(ref: RemoteCatalog) -> str:
        return sanitize_base_name(CATALOG_BASE_PREFIX + ref.id)

    async def ensure_local(
        self,
        ref: IconReference,
        *,
        session: ClientSession | None = None,
    ) -> Result:
        """Return ``Result.ok(value=Local)`` for *ref*."""
        if isinstance(ref, Local):
            return Result.ok("Already local", value=ref)
        if isinstance(ref, (LibraryComponent, Empty)):
            return Result.fail(
                "Only catalog icons can be materialized", error=IconError.UNSUPPORTED,
            )

        filename = f"{self.base_for(ref)}.png"
        if self._store.exists(filename):
            logger.debug("Catalog icon %s already stored as %s", ref.id, filename)
            return Result.ok("Already materialized", value=Local(filename))

        url = catalog_url(ref, self._template)
        try:
            async with client_session(session) as s:
                data, _ctype = await self._resolver.download(url, s)
            png = await run_sync(transform.normalize, data, self._max_size)
            self._store.write(filename, png)
        except IconPipelineError as exc:
            logger.warning("Materializing %s failed: %s", ref.id, exc.message)
            return Result.fail(exc.message, error=exc.error)

        logger.info("Materialized catalog icon %s as %s", ref.id, filename)
        return Result.ok(f"Downloaded {url}", value=Local(filename))
