"""Fetch / convert orchestrator -- the public entry points of the icon pipeline.

Every operation returns a :class:`Result`; pipeline errors never escape past
this module.  The only exception raised to callers is ``ValueError`` for a
malformed (empty) batch.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aiohttp import ClientSession
from PIL import Image

from ..config.settings import cfg
from ..util.async_helpers import gather_bounded, run_sync
from ..util.result import Result
from . import transform
from .errors import DecodeFailed, IconError, IconPipelineError
from .materializer import RemoteMaterializer
from .reference import (
    Empty,
    IconReference,
    LibraryComponent,
    Local,
    RemoteCatalog,
    local,
    parse_reference,
)
from .resolver import OriginResolver, client_session
from .store import AssetStore, split_name
from .themes import resolve_color

logger = logging.getLogger(__name__)


class TransformKind(str, Enum):
    COLOR = "color"
    GRAYSCALE = "grayscale"
    INVERT = "invert"


class ItemState(str, Enum):
    PENDING = "pending"
    FETCHING = "fetching"
    STORED = "stored"
    FAILED = "failed"


@dataclass(frozen=True)
class FetchOutcome:
    filename: str
    domain: str
    reference: str
    source_url: str = ""


@dataclass(frozen=True)
class ConversionOutcome:
    filename: str
    reference: str
    written: tuple[str, ...] = ()


@dataclass
class BatchItem:
    id: str
    type: str
    name: str = ""
    url: str = ""
    section: str = ""
    icon: str = ""


@dataclass
class BatchItemResult:
    id: str
    type: str
    name: str = ""
    url: str = ""
    section: str = ""
    state: ItemState = ItemState.PENDING
    filename: str = ""
    icon: str = ""
    reason: str = ""

    @classmethod
    def for_item(cls, item: BatchItem) -> BatchItemResult:
        return cls(id=item.id, type=item.type, name=item.name, url=item.url, section=item.section)

    def stored(self, filename: str, icon: str) -> BatchItemResult:
        self.state, self.filename, self.icon = ItemState.STORED, filename, icon
        return self

    def failed(self, reason: str) -> BatchItemResult:
        self.state, self.reason = ItemState.FAILED, reason
        return self

    def success_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "name": self.name,
                "filename": self.filename, "icon": self.icon}

    def failure_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "name": self.name,
                "url": self.url, "section": self.section, "reason": self.reason}


@dataclass
class BatchSummary:
    total: int
    successful: int
    results: list[BatchItemResult] = field(default_factory=list)
    failed: list[BatchItemResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: list[BatchItemResult]) -> BatchSummary:
        ok = [r for r in results if r.state is ItemState.STORED]
        bad = [r for r in results if r.state is not ItemState.STORED]
        return cls(total=len(results), successful=len(ok), results=ok, failed=bad)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "results": [r.success_dict() for r in self.results],
            "failed": [r.failure_dict() for r in self.failed],
        }


@dataclass
class MaintenanceReport:
    """Outcome of a repair or materialize sweep over many items."""

    checked: int = 0
    updated: list[BatchItemResult] = field(default_factory=list)
    skipped: list[BatchItemResult] = field(default_factory=list)
    failed: list[BatchItemResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "checked": self.checked,
            "updated": [r.success_dict() for r in self.updated],
            "skipped": [r.failure_dict() for r in self.skipped],
            "failed": [r.failure_dict() for r in self.failed],
        }


def _fail(exc: IconPipelineError) -> Result:
    return Result.fail(exc.message, error=exc.error)


def _render(
    kind: TransformKind,
    image: Image.Image,
    base: str,
    color: tuple[str, tuple[int, int, int]] | None,
) -> tuple[str, list[tuple[str, bytes]]]:
    """Apply *kind* and encode every output; returns ``(ref_name, files)``."""
    if kind is TransformKind.COLOR:
        token, rgb = color  # type: ignore[misc]
        name = f"{base}_themed_{token}.png"
        return name, [(name, transform.encode_png(transform.recolor(image, rgb)))]
    if kind is TransformKind.GRAYSCALE:
        dark, light = transform.grayscale(image)
        return f"{base}_grayscale.png", [
            (f"{base}_grayscale_black.png", transform.encode_png(dark)),
            (f"{base}_grayscale_white.png", transform.encode_png(light)),
        ]
    name = f"{base}_inverted.png"
    return name, [(name, transform.encode_png(transform.invert(image)))]


class IconPipeline:
    """Coordinates resolver, transform engine and asset store."""

    def __init__(
        self,
        store: AssetStore | None = None,
        resolver: OriginResolver | None = None,
        materializer: RemoteMaterializer | None = None,
        *,
        theme_color: Callable[[], str] | None = None,
        concurrency: int | None = None,
        max_size: int | None = None,
    ) -> None:
        self.store = store or AssetStore()
        self.resolver = resolver or OriginResolver()
        self.materializer = materializer or RemoteMaterializer(self.store, self.resolver)
        self._theme_color = theme_color or (lambda: cfg.theme_color)
        self._concurrency = concurrency or cfg.icon_batch_concurrency
        self._max_size = max_size or cfg.icon_max_size

    # ------------------------------------------------------------------
    # Fetch
    # ------------------------------------------------------------------

    async def fetch_favicon(
        self,
        url: str,
        *,
        direct: bool = False,
        session: ClientSession | None = None,
    ) -> Result:
        """Resolve, normalise and store a favicon for *url*."""
        normalize = functools.partial(transform.normalize, max_size=self._max_size)
        result = await self.resolver.resolve(url, direct=direct, convert=normalize, session=session)
        if not result:
            return result
        icon = result.value
        try:
            filename = await run_sync(self.store.save, icon.data, icon.domain)
        except IconPipelineError as exc:
            return _fail(exc)
        return Result.ok(
            f"Favicon stored as {filename}",
            value=FetchOutcome(filename, icon.domain, local(filename), icon.url),
        )

    # ------------------------------------------------------------------
    # Convert / revert
    # ------------------------------------------------------------------

    async def convert(
        self,
        kind: TransformKind | str,
        source: IconReference | str,
        *,
        color: str | None = None,
        item_url: str = "",
        session: ClientSession | None = None,
    ) -> Result:
        """Derive a themed, grayscale or inverted variant of *source*.

        Derived references are traced back to their canonical asset first,
        so a transform is never applied on top of another transform.
        """
        try:
            kind = TransformKind(kind)
        except ValueError:
            return Result.fail(f"Unknown transform: {kind}", error=IconError.UNSUPPORTED)

        ref = parse_reference(source) if isinstance(source, str) else source
        if isinstance(ref, Empty):
            return Result.fail("Item has no icon", error=IconError.NOT_FOUND)
        if isinstance(ref, LibraryComponent):
            return Result.fail(
                "Library icons cannot be converted", error=IconError.UNSUPPORTED,
            )
        if isinstance(ref, RemoteCatalog):
            materialized = await self.materializer.ensure_local(ref, session=session)
            if not materialized:
                return materialized
            ref = materialized.value

        try:
            rgb = None
            if kind is TransformKind.COLOR:
                rgb = resolve_color(color or self._theme_color())
            canonical, image = await self._load_canonical(ref, item_url, session)
            base = split_name(canonical)[0]
            ref_name, outputs = await run_sync(_render, kind, image, base, rgb)
            for name, data in outputs:
                await run_sync(self.store.write, name, data)
        except IconPipelineError as exc:
            logger.info("Convert %s of %s failed: %s", kind.value, ref, exc.message)
            return _fail(exc)

        logger.info("Converted %s -> %s", canonical, ref_name)
        return Result.ok(
            f"Created {ref_name}",
            value=ConversionOutcome(ref_name, local(ref_name), tuple(n for n, _ in outputs)),
        )

    async def _load_canonical(
        self,
        ref: Local,
        item_url: str,
        session: ClientSession | None,
    ) -> tuple[str, Image.Image]:
        canonical = self.store.canonical_for(ref.filename)
        if canonical:
            data = self.store.read(canonical) or b""
            try:
                return canonical, await run_sync(transform.decode, data, self._max_size)
            except DecodeFailed:
                if not item_url:
                    raise
                logger.warning("Canonical %s is undecodable; re-fetching", canonical)
        elif not item_url:
            raise IconPipelineError(
                f"Original icon for {ref.filename} not found", error=IconError.NOT_FOUND,
            )

        fetched = await self.fetch_favicon(item_url, session=session)
        if not fetched:
            raise IconPipelineError(fetched.message, error=IconError(fetched.error))
        canonical = fetched.value.filename
        data = self.store.read(canonical) or b""
        return canonical, await run_sync(transform.decode, data, self._max_size)

    async def revert(self, source: IconReference | str) -> Result:
        """Return the canonical reference behind a (possibly derived) icon."""
        ref = parse_reference(source) if isinstance(source, str) else source
        if isinstance(ref, Empty):
            return Result.fail("Item has no icon", error=IconError.NOT_FOUND)
        if isinstance(ref, LibraryComponent):
            return Result.fail("Library icons have no original", error=IconError.UNSUPPORTED)
        if isinstance(ref, RemoteCatalog):
            return Result.ok("Catalog icons are already original",
                             value=ConversionOutcome("", f"selfhst:{ref.id}"))
        canonical = self.store.canonical_for(ref.filename)
        if canonical is None:
            return Result.fail(
                f"Original icon for {ref.filename} not found", error=IconError.NOT_FOUND,
            )
        return Result.ok(f"Reverted to {canonical}",
                         value=ConversionOutcome(canonical, local(canonical)))

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def batch_fetch(
        self,
        items: Iterable[BatchItem],
        *,
        session: ClientSession | None = None,
    ) -> BatchSummary:
        """Fetch favicons for many items; one item's failure never stops another."""
        items = list(items)
        if not items:
            raise ValueError("No items to fetch")
        logger.info("Batch fetching %d favicon(s), concurrency %d", len(items), self._concurrency)
        async with client_session(session) as s:
            results = await gather_bounded(
                self._concurrency,
                (functools.partial(self._fetch_one, item, s) for item in items),
            )
        summary = BatchSummary.from_results(results)
        logger.info("Batch done: %d/%d stored", summary.successful, summary.total)
        return summary

    async def _fetch_one(self, item: BatchItem, session: ClientSession) -> BatchItemResult:
        res = BatchItemResult.for_item(item)
        if not item.url:
            return res.failed("Item has no URL")
        res.state = ItemState.FETCHING
        try:
            fetched = await self.fetch_favicon(item.url, session=session)
        except Exception as exc:
            logger.exception("Unexpected error fetching favicon for %s", item.url)
            return res.failed(str(exc) or type(exc).__name__)
        if not fetched:
            return res.failed(fetched.message or fetched.error)
        return res.stored(fetched.value.filename, fetched.value.reference)

    async def repair(
        self,
        items: Iterable[BatchItem],
        *,
        session: ClientSession | None = None,
    ) -> MaintenanceReport:
        """Re-fetch items whose local canonical asset is missing or broken."""
        report = MaintenanceReport()
        async with client_session(session) as s:
            for item in items:
                ref = parse_reference(item.icon)
                if not isinstance(ref, Local):
                    continue
                report.checked += 1
                res = BatchItemResult.for_item(item)
                if await self._canonical_ok(ref):
                    continue
                if not item.url:
                    report.skipped.append(res.failed("Broken icon and no URL to re-fetch"))
                    continue
                fetched = await self.fetch_favicon(item.url, session=s)
                if not fetched:
                    report.failed.append(res.failed(fetched.message))
                    continue
                outcome: FetchOutcome = fetched.value
                self.store.remove_family(split_name(ref.filename)[0], keep=outcome.filename)
                report.updated.append(res.stored(outcome.filename, outcome.reference))
        logger.info(
            "Repair: %d checked, %d repaired, %d skipped, %d failed",
            report.checked, len(report.updated), len(report.skipped), len(report.failed),
        )
        return report

    async def _canonical_ok(self, ref: Local) -> bool:
        canonical = self.store.canonical_for(ref.filename)
        if canonical is None:
            return False
        try:
            await run_sync(transform.decode, self.store.read(canonical) or b"", self._max_size)
        except DecodeFailed:
            return False
        return True

    async def materialize_all(
        self,
        items: Iterable[BatchItem],
        *,
        session: ClientSession | None = None,
    ) -> MaintenanceReport:
        """Download every catalog-referenced icon into the local store."""
        report = MaintenanceReport()
        targets = [i for i in items if isinstance(parse_reference(i.icon), RemoteCatalog)]
        report.checked = len(targets)
        if not targets:
            return report

        async def _one(item: BatchItem, session: ClientSession) -> BatchItemResult:
            res = BatchItemResult.for_item(item)
            r = await self.materializer.ensure_local(parse_reference(item.icon), session=session)
            if not r:
                return res.failed(r.message)
            return res.stored(r.value.filename, local(r.value.filename))

        async with client_session(session) as s:
            results = await gather_bounded(
                self._concurrency, (functools.partial(_one, i, s) for i in targets),
            )
        for r in results:
            (report.updated if r.state is ItemState.STORED else report.failed).append(r)
        logger.info("Materialized %d of %d catalog icon(s)", len(report.updated), report.checked)
        return report

    # ------------------------------------------------------------------
    # Prune
    # ------------------------------------------------------------------

    async def prune(self, items: Iterable[BatchItem]) -> dict[str, Any]:
        """Delete stored files whose base name no item references.

        Catalog-referenced items keep their materialized copy so the next
        :meth:`materialize_all` can reuse it.
        """
        bases: set[str] = set()
        for item in items:
            ref = parse_reference(item.icon)
            if isinstance(ref, Local):
                bases.add(split_name(ref.filename)[0])
            elif isinstance(ref, RemoteCatalog):
                bases.add(self.materializer.base_for(ref))
        return await run_sync(self.store.prune, bases)
