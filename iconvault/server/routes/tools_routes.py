"""Maintenance tool routes -- /api/tools/*."""

from __future__ import annotations

from dataclasses import asdict

from aiohttp import web

from ...icons.pipeline import BatchItem, IconPipeline, MaintenanceReport
from ...state.item_store import ItemStore
from .favicon_routes import shared_session


class ToolsRoutes:
    """Bulk repair, materialize and prune sweeps over every stored item."""

    def __init__(self, pipeline: IconPipeline, items: ItemStore) -> None:
        self._pipeline = pipeline
        self._items = items

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/tools/repair-favicons", self._repair)
        router.add_post("/api/tools/download-remote-icons", self._download_remote)
        router.add_post("/api/tools/prune-orphans", self._prune)

    def _all_items(self) -> list[BatchItem]:
        return [BatchItem(**asdict(i)) for i in self._items.list_items()]

    def _apply(self, report: MaintenanceReport) -> web.Response:
        for r in report.updated:
            self._items.set_icon(r.type, r.id, r.icon)
        return web.json_response({"success": True, **report.to_dict()})

    async def _repair(self, req: web.Request) -> web.Response:
        report = await self._pipeline.repair(self._all_items(), session=shared_session(req))
        return self._apply(report)

    async def _download_remote(self, req: web.Request) -> web.Response:
        report = await self._pipeline.materialize_all(
            self._all_items(), session=shared_session(req),
        )
        return self._apply(report)

    async def _prune(self, _req: web.Request) -> web.Response:
        report = await self._pipeline.prune(self._all_items())
        return web.json_response({
            "success": True,
            "message": (
                f"Removed {report['removed']} orphan file(s), "
                f"freed {report['space_freed_formatted']}"
            ),
            **report,
        })
