"""Favicon API routes -- /api/favicons/*."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Any

from aiohttp import ClientSession, web

from ...icons.errors import IconError
from ...icons.pipeline import BatchItem, BatchItemResult, IconPipeline, TransformKind
from ...icons.reference import SERVE_PREFIX, Local, parse_reference
from ...icons.store import THEMES, is_valid_name, split_name
from ...state.item_store import ITEM_TYPES, ItemStore
from ...util.async_helpers import run_sync
from ...util.result import Result

logger = logging.getLogger(__name__)

HTTP_SESSION = web.AppKey("http_session", ClientSession)

_ERROR_STATUS = {
    IconError.NOT_FOUND: 404,
    IconError.UNSUPPORTED: 400,
    IconError.DECODE_FAILED: 400,
    IconError.NETWORK_ERROR: 502,
    IconError.WRITE_FAILED: 500,
}
_SERVE_CACHE = "public, max-age=31536000, immutable"


def shared_session(req: web.Request) -> ClientSession | None:
    return req.app.get(HTTP_SESSION)


def failure_response(result: Result) -> web.Response:
    status = _ERROR_STATUS.get(IconError(result.error), 500) if result.error else 500
    return web.json_response(result.to_dict(), status=status)


def bad_request(message: str) -> web.Response:
    return web.json_response(
        {"success": False, "error": "BadRequest", "message": message}, status=400,
    )


async def read_json(req: web.Request) -> dict[str, Any]:
    try:
        data = await req.json()
    except ValueError:
        return {}
    return data if isinstance(data, dict) else {}


class FaviconRoutes:
    """REST handlers for fetching, converting and serving favicons."""

    def __init__(self, pipeline: IconPipeline, items: ItemStore) -> None:
        self._pipeline = pipeline
        self._items = items

    def register(self, router: web.UrlDispatcher) -> None:
        router.add_post("/api/favicons/fetch", self._fetch)
        router.add_post("/api/favicons/convert", self._convert)
        router.add_post("/api/favicons/convert-color", self._convert_kind(TransformKind.COLOR))
        router.add_post(
            "/api/favicons/convert-grayscale", self._convert_kind(TransformKind.GRAYSCALE),
        )
        router.add_post("/api/favicons/invert", self._convert_kind(TransformKind.INVERT))
        router.add_post("/api/favicons/revert", self._revert)
        router.add_post("/api/favicons/batch", self._batch)
        router.add_get("/api/favicons/serve/{filename}", self._serve)
        router.add_get("/api/favicons/stats", self._stats)

    async def _fetch(self, req: web.Request) -> web.Response:
        data = await read_json(req)
        url = str(data.get("url") or "").strip()
        if not url:
            return bad_request("url is required")
        result = await self._pipeline.fetch_favicon(
            url,
            direct=bool(data.get("isDirectFaviconUrl")),
            session=shared_session(req),
        )
        if not result:
            return failure_response(result)
        outcome = result.value
        return web.json_response({
            "success": True,
            "path": SERVE_PREFIX + outcome.filename,
            "filename": outcome.filename,
            "domain": outcome.domain,
            "icon": outcome.reference,
        })

    async def _convert(self, req: web.Request) -> web.Response:
        data = await read_json(req)
        return await self._run_convert(req, str(data.get("kind") or ""), data)

    def _convert_kind(self, kind: TransformKind):
        async def handler(req: web.Request) -> web.Response:
            return await self._run_convert(req, kind.value, await read_json(req))

        return handler

    async def _run_convert(
        self, req: web.Request, kind: str, data: dict[str, Any],
    ) -> web.Response:
        source = str(data.get("favicon") or data.get("icon") or "")
        if not kind:
            return bad_request("kind is required")
        if not source:
            return bad_request("favicon is required")
        result = await self._pipeline.convert(
            kind,
            source,
            color=data.get("color") or None,
            item_url=str(data.get("itemUrl") or "") or self._item_url_for(source),
            session=shared_session(req),
        )
        if not result:
            return failure_response(result)
        outcome = result.value
        return web.json_response({
            "success": True,
            "path": SERVE_PREFIX + outcome.filename,
            "filename": outcome.filename,
            "icon": outcome.reference,
        })

    def _item_url_for(self, source: str) -> str:
        """URL of the first item whose local icon shares *source*'s base name."""
        ref = parse_reference(source)
        if not isinstance(ref, Local):
            return ""
        base = split_name(ref.filename)[0]
        for item in self._items.list_items():
            icon = parse_reference(item.icon)
            if item.url and isinstance(icon, Local) and split_name(icon.filename)[0] == base:
                return item.url
        return ""

    async def _revert(self, req: web.Request) -> web.Response:
        data = await read_json(req)
        source = str(data.get("favicon") or data.get("icon") or "")
        if not source:
            return bad_request("favicon is required")
        result = await self._pipeline.revert(source)
        if not result:
            return failure_response(result)
        return web.json_response({
            "success": True,
            "filename": result.value.filename,
            "icon": result.value.reference,
        })

    async def _batch(self, req: web.Request) -> web.Response:
        data = await read_json(req)
        item_type = str(data.get("type") or "")
        raw_ids = data.get("ids")
        if item_type not in ITEM_TYPES:
            return bad_request(f"type must be one of {', '.join(ITEM_TYPES)}")
        if not isinstance(raw_ids, list):
            return bad_request("ids must be a non-empty list")
        ids = [str(i) for i in raw_ids if isinstance(i, (str, int)) and str(i)]
        if not ids:
            return bad_request("ids must be a non-empty list")

        found = self._items.get_items(item_type, ids)
        known = {i.id for i in found}
        missing = [
            BatchItemResult(id=i, type=item_type).failed("Item not found")
            for i in ids if i not in known
        ]
        if not found:
            return web.json_response({
                "success": False, "total": len(ids), "successful": 0,
                "results": [], "failed": [m.failure_dict() for m in missing],
            }, status=404)

        summary = await self._pipeline.batch_fetch(
            [BatchItem(**asdict(i)) for i in found], session=shared_session(req),
        )
        summary.failed.extend(missing)
        summary.total += len(missing)
        for r in summary.results:
            self._items.set_icon(r.type, r.id, r.icon)
        return web.json_response({"success": True, **summary.to_dict()})

    async def _serve(self, req: web.Request) -> web.Response:
        filename = req.match_info["filename"]
        theme = req.query.get("theme", "light")
        if theme not in THEMES:
            return bad_request("theme must be light or dark")
        if not is_valid_name(filename):
            return bad_request("Invalid filename")
        served = await run_sync(self._pipeline.store.serve, filename, theme)
        if served is None:
            return web.json_response(
                {"success": False, "error": str(IconError.NOT_FOUND), "message": "Favicon not found"},
                status=404,
            )
        body, content_type = served
        return web.Response(
            body=body, content_type=content_type, headers={"Cache-Control": _SERVE_CACHE},
        )

    async def _stats(self, _req: web.Request) -> web.Response:
        stats = await run_sync(self._pipeline.store.stats)
        return web.json_response({"success": True, **stats})
