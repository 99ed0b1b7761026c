"""Web server -- app factory and entry point."""

from __future__ import annotations

import logging

from aiohttp import ClientSession, web
from aiohttp.abc import AbstractAccessLogger

from .. import __version__
from ..config.settings import cfg
from ..icons.pipeline import IconPipeline
from ..icons.store import AssetStore
from ..state.item_store import ItemStore
from .routes.favicon_routes import HTTP_SESSION, FaviconRoutes
from .routes.tools_routes import ToolsRoutes

logger = logging.getLogger(__name__)

_QUIET_PATHS = frozenset({"/health"})
_QUIET_PREFIXES = ("/api/favicons/serve/",)


# ---------------------------------------------------------------------------
# Access logger
# ---------------------------------------------------------------------------


class QuietAccessLogger(AbstractAccessLogger):
    """Demotes icon-serving and health-check log entries to DEBUG."""

    def log(self, request: web.BaseRequest, response: web.StreamResponse, time: float) -> None:
        quiet = request.path in _QUIET_PATHS or request.path.startswith(_QUIET_PREFIXES)
        self.logger.log(
            logging.DEBUG if quiet else logging.INFO,
            "%s %s %s %s %.3fs",
            request.remote,
            request.method,
            request.path,
            response.status,
            time,
        )


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

_PUBLIC_PREFIXES = ("/health", "/api/favicons/serve/")
_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


@web.middleware
async def auth_middleware(request: web.Request, handler):  # type: ignore[type-arg]
    secret = cfg.admin_secret
    if not secret:
        return await handler(request)

    path = request.path

    # Only mutating /api/* calls need the secret; serving stays public
    if not path.startswith("/api/") or request.method in _SAFE_METHODS:
        return await handler(request)

    if any(path.startswith(p) for p in _PUBLIC_PREFIXES):
        return await handler(request)

    if request.headers.get("Authorization", "") == f"Bearer {secret}":
        return await handler(request)

    if request.query.get("token") == secret:
        return await handler(request)

    return web.json_response(
        {"status": "unauthorized", "message": "Invalid or missing admin secret"},
        status=401,
    )


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


async def create_app() -> web.Application:
    factory = AppFactory()
    return await factory.build()


async def _health(_req: web.Request) -> web.Response:
    return web.json_response({"status": "ok", "version": __version__})


class AppFactory:
    """Builds the aiohttp application with all dependencies wired."""

    def __init__(
        self,
        pipeline: IconPipeline | None = None,
        items: ItemStore | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._items = items

    async def build(self) -> web.Application:
        cfg.ensure_dirs()
        self._init_core()

        app = web.Application(middlewares=[auth_middleware])
        self._register_routes(app)
        self._register_lifecycle(app)
        return app

    def _init_core(self) -> None:
        if self._pipeline is None:
            self._pipeline = IconPipeline(AssetStore())
        if self._items is None:
            self._items = ItemStore()
        logger.info(
            "Icon store at %s, items at %s",
            self._pipeline.store.directory,
            cfg.items_path,
        )

    # ------------------------------------------------------------------
    # Route registration
    # ------------------------------------------------------------------

    def _register_routes(self, app: web.Application) -> None:
        router = app.router
        router.add_get("/health", _health)
        FaviconRoutes(self._pipeline, self._items).register(router)
        ToolsRoutes(self._pipeline, self._items).register(router)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _register_lifecycle(self, app: web.Application) -> None:
        app.on_startup.append(self._on_startup)
        app.on_cleanup.append(self._on_cleanup)

    async def _on_startup(self, app: web.Application) -> None:
        app[HTTP_SESSION] = ClientSession(headers={"User-Agent": cfg.icon_user_agent})

    async def _on_cleanup(self, app: web.Application) -> None:
        session = app.get(HTTP_SESSION)
        if session is not None:
            await session.close()


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s  %(name)s  %(levelname)s  %(message)s",
    )
    cfg.reload()
    port = cfg.admin_port
    logger.info("Starting icon server on port %d ...", port)
    if not cfg.admin_secret:
        logger.warning("ADMIN_SECRET is not set -- mutating API routes are unprotected")
    web.run_app(create_app(), host="0.0.0.0", port=port, access_log_class=QuietAccessLogger)


if __name__ == "__main__":
    main()
