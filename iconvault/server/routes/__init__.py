"""Server route handlers."""

from __future__ import annotations

from .favicon_routes import FaviconRoutes
from .tools_routes import ToolsRoutes

__all__ = [
    "FaviconRoutes",
    "ToolsRoutes",
]
