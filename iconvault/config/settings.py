"""Application settings -- reads from environment and ``.env`` file.

All configuration is consolidated here.  The icon pipeline reads its
timeouts, limits and CDN templates from ``cfg``; the host reads the port,
admin secret and current theme color.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import ClassVar

from ..util.env_file import EnvFile
from ..util.singletons import register_singleton

DEFAULT_CATALOG_URL = "https://cdn.jsdelivr.net/gh/selfhst/icons@latest/png/{id}.png"
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


class Settings:
    """Runtime configuration sourced from environment variables and ``.env``."""

    _DATA_DIR_ENV: ClassVar[str] = "ICONVAULT_DATA_DIR"

    def __init__(self) -> None:
        # Resolve .env path: explicit DOTENV_PATH > data_dir/.env > CWD/.env
        dotenv = os.getenv("DOTENV_PATH")
        if not dotenv:
            data_dir = os.getenv(self._DATA_DIR_ENV)
            if data_dir:
                dotenv = str(Path(data_dir) / ".env")
            else:
                dotenv = ".env"
        self.env = EnvFile(dotenv)
        self.reload()

    def reload(self) -> None:
        """Re-read the ``.env`` file and environment variables."""
        e = self._read

        self.admin_port: int = int(e("ADMIN_PORT") or "8000")
        self.admin_secret: str = e("ADMIN_SECRET")

        self.theme_color: str = e("THEME_COLOR") or "Slate"

        self.icon_fetch_timeout: float = float(e("ICON_FETCH_TIMEOUT") or "5")
        self.icon_batch_concurrency: int = max(1, int(e("ICON_BATCH_CONCURRENCY") or "6"))
        self.icon_max_size: int = int(e("ICON_MAX_SIZE") or "128")
        self.icon_min_bytes: int = int(e("ICON_MIN_BYTES") or "100")
        self.icon_catalog_url: str = e("ICON_CATALOG_URL") or DEFAULT_CATALOG_URL
        self.icon_user_agent: str = e("ICON_USER_AGENT") or DEFAULT_USER_AGENT

        raw_fallbacks = e("ICON_FALLBACK_SERVICES")
        self.icon_fallback_services: tuple[str, ...] = tuple(
            t.strip() for t in raw_fallbacks.split(",") if t.strip()
        ) if raw_fallbacks else ()

    # -- derived paths -----------------------------------------------------

    @property
    def data_dir(self) -> Path:
        return Path(os.getenv(self._DATA_DIR_ENV, str(Path.home() / ".iconvault")))

    @property
    def favicon_dir(self) -> Path:
        return self.data_dir / "favicons"

    @property
    def items_path(self) -> Path:
        return self.data_dir / "items.json"

    # -- helpers -----------------------------------------------------------

    def _read(self, key: str) -> str:
        return self.env.read(key) or os.getenv(key, "")

    def ensure_dirs(self) -> None:
        for d in (self.data_dir, self.favicon_dir):
            d.mkdir(parents=True, exist_ok=True)

    def write_env(self, **kwargs: str) -> None:
        self.env.write(**kwargs)
        self.reload()


# Module-level singleton
cfg = Settings()


def _reset_cfg() -> None:
    # Other modules hold ``cfg`` by reference; re-initialise in place.
    cfg.__init__()


register_singleton("cfg", _reset_cfg)
