"""Shared pytest fixtures for iconvault tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from iconvault.tests.fakes import FakeOrigin, Route


@pytest.fixture(autouse=True)
def _isolate_data_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setenv("ICONVAULT_DATA_DIR", str(data_dir))
    monkeypatch.setenv("DOTENV_PATH", str(tmp_path / ".env"))
    for key in ("ADMIN_SECRET", "THEME_COLOR", "ICON_FALLBACK_SERVICES", "ICON_CATALOG_URL"):
        monkeypatch.delenv(key, raising=False)
    return data_dir


@pytest.fixture(autouse=True)
def _reset_singletons(_isolate_data_dir: Path):
    from iconvault.util.singletons import reset_all_singletons

    reset_all_singletons()
    yield
    reset_all_singletons()


@pytest.fixture()
def data_dir(_isolate_data_dir: Path) -> Path:
    return _isolate_data_dir


@pytest.fixture()
async def origin():
    """Factory starting a :class:`FakeOrigin` from ``{path: Route}``."""
    started: list[FakeOrigin] = []

    async def _start(routes: dict[str, Route]) -> FakeOrigin:
        fake = await FakeOrigin.start(routes)
        started.append(fake)
        return fake

    yield _start
    for fake in started:
        await fake.close()
