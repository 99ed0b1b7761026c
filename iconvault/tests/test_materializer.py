"""Tests for the remote catalog materializer."""

from __future__ import annotations

from pathlib import Path

import pytest

from iconvault.icons import transform
from iconvault.icons.materializer import RemoteMaterializer
from iconvault.icons.reference import Empty, LibraryComponent, Local, RemoteCatalog
from iconvault.icons.resolver import OriginResolver
from iconvault.icons.store import AssetStore
from iconvault.tests.fakes import Route, noise_png


@pytest.fixture()
def store(tmp_path: Path) -> AssetStore:
    return AssetStore(tmp_path / "favicons")


async def _cdn(origin, **routes: Route):
    return await origin({f"/png/{name}.png": route for name, route in routes.items()})


class TestEnsureLocal:
    @pytest.mark.asyncio
    async def test_downloads_and_normalizes(self, origin, store: AssetStore) -> None:
        data = noise_png(256, seed=11)
        cdn = await _cdn(origin, jellyfin=Route(data))
        mat = RemoteMaterializer(store, template=cdn.base + "/png/{id}.png")

        result = await mat.ensure_local(RemoteCatalog("jellyfin"))
        assert result
        assert result.value == Local("selfhst_jellyfin.png")
        assert store.read("selfhst_jellyfin.png") == transform.normalize(data)

    @pytest.mark.asyncio
    async def test_reuses_existing(self, origin, store: AssetStore) -> None:
        cdn = await _cdn(origin, plex=Route(noise_png(seed=12)))
        mat = RemoteMaterializer(store, template=cdn.base + "/png/{id}.png")

        first = await mat.ensure_local(RemoteCatalog("plex"))
        second = await mat.ensure_local(RemoteCatalog("plex"))
        assert first.value == second.value
        assert cdn.hits == ["/png/plex.png"]

    @pytest.mark.asyncio
    async def test_missing_catalog_entry(self, origin, store: AssetStore) -> None:
        cdn = await _cdn(origin)
        mat = RemoteMaterializer(store, template=cdn.base + "/png/{id}.png")
        result = await mat.ensure_local(RemoteCatalog("nope"))
        assert not result
        assert result.error == "NotFound"
        assert store.list_assets() == []

    @pytest.mark.asyncio
    async def test_timeout_is_network_error(self, origin, store: AssetStore) -> None:
        cdn = await _cdn(origin, slow=Route(noise_png(), delay=1.0))
        mat = RemoteMaterializer(
            store, OriginResolver(timeout=0.2), template=cdn.base + "/png/{id}.png",
        )
        result = await mat.ensure_local(RemoteCatalog("slow"))
        assert not result
        assert result.error == "NetworkError"

    @pytest.mark.asyncio
    async def test_undecodable_payload(self, origin, store: AssetStore) -> None:
        cdn = await _cdn(origin, bad=Route(b"\x89PNG\r\n\x1a\n" + b"\0" * 300))
        mat = RemoteMaterializer(store, template=cdn.base + "/png/{id}.png")
        result = await mat.ensure_local(RemoteCatalog("bad"))
        assert not result
        assert result.error == "DecodeFailed"
        assert store.list_assets() == []

    @pytest.mark.asyncio
    async def test_local_passes_through(self, store: AssetStore) -> None:
        result = await RemoteMaterializer(store).ensure_local(Local("x.png"))
        assert result.value == Local("x.png")

    @pytest.mark.asyncio
    async def test_library_and_empty_unsupported(self, store: AssetStore) -> None:
        mat = RemoteMaterializer(store)
        for ref in (LibraryComponent("FaGithub"), Empty()):
            result = await mat.ensure_local(ref)
            assert not result
            assert result.error == "Unsupported"

    def test_base_is_sanitized(self) -> None:
        assert RemoteMaterializer.base_for(RemoteCatalog("Home Assistant")) == (
            "selfhst_home_assistant"
        )
