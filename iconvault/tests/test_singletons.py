"""Tests for the singleton registry."""

from __future__ import annotations

from iconvault.config import settings
from iconvault.util.singletons import _reset_fns, register_singleton, reset_all_singletons


class TestSingletonRegistry:
    def setup_method(self) -> None:
        self._original = dict(_reset_fns)

    def teardown_method(self) -> None:
        _reset_fns.clear()
        _reset_fns.update(self._original)

    def test_register_adds_function(self) -> None:
        def _reset() -> None:
            pass

        register_singleton("thing", _reset)
        assert _reset_fns["thing"] is _reset

    def test_reregister_replaces(self) -> None:
        calls: list[str] = []
        register_singleton("thing", lambda: calls.append("old"))
        register_singleton("thing", lambda: calls.append("new"))
        _reset_fns["thing"]()
        assert calls == ["new"]

    def test_reset_all_invokes_every_resetter(self) -> None:
        calls: list[int] = []
        register_singleton("one", lambda: calls.append(1))
        register_singleton("two", lambda: calls.append(2))
        reset_all_singletons()
        assert 1 in calls
        assert 2 in calls

    def test_cfg_is_registered(self) -> None:
        assert _reset_fns["cfg"] is settings._reset_cfg
