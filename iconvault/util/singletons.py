"""Singleton registry for test isolation."""

from __future__ import annotations

from collections.abc import Callable

_reset_fns: dict[str, Callable[[], None]] = {}


def register_singleton(name: str, reset_fn: Callable[[], None]) -> None:
    """Register *reset_fn* under *name*; re-registering replaces the old one."""
    _reset_fns[name] = reset_fn


def reset_all_singletons() -> None:
    """Reset every registered singleton -- intended for test isolation."""
    for fn in list(_reset_fns.values()):
        fn()
