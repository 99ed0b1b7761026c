"""Tests for the Result type."""

from __future__ import annotations

import pytest

from iconvault.icons.errors import IconError
from iconvault.util.result import Result


class TestResultOk:
    def test_truthiness(self) -> None:
        r = Result.ok("stored")
        assert r
        assert r.success is True

    def test_default_message(self) -> None:
        assert Result.ok().message == ""

    def test_value_payload(self) -> None:
        r = Result.ok("stored", value="favicon:github_com.png")
        assert r.value == "favicon:github_com.png"

    def test_error_empty(self) -> None:
        assert Result.ok("x").error == ""


class TestResultFail:
    def test_falsy(self) -> None:
        r = Result.fail("no icon")
        assert not r
        assert r.success is False

    def test_value_always_none(self) -> None:
        assert Result.fail("err").value is None

    def test_error_code_from_enum(self) -> None:
        r = Result.fail("nothing found", error=IconError.NOT_FOUND)
        assert r.error == "NotFound"


class TestResultUnpacking:
    def test_ok_unpacking(self) -> None:
        ok, msg = Result.ok("yep")
        assert ok is True
        assert msg == "yep"

    def test_fail_unpacking(self) -> None:
        ok, msg = Result.fail("nope")
        assert ok is False
        assert msg == "nope"


class TestResultDict:
    def test_ok(self) -> None:
        assert Result.ok("done").to_dict() == {"success": True, "message": "done"}

    def test_fail(self) -> None:
        r = Result.fail("timed out", error=IconError.NETWORK_ERROR)
        assert r.to_dict() == {"success": False, "error": "NetworkError", "message": "timed out"}


class TestResultFrozen:
    def test_immutable(self) -> None:
        r = Result.ok("x")
        with pytest.raises(AttributeError):
            r.success = False  # type: ignore[misc]
