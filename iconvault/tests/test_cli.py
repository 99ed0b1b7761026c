"""Tests for the command-line interface."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from iconvault.cli import build_parser, main
from iconvault.icons import transform
from iconvault.tests.fakes import noise_png


def _seed(data_dir: Path, name: str = "x.png") -> None:
    favicons = data_dir / "favicons"
    favicons.mkdir(parents=True, exist_ok=True)
    (favicons / name).write_bytes(transform.normalize(noise_png(40)))


class TestParser:
    def test_convert_kinds(self) -> None:
        args = build_parser().parse_args(["convert", "grayscale", "favicon:x.png"])
        assert args.kind == "grayscale"
        assert args.color is None

    def test_rejects_unknown_kind(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args(["convert", "sepia", "favicon:x.png"])

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit):
            build_parser().parse_args([])


class TestCommands:
    def test_convert_and_revert(self, data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _seed(data_dir)
        assert main(["convert", "color", "favicon:x.png", "--color", "Sky"]) == 0
        assert (data_dir / "favicons" / "x_themed_Sky.png").exists()

        assert main(["revert", "favicon:x_themed_Sky.png"]) == 0
        assert "favicon:x.png" in capsys.readouterr().out

    def test_failure_exit_code(self, data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["revert", "favicon:missing_inverted.png"]) == 1
        assert "NotFound" in capsys.readouterr().out

    def test_serve_leaves_logging_to_server(
        self, data_dir: Path, monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        configured: list[dict] = []
        started: list[bool] = []
        monkeypatch.setattr(logging, "basicConfig", lambda **kw: configured.append(kw))
        monkeypatch.setattr("iconvault.server.app.main", lambda: started.append(True))

        assert main(["serve"]) == 0
        assert started == [True]
        assert configured == []

        assert main(["stats"]) == 0
        assert configured[0]["level"] == logging.WARNING

    def test_stats(self, data_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _seed(data_dir)
        assert main(["stats"]) == 0
        assert "original" in capsys.readouterr().out
