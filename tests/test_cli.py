"""Tests for crema.apps.cli."""

from __future__ import annotations

import sys

import pytest

from crema.apps.cli import build_arg_parser, main


@pytest.fixture(autouse=True)
def _isolated(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CREMA_CONFIG_DIR", str(tmp_path))
    monkeypatch.delenv("CREMA_API_KEY", raising=False)


def _run(monkeypatch: pytest.MonkeyPatch, *argv: str) -> int:
    monkeypatch.setattr(sys, "argv", ["crema", *argv])
    return main()


class TestArgParser:
    def test_defaults(self) -> None:
        args = build_arg_parser().parse_args(["log", "shot"])
        assert args.transcript == ["log", "shot"]
        assert not args.normalize_only
        assert not args.list_tools
        assert args.model is None
        assert args.config_file is None

    def test_flags(self) -> None:
        args = build_arg_parser().parse_args(
            ["--normalize-only", "--model", "openai/gpt-4o-mini", "hi"]
        )
        assert args.normalize_only
        assert args.model == "openai/gpt-4o-mini"


class TestMain:
    def test_normalize_only(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "--normalize-only", "those eighteen grams") == 0
        assert capsys.readouterr().out.strip() == "dose 18 grams"

    def test_list_tools(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "--list-tools") == 0
        out = capsys.readouterr().out
        assert "logShot" in out
        assert "navigateTo" in out

    def test_missing_transcript(self, monkeypatch) -> None:
        with pytest.raises(SystemExit) as info:
            _run(monkeypatch)
        assert info.value.code == 2

    def test_no_credential_exits_nonzero(self, monkeypatch, capsys) -> None:
        assert _run(monkeypatch, "how", "many", "shots") == 1
        assert "configured" in capsys.readouterr().out
