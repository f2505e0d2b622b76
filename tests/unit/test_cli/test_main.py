"""Tests for packdex.__main__ — CLI entry point dispatch and sub-commands."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("PACKDEX_LOG_LEVEL", raising=False)
    monkeypatch.delenv("PACKDEX_MAX_FILE_SIZE_KB", raising=False)


def _main(*argv: str) -> None:
    from packdex.__main__ import main

    with patch("sys.argv", ["packdex", *argv]):
        main()


# ── main() dispatch ───────────────────────────────────────────────────────────


class TestMainDispatch:
    @pytest.mark.parametrize(
        "command, target",
        [
            ("index", "_run_index"),
            ("kind", "_run_kind"),
            ("uses", "_run_uses"),
            ("used-by", "_run_used_by"),
        ],
    )
    def test_dispatches_with_remaining_args(self, command: str, target: str) -> None:
        with patch(f"packdex.__main__.{target}") as mock_run:
            _main(command, "--dir", "x")
        mock_run.assert_called_once_with(["--dir", "x"])

    @pytest.mark.parametrize("argv", [[], ["--help"], ["-h"]])
    def test_help_exits_zero(self, argv: list[str], capsys: pytest.CaptureFixture[str]) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _main(*argv)
        assert exc_info.value.code == 0
        assert "Usage: packdex index" in capsys.readouterr().out

    def test_unknown_command_exits_with_error(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _main("serve")
        assert exc_info.value.code == 1


# ── Argument parsing ──────────────────────────────────────────────────────────


class TestParseDirFlag:
    def test_defaults_to_cwd(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from packdex.__main__ import _parse_dir_flag

        monkeypatch.chdir(tmp_path)
        positionals, project_dir = _parse_dir_flag(["a.json"], "usage")
        assert positionals == ["a.json"]
        assert project_dir == tmp_path.resolve()

    def test_dir_flag(self, tmp_path: Path) -> None:
        from packdex.__main__ import _parse_dir_flag

        positionals, project_dir = _parse_dir_flag(["model", "--dir", str(tmp_path), "geometry.cow"], "usage")
        assert positionals == ["model", "geometry.cow"]
        assert project_dir == tmp_path.resolve()

    def test_unknown_flag_exits(self) -> None:
        from packdex.__main__ import _parse_dir_flag

        with pytest.raises(SystemExit) as exc_info:
            _parse_dir_flag(["--incremental"], "usage")
        assert exc_info.value.code == 1


# ── Sub-commands ──────────────────────────────────────────────────────────────


class TestSubCommands:
    def test_index_prints_summary(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _main("index", "--dir", str(workspace))
        out = capsys.readouterr().out
        assert "17 indexed" in out
        assert "2 dangling references" in out
        assert not (workspace / "PACKMAP.md").exists()

    def test_index_writes_packmap(self, workspace: Path) -> None:
        _main("index", "--dir", str(workspace), "--packmap")
        assert (workspace / "PACKMAP.md").read_text(encoding="utf-8").startswith("# Pack Map")

    def test_index_rejects_positional(self, workspace: Path) -> None:
        with pytest.raises(SystemExit):
            _main("index", "extra")

    def test_kind(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _main("kind", str(workspace / "RP" / "entity" / "cow.entity.json"), "--dir", str(workspace))
        assert capsys.readouterr().out.strip() == "client_entity"

    def test_kind_requires_a_file(self) -> None:
        with pytest.raises(SystemExit):
            _main("kind")

    def test_uses(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _main("uses", str(workspace / "RP" / "particles" / "dust.json"), "--dir", str(workspace))
        out = capsys.readouterr().out
        assert "particle/dust" in out
        assert "dangling" in out

    def test_used_by(self, workspace: Path, capsys: pytest.CaptureFixture[str]) -> None:
        _main("used-by", "model", "geometry.cow", "--dir", str(workspace))
        assert "RP/entity/cow.entity.json" in capsys.readouterr().out

    def test_used_by_unknown_kind(self, workspace: Path) -> None:
        with pytest.raises(SystemExit) as exc_info:
            _main("used-by", "widget", "x", "--dir", str(workspace))
        assert exc_info.value.code == 1
