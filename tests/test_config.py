"""Tests for the argument parser, config file loader and base directory resolution."""

import os
from pathlib import Path

import pytest

from pygit_index import create_argument_parser, find_base_dirs, load_config_file


class TestArgumentParser:
    def test_defaults(self):
        args = create_argument_parser().parse_args([])
        assert args.base == []
        assert args.cache_path is None
        assert args.lock_path is None
        assert args.refresh is False
        assert args.background_refresh is False
        assert args.output_format == "report"
        assert args.find_name is None

    def test_repeated_base(self):
        args = create_argument_parser().parse_args(["--base", "/a", "--base", "/b"])
        assert args.base == ["/a", "/b"]

    def test_output_formats_exclusive(self):
        parser = create_argument_parser()
        assert parser.parse_args(["--json"]).output_format == "json"
        assert parser.parse_args(["--paths"]).output_format == "paths"
        with pytest.raises(SystemExit):
            parser.parse_args(["--json", "--paths"])

    def test_background_refresh_hidden_from_help(self):
        assert "--background-refresh" not in create_argument_parser().format_help()


class TestLoadConfigFile:
    def test_missing_returns_empty(self, tmp_path: Path):
        assert load_config_file(home=tmp_path) == {}

    def test_home_config(self, tmp_path: Path):
        (tmp_path / ".pygit-index.toml").write_text('base_dirs = ["/x"]\nparallel = true\n')
        assert load_config_file(home=tmp_path) == {"base_dirs": ["/x"], "parallel": True}

    def test_explicit_path(self, tmp_path: Path):
        path = tmp_path / "custom.toml"
        path.write_text("max_workers = 2\n")
        assert load_config_file(str(path), home=tmp_path) == {"max_workers": 2}

    def test_explicit_missing_warns(self, tmp_path: Path, capsys):
        assert load_config_file(str(tmp_path / "nope.toml"), home=tmp_path) == {}
        assert "not found" in capsys.readouterr().err

    def test_invalid_toml_warns(self, tmp_path: Path, capsys):
        (tmp_path / ".pygit-index.toml").write_text("this is = = not toml")
        assert load_config_file(home=tmp_path) == {}
        assert "Failed to parse" in capsys.readouterr().err


class TestFindBaseDirs:
    @pytest.fixture
    def dirs(self, tmp_path: Path):
        home = tmp_path / "home"
        for name in ("home", "src", "work", "env"):
            (tmp_path / name).mkdir()
        return {"home": home, "src": tmp_path / "src", "work": tmp_path / "work", "env": tmp_path / "env"}

    def test_cli_bases_win(self, dirs):
        bases = find_base_dirs(
            [str(dirs["src"])],
            {"base_dirs": [str(dirs["work"])]},
            environ={"PYGIT_INDEX_BASE": str(dirs["env"])},
            home=dirs["home"],
        )
        assert bases == (str(dirs["src"]),)

    def test_env_then_config_then_bases_file(self, dirs):
        (dirs["home"] / ".pygit-index-bases").write_text(f"# comment\n\n{dirs['src']}\n")
        bases = find_base_dirs(
            None,
            {"base_dirs": [str(dirs["work"])]},
            environ={"PYGIT_INDEX_BASE": str(dirs["env"])},
            home=dirs["home"],
        )
        assert bases == (str(dirs["env"]), str(dirs["work"]), str(dirs["src"]))

    def test_config_base_dirs_as_string(self, dirs):
        bases = find_base_dirs(None, {"base_dirs": str(dirs["work"])}, environ={}, home=dirs["home"])
        assert bases == (str(dirs["work"]),)

    def test_missing_dirs_dropped_and_duplicates_removed(self, dirs, tmp_path: Path):
        bases = find_base_dirs(
            [str(dirs["src"]), str(tmp_path / "gone"), str(dirs["src"]) + os.sep, str(dirs["work"])],
            environ={},
            home=dirs["home"],
        )
        assert bases == (str(dirs["src"]), str(dirs["work"]))

    def test_relative_paths_made_absolute(self, dirs, tmp_path: Path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert find_base_dirs(["src"], environ={}, home=dirs["home"]) == (str(dirs["src"]),)

    def test_falls_back_to_home(self, dirs, tmp_path: Path):
        bases = find_base_dirs([str(tmp_path / "gone")], environ={}, home=dirs["home"])
        assert bases == (str(dirs["home"]),)

    def test_nothing_configured_uses_home(self, dirs):
        assert find_base_dirs(environ={}, home=dirs["home"]) == (str(dirs["home"]),)
