"""Tests for the command line entry point."""

import json
from pathlib import Path

import pytest

from pygit_index import RebuildLock, main
from pygit_index import coordinator as coordinator_module


@pytest.fixture
def env(tmp_path: Path, monkeypatch) -> dict[str, Path]:
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("PYGIT_INDEX_BASE", raising=False)
    base = tmp_path / "base"
    (base / "alpha" / ".git").mkdir(parents=True)
    (base / "beta" / ".git").mkdir(parents=True)
    return {"home": home, "base": base, "cache": tmp_path / "cache.json", "lock": tmp_path / "cache.lock"}


def _argv(env, *extra: str) -> list[str]:
    return ["--base", str(env["base"]), "--cache", str(env["cache"]), "--lock", str(env["lock"]), *extra]


def _run(argv) -> int:
    with pytest.raises(SystemExit) as exc_info:
        main(argv)
    return exc_info.value.code


class TestMain:
    def test_first_run_prints_paths_and_writes_cache(self, env, capsys):
        assert _run(_argv(env, "--paths")) == 0
        captured = capsys.readouterr()
        lines = captured.out.splitlines()
        assert [line.split("\t")[0] for line in lines] == ["alpha", "beta"]
        assert "Indexing" in captured.err
        assert env["cache"].exists()

    def test_json_output(self, env, capsys):
        assert _run(_argv(env, "--json")) == 0
        data = json.loads(capsys.readouterr().out)
        assert data["base_dirs"] == [str(env["base"])]
        assert [r["name"] for r in data["repos_by_base"][str(env["base"])]] == ["alpha", "beta"]

    def test_report_output(self, env, capsys):
        assert _run(_argv(env)) == 0
        out = capsys.readouterr().out
        assert str(env["base"]) in out
        assert "Total repositories: 2" in out

    def test_find_by_name(self, env, capsys):
        assert _run(_argv(env, "--paths", "--find", "beta")) == 0
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert lines[0].startswith("beta\t")

    def test_find_missing_name_exits_nonzero(self, env, capsys):
        assert _run(_argv(env, "--paths", "--find", "gamma")) == 1
        assert capsys.readouterr().out == ""

    def test_cache_hit_spawns_background_refresh(self, env, capsys, monkeypatch):
        spawned = []
        monkeypatch.setattr(coordinator_module, "spawn_detached_refresh", spawned.append)
        assert _run(_argv(env, "--paths")) == 0
        assert spawned == []
        capsys.readouterr()

        (env["base"] / "gamma" / ".git").mkdir(parents=True)
        assert _run(_argv(env, "--paths")) == 0
        captured = capsys.readouterr()
        assert len(captured.out.splitlines()) == 2
        assert "Indexing" not in captured.err
        assert len(spawned) == 1
        assert spawned[0].base_dirs == (str(env["base"]),)

    def test_refresh_flag_rescans(self, env, capsys, monkeypatch):
        monkeypatch.setattr(coordinator_module, "spawn_detached_refresh", lambda config: None)
        assert _run(_argv(env, "--paths")) == 0
        (env["base"] / "gamma" / ".git").mkdir(parents=True)
        capsys.readouterr()

        assert _run(_argv(env, "--paths", "--refresh")) == 0
        assert len(capsys.readouterr().out.splitlines()) == 3

    def test_background_refresh_builds_cache(self, env, capsys):
        assert _run(_argv(env, "--background-refresh")) == 0
        assert env["cache"].exists()
        assert not env["lock"].exists()
        assert capsys.readouterr().out == ""

    def test_background_refresh_respects_lock(self, env):
        assert RebuildLock(env["lock"]).try_acquire()
        assert _run(_argv(env, "--background-refresh")) == 0
        assert not env["cache"].exists()
        assert env["lock"].exists()

    def test_broken_config_keeps_paths_output_clean(self, env, capsys):
        (env["home"] / ".pygit-index.toml").write_text("this is = = not toml")
        assert _run(_argv(env, "--paths")) == 0
        captured = capsys.readouterr()
        assert [line.split("\t")[0] for line in captured.out.splitlines()] == ["alpha", "beta"]
        assert "Failed to parse" in captured.err

    def test_config_file_values_used(self, env, capsys, tmp_path: Path):
        config_file = tmp_path / "custom.toml"
        config_file.write_text(
            f'base_dirs = ["{env["base"].as_posix()}"]\n'
            f'cache_path = "{env["cache"].as_posix()}"\n'
            f'lock_path = "{env["lock"].as_posix()}"\n'
        )
        assert _run(["--config", str(config_file), "--paths"]) == 0
        assert len(capsys.readouterr().out.splitlines()) == 2
        assert env["cache"].exists()
