"""Tests for notion_sync.config_loader: discovery, includes, interpolation."""

import textwrap

import pytest
import yaml

from notion_sync.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
)


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Empty CWD and HOME with no explicit config path."""
    home = tmp_path / "home"
    home.mkdir()
    work = tmp_path / "work"
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("NOTION_SYNC_CONFIG", raising=False)
    monkeypatch.chdir(work)
    return work, home


def _write(path, text):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("NOTION_TOKEN", "secret_x")
        assert interpolate_env_vars("${NOTION_TOKEN}") == "secret_x"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset_or_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        monkeypatch.setenv("EMPTY_VAR_XYZ", "")
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-docs}") == "docs"
        assert interpolate_env_vars("${EMPTY_VAR_XYZ:-docs}") == "docs"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("OUT", "site/docs")
        data = {"sync": {"output_dir": "${OUT}", "dirs": ["${OUT}/a"]}, "n": 3}
        assert _interpolate_recursive(data) == {
            "sync": {"output_dir": "site/docs", "dirs": ["site/docs/a"]},
            "n": 3,
        }


# -------------------------------------------------------------------------
# !include
# -------------------------------------------------------------------------


class TestIncludes:
    def test_include_relative_file(self, tmp_path):
        _write(tmp_path / "sync.yml", "output_dir: docs\n")
        main = _write(tmp_path / "config.yml", "sync: !include sync.yml\n")
        assert _load_yaml_with_includes(main) == {"sync": {"output_dir": "docs"}}

    def test_missing_include_raises(self, tmp_path):
        main = _write(tmp_path / "config.yml", "sync: !include nope.yml\n")
        with pytest.raises(FileNotFoundError, match="Include file not found"):
            _load_yaml_with_includes(main)

    def test_circular_include_raises(self, tmp_path):
        _write(tmp_path / "a.yml", "b: !include b.yml\n")
        _write(tmp_path / "b.yml", "a: !include a.yml\n")
        with pytest.raises(ValueError, match="Circular include"):
            _load_yaml_with_includes(tmp_path / "a.yml")

    def test_global_safe_loader_not_polluted(self):
        with pytest.raises(yaml.constructor.ConstructorError):
            yaml.safe_load("x: !include other.yml")


# -------------------------------------------------------------------------
# Discovery and merge
# -------------------------------------------------------------------------


class TestDiscovery:
    def test_empty(self, isolated):
        assert discover_config_files() == []
        assert load_hierarchical_config() == {}

    def test_order_env_project_global(self, isolated, tmp_path, monkeypatch):
        work, home = isolated
        explicit = _write(tmp_path / "explicit.yml", "{}\n")
        project = _write(work / ".notion_sync" / "config.yml", "{}\n")
        legacy = _write(work / ".notion_sync" / "config.yaml", "{}\n")
        global_ = _write(home / ".config" / "notion_sync" / "config.yml", "{}\n")
        monkeypatch.setenv("NOTION_SYNC_CONFIG", str(explicit))

        found = discover_config_files()

        assert found == [explicit.resolve(), project, legacy, global_]

    def test_project_section_replaces_global(self, isolated):
        work, home = isolated
        _write(
            home / ".config" / "notion_sync" / "config.yml",
            """\
            notion:
              database_id: global-db
            sync:
              output_dir: global-docs
            """,
        )
        _write(
            work / ".notion_sync" / "config.yml",
            """\
            sync:
              conflict_strategy: local-wins
            """,
        )

        merged = load_hierarchical_config()

        assert merged["notion"] == {"database_id": "global-db"}
        assert merged["sync"] == {"conflict_strategy": "local-wins"}

    def test_interpolation_after_merge(self, isolated, monkeypatch):
        work, _ = isolated
        monkeypatch.setenv("NOTION_TOKEN", "secret_y")
        _write(work / ".notion_sync" / "config.yml", "notion:\n  token: ${NOTION_TOKEN}\n")
        assert load_hierarchical_config()["notion"]["token"] == "secret_y"

    def test_non_dict_root_skipped(self, isolated):
        work, _ = isolated
        _write(work / ".notion_sync" / "config.yml", "- just\n- a list\n")
        assert load_hierarchical_config() == {}


class TestEnsureConfig:
    def test_creates_starter_file(self, isolated):
        work, _ = isolated
        path = ensure_config()
        assert path == work / ".notion_sync" / "config.yml"
        assert "notion-sync configuration" in path.read_text()
        # Starter file is all comments: zero-config stays valid.
        assert load_hierarchical_config() == {}

    def test_returns_existing(self, isolated):
        work, _ = isolated
        existing = _write(work / ".notion_sync" / "config.yml", "sync: {}\n")
        assert ensure_config() == existing
        assert existing.read_text() == "sync: {}\n"

    def test_explicit_target(self, isolated, tmp_path):
        target = tmp_path / "custom" / "notion.yml"
        assert ensure_config(target) == target
        assert target.is_file()
