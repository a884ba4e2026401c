"""Tests for repo_local_mcp.config_loader -- hierarchical config loading."""

import textwrap
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from repo_local_mcp.config_loader import (
    _interpolate_recursive,
    _load_yaml,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
    resolve_config_path,
)

DISCOVER_TARGET = "repo_local_mcp.config_loader.discover_config_files"


@pytest.fixture
def isolated(tmp_path, monkeypatch):
    """Run from an empty CWD with an empty HOME and no explicit config."""
    monkeypatch.delenv("REPO_LOCAL_CONFIG", raising=False)
    monkeypatch.chdir(tmp_path)
    home = tmp_path / "fakehome"
    monkeypatch.setenv("HOME", str(home))
    return tmp_path


# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("CLONE_BASE", "/srv/repos")
        assert interpolate_env_vars("${CLONE_BASE}") == "/srv/repos"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ:-/tmp/r}") == "/tmp/r"

    def test_default_ignored_when_set(self, monkeypatch):
        monkeypatch.setenv("GIT_TIMEOUT_S", "60")
        assert interpolate_env_vars("${GIT_TIMEOUT_S:-300}") == "60"

    def test_empty_env_var_uses_default(self, monkeypatch):
        monkeypatch.setenv("EMPTY_VAR", "")
        assert interpolate_env_vars("${EMPTY_VAR:-fallback}") == "fallback"

    def test_embedded_in_path(self, monkeypatch):
        monkeypatch.setenv("DATA_HOME", "/data")
        assert (
            interpolate_env_vars("${DATA_HOME}/repo-local/telemetry.jsonl")
            == "/data/repo-local/telemetry.jsonl"
        )

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("${NO_CLOSE") == "${NO_CLOSE"

    def test_recursive_over_nested_structures(self, monkeypatch):
        monkeypatch.setenv("ROOT_DIR", "/srv/repos")
        data = {
            "repos": {"clone_root": "${ROOT_DIR}", "git_timeout": 30},
            "extra": ["${ROOT_DIR}", 1, True],
        }
        assert _interpolate_recursive(data) == {
            "repos": {"clone_root": "/srv/repos", "git_timeout": 30},
            "extra": ["/srv/repos", 1, True],
        }


# -------------------------------------------------------------------------
# YAML parsing
# -------------------------------------------------------------------------


class TestLoadYaml:
    """Tests for _load_yaml() single-file parsing."""

    def test_plain_mapping(self, tmp_path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("repos:\n  clone_root: /srv/repos\n")

        assert _load_yaml(cfg) == {"repos": {"clone_root": "/srv/repos"}}

    def test_empty_file_is_none(self, tmp_path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("")

        assert _load_yaml(cfg) is None

    def test_custom_tags_rejected(self, tmp_path):
        cfg = tmp_path / "config.yml"
        cfg.write_text("telemetry: !include telemetry.yml\n")

        with pytest.raises(yaml.constructor.ConstructorError):
            _load_yaml(cfg)


# -------------------------------------------------------------------------
# Convention-based file discovery
# -------------------------------------------------------------------------


class TestDiscoverConfigFiles:
    """Tests for discover_config_files() precedence and filtering."""

    def test_env_var_takes_highest_precedence(self, isolated, monkeypatch):
        custom = isolated / "custom.yml"
        custom.write_text("repos: {}\n")
        monkeypatch.setenv("REPO_LOCAL_CONFIG", str(custom))

        assert discover_config_files()[0] == custom.resolve()

    def test_project_before_global(self, isolated):
        proj = isolated / ".repo_local" / "config.yml"
        proj.parent.mkdir(parents=True)
        proj.write_text("repos: {}\n")

        global_cfg = (
            isolated / "fakehome" / ".config" / "repo_local" / "config.yml"
        )
        global_cfg.parent.mkdir(parents=True)
        global_cfg.write_text("repos: {}\n")

        result = discover_config_files()
        assert result.index(proj) < result.index(global_cfg)

    def test_yaml_extension_in_project(self, isolated):
        proj_yaml = isolated / ".repo_local" / "config.yaml"
        proj_yaml.parent.mkdir(parents=True)
        proj_yaml.write_text("repos: {}\n")

        assert proj_yaml in discover_config_files()

    def test_home_global_discovered(self, isolated):
        home_cfg = isolated / "fakehome" / ".repo_local" / "config.yaml"
        home_cfg.parent.mkdir(parents=True)
        home_cfg.write_text("repos: {}\n")

        assert discover_config_files() == [home_cfg]

    def test_empty_filesystem_returns_empty(self, isolated):
        assert discover_config_files() == []


# -------------------------------------------------------------------------
# Hierarchical merge
# -------------------------------------------------------------------------


class TestLoadHierarchicalConfig:
    """Tests for load_hierarchical_config() merge and interpolation."""

    def _write(self, path: Path, text: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text))

    def test_zero_config_returns_empty_dict(self, isolated):
        assert load_hierarchical_config() == {}

    def test_project_overrides_global_at_section_level(self, isolated):
        self._write(
            isolated / "fakehome" / ".config" / "repo_local" / "config.yml",
            """\
            repos:
              clone_root: /global/repos
              allow_ssh: true
            telemetry:
              enabled: false
            """,
        )
        self._write(
            isolated / ".repo_local" / "config.yml",
            """\
            repos:
              clone_root: /project/repos
            """,
        )

        result = load_hierarchical_config()
        # shallow merge: project repos section replaces global entirely
        assert result["repos"] == {"clone_root": "/project/repos"}
        assert result["telemetry"] == {"enabled": False}

    def test_env_var_interpolation_after_merge(self, isolated, monkeypatch):
        monkeypatch.setenv("AGENT_REPOS", "/agent/repos")
        self._write(
            isolated / ".repo_local" / "config.yml",
            """\
            repos:
              clone_root: "${AGENT_REPOS}"
            """,
        )

        assert load_hierarchical_config()["repos"]["clone_root"] == "/agent/repos"

    def test_non_dict_root_skipped(self, isolated, monkeypatch):
        custom = isolated / "bad.yml"
        custom.write_text("- item1\n- item2\n")
        monkeypatch.setenv("REPO_LOCAL_CONFIG", str(custom))

        assert load_hierarchical_config() == {}

    def test_invalid_yaml_propagates(self, isolated, monkeypatch):
        custom = isolated / "broken.yml"
        custom.write_text("repos: [unclosed\n")
        monkeypatch.setenv("REPO_LOCAL_CONFIG", str(custom))

        with pytest.raises(yaml.YAMLError):
            load_hierarchical_config()


# -------------------------------------------------------------------------
# Config bootstrapping
# -------------------------------------------------------------------------


class TestResolveConfigPath:
    """Tests for resolve_config_path()."""

    def test_returns_highest_precedence(self):
        project_path = Path("/project/.repo_local/config.yml")
        global_path = Path("/home/user/.config/repo_local/config.yml")

        with patch(DISCOVER_TARGET, return_value=[project_path, global_path]):
            assert resolve_config_path() == project_path

    def test_returns_default_when_no_files(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch(DISCOVER_TARGET, return_value=[]):
            assert (
                resolve_config_path()
                == tmp_path / ".repo_local" / "config.yml"
            )


class TestEnsureConfig:
    """Tests for ensure_config() -- bootstrapping config files."""

    def test_noop_when_exists(self, tmp_path):
        existing_path = Path("/fake/existing/config.yml")
        with patch(DISCOVER_TARGET, return_value=[existing_path]):
            assert ensure_config() == existing_path
        assert not (tmp_path / ".repo_local").exists()

    def test_creates_starter_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with patch(DISCOVER_TARGET, return_value=[]):
            result = ensure_config()

        assert result == tmp_path / ".repo_local" / "config.yml"
        content = result.read_text()
        assert "# repo-local-mcp configuration" in content
        assert "# repos:" in content
        assert "# telemetry:" in content

    def test_starter_file_is_all_comments(self, tmp_path):
        target = tmp_path / "config.yml"
        with patch(DISCOVER_TARGET, return_value=[]):
            ensure_config(target=target)

        with open(target) as fh:
            assert yaml.safe_load(fh) is None

    def test_creates_parent_directories(self, tmp_path):
        deep_target = tmp_path / "a" / "b" / "c" / "config.yml"
        with patch(DISCOVER_TARGET, return_value=[]):
            assert ensure_config(target=deep_target) == deep_target
        assert deep_target.is_file()
