"""Tests for spigot_tools.config module."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
import yaml

from spigot_tools.config import Config, ConfigError, load_config
from spigot_tools.repos import REPOSITORIES
from spigot_tools.runner import ENV_DEFAULTS


class TestLoadConfig:
    def test_defaults_without_file(self) -> None:
        config = load_config(None)
        assert config.repositories == REPOSITORIES
        assert config.env == ENV_DEFAULTS

    def test_defaults_are_copies(self) -> None:
        config = Config()
        config.env["MAVEN_OPTS"] = "changed"
        assert ENV_DEFAULTS["MAVEN_OPTS"] == "-Xmx1024M"

    def test_repositories_replace_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "spigot-tools.yaml"
        path.write_text(
            yaml.safe_dump({"repositories": {"Bukkit": "https://example.com/bukkit.git"}})
        )

        config = load_config(path)

        assert config.repositories == {"Bukkit": "https://example.com/bukkit.git"}

    def test_env_merged_over_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "spigot-tools.yaml"
        path.write_text("env:\n  MAVEN_OPTS: -Xmx2G\n  GRADLE_OPTS: -Xmx1G\n")

        config = load_config(path)

        assert config.env["MAVEN_OPTS"] == "-Xmx2G"
        assert config.env["GRADLE_OPTS"] == "-Xmx1G"
        assert config.env["_JAVA_OPTIONS"] == ENV_DEFAULTS["_JAVA_OPTIONS"]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_config(path) == Config()

    def test_unknown_keys_warn(self, tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
        path = tmp_path / "spigot-tools.yaml"
        path.write_text("jobs: 4\n")
        with caplog.at_level(logging.WARNING):
            load_config(path)
        assert "jobs" in caplog.text

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="Cannot read"):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("repositories: [unclosed\n")
        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_config(path)

    def test_non_mapping_top_level_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError, match="mapping"):
            load_config(path)

    def test_non_mapping_section_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "bad-section.yaml"
        path.write_text("env: -Xmx2G\n")
        with pytest.raises(ConfigError, match="'env'"):
            load_config(path)
