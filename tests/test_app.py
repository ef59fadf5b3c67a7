"""Tests for spigot_tools.app module."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from spigot_tools.app import REQUIRED_TOOLS, run_bootstrap, run_command_line, run_doctor
from spigot_tools.config import Config
from spigot_tools.errors import NonZeroExitError
from spigot_tools.repos import REPOSITORIES
from spigot_tools.runner import CommandResult, Runner


def _make_runner() -> MagicMock:
    """Return a mock Runner whose .run() succeeds by default."""
    mock = MagicMock(spec=Runner)
    mock.run = AsyncMock(return_value=CommandResult(cmd=[], returncode=0))
    return mock


class TestRunBootstrap:
    def test_clones_configured_repositories(self, root: Path) -> None:
        runner = _make_runner()
        config = Config(repositories={"Bukkit": "https://example.com/bukkit.git"})

        repos = run_bootstrap(root, runner, config)

        assert [r.name for r in repos] == ["Bukkit"]
        runner.run.assert_awaited_once_with(
            root, "git", ["clone", "https://example.com/bukkit.git", "Bukkit"]
        )


class TestRunCommandLine:
    def test_returns_result(self, root: Path) -> None:
        result = run_command_line(root, f"{sys.executable} -V", [], Runner())
        assert result.returncode == 0

    def test_propagates_failure(self, root: Path) -> None:
        runner = MagicMock(spec=Runner)
        runner.run_template = AsyncMock(side_effect=NonZeroExitError(["mvn"], 1))
        with pytest.raises(NonZeroExitError):
            run_command_line(root, "mvn {0}", ["install"], runner)
        runner.run_template.assert_awaited_once_with(root, "mvn {0}", ["install"])

    def test_warns_when_exception_reported(
        self, root: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        runner = MagicMock(spec=Runner)
        runner.run_template = AsyncMock(
            return_value=CommandResult(cmd=["java"], returncode=0, errored=True)
        )
        run_command_line(root, "java -jar x.jar", [], runner)
        assert "reported an exception" in caplog.text


class TestRunDoctor:
    def test_all_checks_pass_with_complete_setup(self, root: Path) -> None:
        for name in REPOSITORIES:
            (root / name / ".git").mkdir(parents=True)

        with (
            patch("spigot_tools.app.shutil.which", return_value="/usr/bin/tool"),
            patch("spigot_tools.app._get_java_version", return_value="17.0.9"),
        ):
            checks = run_doctor(root, Config())

        # tools, java_version, env vars, repositories
        assert len(checks) == len(REQUIRED_TOOLS) + 1 + 2 + len(REPOSITORIES)
        for check in checks:
            assert check.passed, f"Check {check.name} failed: {check.message}"

    def test_tool_not_found(self, root: Path) -> None:
        with patch("spigot_tools.app.shutil.which", return_value=None):
            checks = run_doctor(root, Config())

        git_check = next(c for c in checks if c.name == "git")
        assert not git_check.passed
        assert "NOT FOUND" in git_check.message

    def test_java_version_unknown(self, root: Path) -> None:
        with patch("spigot_tools.app._get_java_version", return_value=None):
            checks = run_doctor(root, Config())

        java_check = next(c for c in checks if c.name == "java_version")
        assert not java_check.passed

    def test_env_source(self, root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MAVEN_OPTS", "-Xmx4G")
        monkeypatch.delenv("_JAVA_OPTIONS", raising=False)

        checks = run_doctor(root, Config())

        maven = next(c for c in checks if c.name == "env_MAVEN_OPTS")
        java = next(c for c in checks if c.name == "env__JAVA_OPTIONS")
        assert (maven.message, maven.source) == ("-Xmx4G", "from environment")
        assert java.source == "built-in default"

    def test_repository_states(self, root: Path) -> None:
        (root / "Bukkit").mkdir()
        (root / "Spigot" / ".git").mkdir(parents=True)

        checks = run_doctor(root, Config())

        by_name = {c.name: c for c in checks}
        assert "NOT a git working copy" in by_name["repo_Bukkit"].message
        assert "NOT cloned" in by_name["repo_CraftBukkit"].message
        assert by_name["repo_Spigot"].passed


class TestGetJavaVersion:
    def test_parses_stderr(self) -> None:
        from spigot_tools.app import _get_java_version

        completed = subprocess.CompletedProcess(
            args=["java", "-version"],
            returncode=0,
            stdout="",
            stderr='openjdk version "17.0.9" 2023-10-17\nOpenJDK Runtime Environment\n',
        )
        with patch("spigot_tools.app.subprocess.run", return_value=completed):
            assert _get_java_version() == "17.0.9"

    def test_missing_java(self) -> None:
        from spigot_tools.app import _get_java_version

        with patch("spigot_tools.app.subprocess.run", side_effect=FileNotFoundError):
            assert _get_java_version() is None
