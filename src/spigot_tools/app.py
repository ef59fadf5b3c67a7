"""Orchestration — ties configuration, the runner and repository bootstrap together."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import shutil
import subprocess
from collections.abc import Sequence
from pathlib import Path

from spigot_tools.config import Config
from spigot_tools.repos import Repository, init_repositories, is_valid_git
from spigot_tools.runner import CommandResult, Runner

logger = logging.getLogger(__name__)

REQUIRED_TOOLS: list[str] = ["git", "java", "mvn"]


class DoctorCheck:
    """Result of a single doctor diagnostic check."""

    def __init__(self, name: str, passed: bool, message: str, source: str = ""):
        self.name = name
        self.passed = passed
        self.message = message
        self.source = source


def run_bootstrap(root: Path, runner: Runner, config: Config) -> list[Repository]:
    """Clone every configured repository under *root* that is not already a clone."""
    logger.info("Bootstrapping %d repositories in %s", len(config.repositories), root)
    return asyncio.run(init_repositories(root, runner, config.repositories))


def run_command_line(
    cwd: Path, template: str, substitutions: Sequence[str], runner: Runner
) -> CommandResult:
    """Run a single command template and wait for it to finish."""
    result = asyncio.run(runner.run_template(cwd, template, substitutions))
    if result.errored:
        logger.warning("Command finished successfully but reported an exception.")
    return result


def run_doctor(root: Path, config: Config) -> list[DoctorCheck]:
    """Run environment diagnostics.

    Checks, in order:
      1. Each required tool (git, java, mvn) is on PATH
      2. The installed Java version can be determined
      3. Each build environment variable, and whether it comes from the
         ambient environment or the built-in default
      4. Each configured repository is a valid working copy under *root*
    """
    checks: list[DoctorCheck] = []

    for tool in REQUIRED_TOOLS:
        tool_path = shutil.which(tool)
        if tool_path:
            checks.append(DoctorCheck(tool, True, f"found at {tool_path}"))
        else:
            checks.append(DoctorCheck(tool, False, "NOT FOUND on PATH"))

    java_version = _get_java_version()
    if java_version:
        checks.append(DoctorCheck("java_version", True, f"detected: {java_version}"))
    else:
        checks.append(
            DoctorCheck("java_version", False, "cannot determine Java version")
        )

    for key, default in config.env.items():
        if key in os.environ:
            checks.append(
                DoctorCheck(
                    f"env_{key}", True, os.environ[key], source="from environment"
                )
            )
        else:
            checks.append(
                DoctorCheck(f"env_{key}", True, default, source="built-in default")
            )

    for name in config.repositories:
        path = root / name
        if is_valid_git(path):
            checks.append(DoctorCheck(f"repo_{name}", True, f"clone present at {path}"))
        elif path.exists():
            checks.append(
                DoctorCheck(
                    f"repo_{name}", False, f"{path} exists but is NOT a git working copy"
                )
            )
        else:
            checks.append(DoctorCheck(f"repo_{name}", False, f"{path} NOT cloned yet"))

    return checks


def _get_java_version() -> str | None:
    """Get the installed Java version (e.g., '17.0.9')."""
    try:
        result = subprocess.run(
            ["java", "-version"],
            capture_output=True,
            text=True,
            check=True,
        )
    except (subprocess.CalledProcessError, FileNotFoundError):
        return None

    # java -version prints to stderr: 'openjdk version "17.0.9" 2023-10-17'
    match = re.search(r'version "([^"]+)"', result.stderr or result.stdout)
    return match.group(1) if match else None
