"""Bootstrap local git clones of the Spigot source repositories."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from spigot_tools.errors import CommandError
from spigot_tools.fs import create_directory, remove_existing
from spigot_tools.runner import Runner

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"

BUILD_DATA_URL = "https://hub.spigotmc.org/stash/scm/spigot/builddata.git"
BUKKIT_URL = "https://hub.spigotmc.org/stash/scm/spigot/bukkit.git"
CRAFT_BUKKIT_URL = "https://hub.spigotmc.org/stash/scm/spigot/craftbukkit.git"
SPIGOT_URL = "https://hub.spigotmc.org/stash/scm/spigot/spigot.git"

REPOSITORIES: dict[str, str] = {
    "BuildData": BUILD_DATA_URL,
    "Bukkit": BUKKIT_URL,
    "CraftBukkit": CRAFT_BUKKIT_URL,
    "Spigot": SPIGOT_URL,
}


class RepositoryError(Exception):
    """Raised when a repository cannot be prepared or cloned."""


@dataclass(frozen=True)
class Repository:
    url: str
    name: str
    path: Path


def is_valid_git(path: str | Path) -> bool:
    """Return True if *path* holds a ``.git`` directory."""
    return (Path(path) / GIT_MARKER).is_dir()


async def init_repository(root: Path, url: str, name: str, runner: Runner) -> Repository:
    """Make ``root/name`` a clone of *url*.

    An existing working copy is left alone. Anything else at the target
    path is wiped and the repository is cloned from scratch.
    """
    path = root / name
    logger.debug("Preparing %s at %s", name, path)
    try:
        await create_directory(path)
        if not is_valid_git(path):
            logger.info("Cloning %s into %s", url, path)
            await remove_existing(path)
            await create_directory(path)
            await runner.run(root, "git", ["clone", url, name])
    except CommandError as exc:
        raise RepositoryError(f"Unable to execute git command: {exc}") from exc
    except OSError as exc:
        raise RepositoryError(
            f"IO error while preparing repository {name} at {path}: {exc}"
        ) from exc
    return Repository(url=url, name=name, path=path)


async def init_repositories(
    root: Path,
    runner: Runner,
    repositories: Mapping[str, str] = REPOSITORIES,
) -> list[Repository]:
    """Bootstrap every entry of *repositories* (name → URL) concurrently.

    The first failure is raised as soon as it happens; clones already in
    flight keep running and finished ones are not rolled back.
    """
    try:
        await create_directory(root)
    except OSError as exc:
        raise RepositoryError(f"IO error while preparing root {root}: {exc}") from exc

    repos = await asyncio.gather(
        *(init_repository(root, url, name, runner) for name, url in repositories.items())
    )
    for repo in repos:
        logger.info("Repository ready: %s (%s)", repo.name, repo.path)
    return list(repos)
