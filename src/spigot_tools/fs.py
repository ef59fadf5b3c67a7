"""Idempotent directory preparation."""

from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


def _create_directory(path: Path) -> None:
    if path.exists() and not path.is_dir():
        logger.debug("Replacing non-directory entry at %s", path)
        path.unlink()
    path.mkdir(parents=True, exist_ok=True)


def _remove_existing(path: Path) -> None:
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()


async def create_directory(path: str | Path) -> None:
    """Make sure *path* is a directory.

    Missing parents are created. A file already sitting at *path* is
    removed first.
    """
    await asyncio.to_thread(_create_directory, Path(path))


async def remove_existing(path: str | Path) -> None:
    """Remove whatever file or directory tree exists at *path*."""
    await asyncio.to_thread(_remove_existing, Path(path))
