"""Shared fixtures for spigot-tools tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture()
def root(tmp_path: Path) -> Path:
    """Return a temporary directory acting as the repositories root."""
    return tmp_path


@pytest.fixture()
def script(tmp_path: Path):
    """Write a Python script into *tmp_path* and return its path."""

    def _write(source: str, name: str = "child.py") -> Path:
        path = tmp_path / name
        path.write_text(source)
        return path

    return _write
