"""Optional YAML overrides for repositories and environment defaults."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from spigot_tools.repos import REPOSITORIES
from spigot_tools.runner import ENV_DEFAULTS

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset({"repositories", "env"})


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or is malformed."""


@dataclass
class Config:
    repositories: dict[str, str] = field(default_factory=lambda: dict(REPOSITORIES))
    env: dict[str, str] = field(default_factory=lambda: dict(ENV_DEFAULTS))


def load_config(path: Path | None = None) -> Config:
    """Build a Config from the built-in defaults and an optional YAML file.

    File format::

        repositories:
          BuildData: https://example.com/builddata.git
        env:
          MAVEN_OPTS: -Xmx2G

    ``repositories`` replaces the default table; ``env`` entries are merged
    over the default environment.
    """
    config = Config()
    if path is None:
        return config

    try:
        data = yaml.safe_load(path.read_text())
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if data is None:
        return config
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping at the top of {path}")

    for key in data.keys() - _KNOWN_KEYS:
        logger.warning("Ignoring unknown config key %r in %s", key, path)

    if "repositories" in data:
        config.repositories = _string_mapping(data["repositories"], "repositories", path)
    if "env" in data:
        config.env.update(_string_mapping(data["env"], "env", path))

    return config


def _string_mapping(value: object, key: str, path: Path) -> dict[str, str]:
    if not isinstance(value, dict):
        raise ConfigError(f"'{key}' in {path} must be a mapping")
    return {str(k): str(v) for k, v in value.items()}
