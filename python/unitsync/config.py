"""
Configuration loading and validation.

The config is a small YAML document:

    paths:
      source: ./src
      destination: /path/to/output.lua
    watch:
      extension: .lua
      debounce: 0.3
      destination_debounce: 0.5
      cooldown: 2.0
      poll_interval: 1.0
    ignore:
      - "scratch/"
    output:
      comment_prefix: "--"

Every failure is reported as ConfigError so the CLI can abort startup with a
single descriptive line.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from unitsync.errors import ConfigError

logger = logging.getLogger("unitsync.config")

DEFAULT_CONFIG_NAME = "unitsync.yaml"
CONFIG_ENV_VAR = "UNITSYNC_CONFIG"

DEFAULT_EXTENSION = ".lua"
DEFAULT_DEBOUNCE = 0.3
DEFAULT_DESTINATION_DEBOUNCE = 0.5
DEFAULT_COOLDOWN = 2.0
DEFAULT_POLL_INTERVAL = 1.0
DEFAULT_COMMENT_PREFIX = "--"


@dataclass(frozen=True)
class Config:
    """Validated watcher configuration."""

    source: Path
    destination: Path
    extension: str = DEFAULT_EXTENSION
    debounce: float = DEFAULT_DEBOUNCE
    destination_debounce: float = DEFAULT_DESTINATION_DEBOUNCE
    cooldown: float = DEFAULT_COOLDOWN
    poll_interval: float = DEFAULT_POLL_INTERVAL
    ignore: tuple[str, ...] = field(default_factory=tuple)
    comment_prefix: str = DEFAULT_COMMENT_PREFIX

    @property
    def source_root(self) -> Path:
        """Absolute source root that units are discovered under."""
        return self.source.resolve()

    def __post_init__(self) -> None:
        for name in ("debounce", "destination_debounce", "cooldown", "poll_interval"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError(f"watch.{name} must be positive, got {value}")

        # A self-write is observed at most one poll interval after it lands,
        # so a shorter cooldown would report our own writes as external.
        if self.cooldown <= self.poll_interval:
            raise ConfigError(
                f"watch.cooldown ({self.cooldown}s) must be greater than "
                f"watch.poll_interval ({self.poll_interval}s)"
            )

        if not self.comment_prefix.strip():
            raise ConfigError("output.comment_prefix must not be empty")


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """
    Pick the config file: explicit path, then $UNITSYNC_CONFIG, then ./unitsync.yaml.
    """
    if path is not None:
        return path
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def _section(data: dict, name: str) -> dict:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"'{name}' must be a mapping")
    return value


def _float(section: dict, section_name: str, key: str, default: float) -> float:
    value = section.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{section_name}.{key} must be a number, got {value!r}") from None


def _normalize_extension(value: Any) -> str:
    if not isinstance(value, str) or not value.strip(".").strip():
        raise ConfigError(f"watch.extension must be a file extension, got {value!r}")
    value = value.strip().lower()
    if not value.startswith("."):
        value = f".{value}"
    return value


def parse_config(data: Any, base_dir: Path) -> Config:
    """
    Build a Config from an already-parsed YAML document.

    Args:
        data: Parsed YAML (must be a mapping)
        base_dir: Directory relative paths are resolved against

    Raises:
        ConfigError: If any value is missing or invalid
    """
    if not isinstance(data, dict):
        raise ConfigError("config must be a YAML mapping")

    paths = _section(data, "paths")
    watch = _section(data, "watch")
    output = _section(data, "output")

    destination = paths.get("destination")
    if not destination:
        raise ConfigError("config is missing paths.destination")

    source = paths.get("source", ".")
    source_path = Path(str(source)).expanduser()
    if not source_path.is_absolute():
        source_path = base_dir / source_path

    destination_path = Path(str(destination)).expanduser()
    if not destination_path.is_absolute():
        destination_path = base_dir / destination_path

    ignore = data.get("ignore") or []
    if not isinstance(ignore, list) or not all(isinstance(p, str) for p in ignore):
        raise ConfigError("'ignore' must be a list of patterns")

    return Config(
        source=source_path,
        destination=destination_path,
        extension=_normalize_extension(watch.get("extension", DEFAULT_EXTENSION)),
        debounce=_float(watch, "watch", "debounce", DEFAULT_DEBOUNCE),
        destination_debounce=_float(
            watch, "watch", "destination_debounce", DEFAULT_DESTINATION_DEBOUNCE
        ),
        cooldown=_float(watch, "watch", "cooldown", DEFAULT_COOLDOWN),
        poll_interval=_float(watch, "watch", "poll_interval", DEFAULT_POLL_INTERVAL),
        ignore=tuple(ignore),
        comment_prefix=str(output.get("comment_prefix", DEFAULT_COMMENT_PREFIX)),
    )


def load_config(path: Optional[Path] = None) -> Config:
    """
    Load and validate the YAML config file.

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = resolve_config_path(path)

    if not config_path.is_file():
        raise ConfigError(
            f"config file not found: {config_path} "
            f"(create {DEFAULT_CONFIG_NAME} or set {CONFIG_ENV_VAR})"
        )

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid YAML in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"cannot read {config_path}: {e}") from e

    config = parse_config(data, config_path.resolve().parent)

    if not config.source_root.is_dir():
        raise ConfigError(f"source directory does not exist: {config.source_root}")

    logger.debug(f"Loaded config from {config_path}")
    return config
