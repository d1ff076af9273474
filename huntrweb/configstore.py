"""Loading and saving the JSON configuration file."""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Mapping

log = logging.getLogger(__name__)


class ConfigError(Exception):
    """The configuration could not be read or written."""


def load_config(path: str | os.PathLike[str]) -> dict[str, Any]:
    """Read the configuration; FileNotFoundError if it does not exist."""
    text = Path(path).read_text(encoding="utf-8")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"parse config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"parse config {path}: expected a JSON object")
    return data


def save_config(path: str | os.PathLike[str], config: Mapping[str, Any]) -> None:
    """Write the configuration as indented JSON, creating parent directories."""
    try:
        text = json.dumps(config, indent=2)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"encode config: {exc}") from exc
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"write config {path}: {exc}") from exc


def load_or_create(path: str | os.PathLike[str], default: Mapping[str, Any]) -> dict[str, Any]:
    """Load the configuration, writing a copy of the default if none exists."""
    try:
        return load_config(path)
    except FileNotFoundError:
        config = copy.deepcopy(dict(default))
        try:
            save_config(path, config)
        except ConfigError as exc:
            log.error("failed to save default config: %s", exc)
        return config