"""Load and validate diffpod configuration.

Layering, lowest to highest precedence: :data:`DEFAULTS`, the global
``~/.config/diffpod/config.yaml``, then ``<project>/.diffpod/config.yaml``.
Every file is optional.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

import yaml

log = logging.getLogger(__name__)

CURRENT_CONFIG_VERSION = "1"
SUPPORTED_CONFIG_VERSIONS = ("1",)

# Default config values
DEFAULTS: dict[str, Any] = {
    "version": CURRENT_CONFIG_VERSION,
    "diff": {
        "output_dir": "llm/diff",
        "large_file_changes_threshold": 100,
        "large_file_lines_threshold": 500,
        "max_consecutive_empty_lines": 2,
    },
}

_INT_DIFF_KEYS = (
    "large_file_changes_threshold",
    "large_file_lines_threshold",
    "max_consecutive_empty_lines",
)


class ConfigError(Exception):
    """Raised when a config file is unreadable or invalid."""


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge override into base recursively. Override wins on conflicts."""
    result = base.copy()
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _validate(config: dict) -> None:
    """Validate the merged config."""
    diff = config.get("diff")
    if not isinstance(diff, dict):
        raise ConfigError("'diff' must be a mapping")

    output_dir = diff.get("output_dir")
    if not isinstance(output_dir, str) or not output_dir.strip():
        raise ConfigError("'diff.output_dir' must be a non-empty string")

    for key in _INT_DIFF_KEYS:
        val = diff.get(key)
        # bool is an int subclass; reject it explicitly
        if isinstance(val, bool) or not isinstance(val, int) or val < 0:
            raise ConfigError(f"'diff.{key}' must be a non-negative integer, got {val!r}")

    version = str(config.get("version", CURRENT_CONFIG_VERSION))
    if version not in SUPPORTED_CONFIG_VERSIONS:
        log.warning(
            "Configuration version '%s' is not supported. Supported versions: %s. "
            "Using defaults where needed.",
            version,
            ", ".join(SUPPORTED_CONFIG_VERSIONS),
        )


def global_config_path(home: Path | None = None) -> Path:
    """Return ``~/.config/diffpod/config.yaml`` for *home* (default: user home)."""
    base = Path(home) if home else Path.home()
    return base / ".config" / "diffpod" / "config.yaml"


def repo_config_path(project_root: Path) -> Path:
    return project_root / ".diffpod" / "config.yaml"


def _read_yaml(path: Path) -> dict:
    """Read one config file. Empty files count as an empty mapping."""
    try:
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config {path}: {exc}") from exc

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config must be a YAML mapping, got {type(raw).__name__} in {path}")
    return raw


def load_config(project_root: Path | None = None, home: Path | None = None) -> dict:
    """Load config for *project_root* (default: cwd).

    Merges with DEFAULTS so callers always get a full config dict.
    """
    root = Path(project_root) if project_root else Path.cwd()
    config = copy.deepcopy(DEFAULTS)
    for path in (global_config_path(home), repo_config_path(root)):
        if path.is_file():
            log.debug("Loading config from %s", path)
            config = _deep_merge(config, _read_yaml(path))

    _validate(config)
    return config


def diff_settings(config: dict) -> dict[str, Any]:
    """Return the ``diff`` section with defaults filled in."""
    return _deep_merge(DEFAULTS["diff"], config.get("diff") or {})
