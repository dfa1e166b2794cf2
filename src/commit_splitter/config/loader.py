"""
Configuration loader for commit_splitter.

The tool reads a JSON configuration file named ``config.json`` located in
the ``~/.aisplit/`` directory. The top-level keys describe how to reach
the Ollama server used as the grouping oracle. An optional ``split``
object overrides the tuning constants of the splitting engine, e.g.::

    {
        "base_url": "http://localhost",
        "port": 11434,
        "model": "llama3",
        "commit_type": "conventional",
        "split": {"max_boundaries": 6, "call_delay": 2.0}
    }

If the file is malformed, or a key has the wrong type, a
:class:`ConfigError` is raised.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from commit_splitter.errors import ConfigError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings when the CLI has not
# configured logging yet. Propagation is re-enabled by the CLI's basicConfig.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CONFIG_FILE_NAME = "config.json"
COMMIT_TYPES = ("plain", "conventional", "gitmoji")


@dataclass
class SplitSettings:
    """Tuning constants of the splitting engine.

    Attributes
    ----------
    max_boundaries : int
        Boundary count above which boundaries are consolidated.
    min_boundary_files : int
        Boundaries smaller than this are merged into ``misc`` during
        consolidation.
    weak_marker_max_depth : int
        Deepest directory level (0 = repository root) at which weak
        markers such as ``Makefile`` identify a project.
    chunk_size : int
        Files per oracle call in flat mode.
    boundary_threshold : int
        Changesets up to this size are classified in a single call.
    call_delay : float
        Seconds to wait between two oracle calls.
    payload_char_limit : int
        Truncation limit of a diff payload.
    full_diff_file_limit : int
        Up to this many files, the payload is the full diff.
    summary_file_limit : int
        Up to this many files, the payload is a stat summary plus the
        diff of the first ``summary_diff_files`` files; above it, only
        the stat summary is sent.
    summary_diff_files : int
        Number of files whose full diff follows the stat summary.
    max_groups : int
        Maximum number of groups requested per boundary.
    """

    max_boundaries: int = 8
    min_boundary_files: int = 3
    weak_marker_max_depth: int = 1
    chunk_size: int = 50
    boundary_threshold: int = 50
    call_delay: float = 6.5
    payload_char_limit: int = 30_000
    full_diff_file_limit: int = 30
    summary_file_limit: int = 100
    summary_diff_files: int = 20
    max_groups: int = 3


def _get_config_directory() -> Path:
    """Return the directory holding the aisplit configuration (``~/.aisplit/``)."""
    return Path.home() / ".aisplit"


def _read_config_file() -> Optional[Dict[str, Any]]:
    """Read and decode the configuration file, or return None if it does not exist."""
    config_path = _get_config_directory() / CONFIG_FILE_NAME
    if not config_path.exists():
        return None
    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")
    logger.debug("Loaded configuration from: %s", config_path)
    return data


def load_config() -> Dict[str, Any]:
    """Load and validate the oracle connection settings.

    Returns
    -------
    Dict[str, Any]
        The validated configuration with keys ``base_url`` (str), ``port``
        (int), ``model`` (str), ``request_timeout`` (float), ``max_tokens``
        (int or None), ``locale`` (str) and ``commit_type`` (str).

    Raises
    ------
    ConfigError
        If the file is missing, malformed, or invalid.
    """
    config_dir = _get_config_directory()
    data = _read_config_file()
    if data is None:
        config_path = config_dir / CONFIG_FILE_NAME
        logger.error("Configuration file '%s' does not exist", config_path)
        raise ConfigError(
            f"Missing configuration file: {config_path}. "
            f"Create it with at least the 'base_url', 'port' and 'model' keys."
        )

    required_keys = ["base_url", "port", "model"]
    missing = [key for key in required_keys if key not in data]
    if missing:
        logger.error("Configuration file missing required keys: %s", missing)
        raise ConfigError(f"Missing required configuration keys: {', '.join(missing)}")

    if not isinstance(data.get("base_url"), str):
        raise ConfigError("'base_url' must be a string")
    # bool is a subclass of int; reject it explicitly
    if not isinstance(data.get("port"), int) or isinstance(data.get("port"), bool):
        raise ConfigError("'port' must be an integer")
    if not isinstance(data.get("model"), str):
        raise ConfigError("'model' must be a string")

    if "request_timeout" in data and not isinstance(data["request_timeout"], (int, float)):
        raise ConfigError("'request_timeout' must be a number")
    if "max_tokens" in data and not isinstance(data["max_tokens"], int):
        raise ConfigError("'max_tokens' must be an integer")
    if "locale" in data and not isinstance(data["locale"], str):
        raise ConfigError("'locale' must be a string")
    if "commit_type" in data and data["commit_type"] not in COMMIT_TYPES:
        raise ConfigError(f"'commit_type' must be one of: {', '.join(COMMIT_TYPES)}")

    return {
        "base_url": data["base_url"],
        "port": data["port"],
        "model": data["model"],
        "request_timeout": float(data.get("request_timeout", 30)),
        "max_tokens": data.get("max_tokens"),
        "locale": data.get("locale", "en"),
        "commit_type": data.get("commit_type", "conventional"),
    }


def load_settings() -> SplitSettings:
    """Load the splitting constants from the ``split`` object of the config file.

    Missing file or missing keys fall back to the :class:`SplitSettings`
    defaults, so boundary scanning works without any configuration.

    Raises
    ------
    ConfigError
        If the file is malformed, ``split`` is not an object, or a value
        is not a positive number of the expected type.
    """
    data = _read_config_file() or {}
    overrides = data.get("split", {})
    if not isinstance(overrides, dict):
        raise ConfigError("'split' must be an object")

    settings = SplitSettings()
    known = {f.name: f for f in fields(SplitSettings)}
    for key, value in overrides.items():
        if key not in known:
            logger.warning("Ignoring unknown split setting: %s", key)
            continue
        default = getattr(settings, key)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ConfigError(f"'split.{key}' must be a number")
        if isinstance(default, int) and not isinstance(value, int):
            raise ConfigError(f"'split.{key}' must be an integer")
        if value < 0:
            raise ConfigError(f"'split.{key}' must not be negative")
        setattr(settings, key, value)
    logger.debug("Split settings: %s", settings)
    return settings
