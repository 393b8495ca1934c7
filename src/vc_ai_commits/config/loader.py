"""
Configuration loader for vc_ai_commits.

The tool reads a JSON configuration file named ``config.json`` located
in the ``~/.aicommits/`` directory (or any path given explicitly). This
loader validates the structure of the configuration and returns a
dictionary; every key is optional and defaults are filled in.

If an explicitly requested configuration file is missing, or any file is
malformed or has fields of the wrong type, a :class:`ConfigError` is
raised.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings or logging errors in
# environments where the root logger may be closed. The CLI configures
# logging explicitly when it runs.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

CONFIG_FILE_NAME = "config.json"
SUPPORTED_BACKENDS = ("claude_code", "ollama")

DEFAULT_CONFIG: Dict[str, Any] = {
    "backend": "claude_code",
    "locale": "en",
    "excluded_paths": [],
    "claude_code": {},
    "ollama": {},
    "prompt": {},
}


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""

    pass


def _get_config_directory() -> Path:
    """Return the user-specific configuration directory ``~/.aicommits/``."""
    return Path.home() / ".aicommits"


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be an object")
    return section


def _validate(data: Dict[str, Any]) -> None:
    backend = data.get("backend")
    if backend not in SUPPORTED_BACKENDS:
        raise ConfigError(
            f"'backend' must be one of: {', '.join(SUPPORTED_BACKENDS)} (got {backend!r})"
        )
    if not isinstance(data.get("locale"), str):
        raise ConfigError("'locale' must be a string")
    excluded = data.get("excluded_paths")
    if not isinstance(excluded, list) or not all(isinstance(g, str) for g in excluded):
        raise ConfigError("'excluded_paths' must be a list of strings")

    claude = _section(data, "claude_code")
    for key in ("cli_path", "model_id"):
        if key in claude and not isinstance(claude[key], str):
            raise ConfigError(f"'claude_code.{key}' must be a string")
    if "timeout" in claude and (not _is_int(claude["timeout"]) or claude["timeout"] <= 0):
        raise ConfigError("'claude_code.timeout' must be a positive integer")

    ollama = _section(data, "ollama")
    if "base_url" in ollama and not isinstance(ollama["base_url"], str):
        raise ConfigError("'ollama.base_url' must be a string")
    if "port" in ollama and not _is_int(ollama["port"]):
        raise ConfigError("'ollama.port' must be an integer")
    if "model" in ollama and not isinstance(ollama["model"], str):
        raise ConfigError("'ollama.model' must be a string")
    if "request_timeout" in ollama and not isinstance(ollama["request_timeout"], (int, float)):
        raise ConfigError("'ollama.request_timeout' must be a number")
    if "max_tokens" in ollama and not _is_int(ollama["max_tokens"]):
        raise ConfigError("'ollama.max_tokens' must be an integer")

    prompt = _section(data, "prompt")
    if "content" in prompt and not isinstance(prompt["content"], str):
        raise ConfigError("'prompt.content' must be a string")
    if "number_of_previous_commits" in prompt and not _is_int(prompt["number_of_previous_commits"]):
        raise ConfigError("'prompt.number_of_previous_commits' must be an integer")


def load_config(config_path: Optional[Path] = None) -> Dict[str, Any]:
    """Load, validate and return the configuration.

    Args:
        config_path: Explicit configuration file. When omitted the file
            ``~/.aicommits/config.json`` is used if it exists; otherwise
            the defaults are returned.

    Returns:
        A dictionary with the keys ``backend``, ``locale``,
        ``excluded_paths``, ``claude_code``, ``ollama`` and ``prompt``.

    Raises:
        ConfigError: If the file is missing (explicit path only),
            unreadable, malformed, or invalid.
    """
    explicit = config_path is not None
    if config_path is None:
        config_path = _get_config_directory() / CONFIG_FILE_NAME

    if not config_path.exists():
        if explicit:
            logger.error("Configuration file '%s' does not exist", config_path)
            raise ConfigError(f"Missing configuration file: {config_path}")
        logger.debug("No configuration file at %s; using defaults", config_path)
        return json.loads(json.dumps(DEFAULT_CONFIG))

    try:
        content = config_path.read_text(encoding="utf-8")
        loaded = json.loads(content)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")

    data: Dict[str, Any] = json.loads(json.dumps(DEFAULT_CONFIG))
    data.update(loaded)
    _validate(data)

    logger.debug("Loaded configuration from: %s", config_path)
    logger.debug("Configuration data: %s", data)
    return data
