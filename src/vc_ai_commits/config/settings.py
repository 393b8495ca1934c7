"""
Read-only settings snapshots.

The loader returns a validated dictionary; these frozen dataclasses are
the snapshots taken from it at the start of an invocation, so a running
generation never observes a configuration change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from vc_ai_commits.prompt.template import DEFAULT_PROMPT

DEFAULT_CLI_TIMEOUT = 120


@dataclass(frozen=True)
class ClaudeCodeSettings:
    """Settings of the command line backend."""

    cli_path: str = ""
    model_id: str = ""
    timeout: int = DEFAULT_CLI_TIMEOUT

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ClaudeCodeSettings":
        section = config.get("claude_code", {})
        return cls(
            cli_path=section.get("cli_path", ""),
            model_id=section.get("model_id", ""),
            timeout=section.get("timeout", DEFAULT_CLI_TIMEOUT),
        )


@dataclass(frozen=True)
class OllamaSettings:
    """Settings of the Ollama HTTP backend."""

    base_url: str = "http://localhost"
    port: int = 11434
    model: str = "llama3"
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "OllamaSettings":
        section = config.get("ollama", {})
        defaults = cls()
        return cls(
            base_url=section.get("base_url", defaults.base_url),
            port=section.get("port", defaults.port),
            model=section.get("model", defaults.model),
            request_timeout=float(section.get("request_timeout", defaults.request_timeout)),
            max_tokens=section.get("max_tokens"),
        )


@dataclass(frozen=True)
class PromptSettings:
    """Settings controlling prompt construction."""

    content: str = DEFAULT_PROMPT
    number_of_previous_commits: int = 0
    locale: str = "en"
    excluded_paths: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "PromptSettings":
        section = config.get("prompt", {})
        return cls(
            content=section.get("content", DEFAULT_PROMPT),
            number_of_previous_commits=section.get("number_of_previous_commits", 0),
            locale=config.get("locale", "en"),
            excluded_paths=tuple(config.get("excluded_paths", ())),
        )
