"""
Model backends behind a single capability.

There are exactly two backends: the local ``claude`` command line tool
and an Ollama server reached over HTTP. Both turn a prompt into a
:class:`GenerationResult`; :func:`create_backend` picks one from the
configuration.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from vc_ai_commits.config.settings import ClaudeCodeSettings, OllamaSettings
from vc_ai_commits.llm.cli_runner import ClaudeCodeRunner
from vc_ai_commits.llm.ollama_client import LLMError, OllamaClient
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.service.cancellation import CancellationToken
from vc_ai_commits.service.credentials import CredentialStore


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

OLLAMA_CREDENTIAL_TITLE = "ollama"


class LlmBackend:
    """Common interface of the model backends."""

    name = ""

    def generate(self, prompt: str, token: Optional[CancellationToken] = None) -> GenerationResult:
        raise NotImplementedError

    def describe(self) -> str:
        return self.name


class ClaudeCodeBackend(LlmBackend):
    """Backend running the ``claude`` CLI as a subprocess."""

    name = "claude_code"

    def __init__(self, runner: ClaudeCodeRunner) -> None:
        self.runner = runner

    def generate(self, prompt: str, token: Optional[CancellationToken] = None) -> GenerationResult:
        return self.runner.run(prompt, token=token)

    def describe(self) -> str:
        path = self.runner.cli_path or f"{self.runner.executable_name} (auto-detected)"
        model = self.runner.model_id or "default model"
        return f"Claude Code CLI: {path}, {model}, timeout {self.runner.timeout}s"


class OllamaBackend(LlmBackend):
    """Backend calling an Ollama server over HTTP."""

    name = "ollama"

    def __init__(self, client: OllamaClient) -> None:
        self.client = client

    def generate(self, prompt: str, token: Optional[CancellationToken] = None) -> GenerationResult:
        if token is not None and token.cancelled:
            return GenerationResult.failure(ErrorKind.CANCELLED, "Generation was cancelled")
        try:
            message = self.client.generate(prompt)
        except LLMError as exc:
            return GenerationResult.failure(ErrorKind.API_ERROR, str(exc))
        if token is not None and token.cancelled:
            return GenerationResult.failure(ErrorKind.CANCELLED, "Generation was cancelled")
        if not message:
            return GenerationResult.failure(ErrorKind.MISSING_RESULT, "LLM returned an empty response")
        return GenerationResult.success(message)

    def describe(self) -> str:
        return f"Ollama: {self.client.base_url}:{self.client.port}, {self.client.model}"


def create_backend(config: Dict[str, Any], credentials: Optional[CredentialStore] = None) -> LlmBackend:
    """Instantiate the backend named by ``config["backend"]``.

    Raises
    ------
    ValueError
        If the backend name is unknown.
    """
    credentials = credentials or CredentialStore()
    name = config.get("backend", ClaudeCodeBackend.name)
    if name == ClaudeCodeBackend.name:
        return ClaudeCodeBackend(ClaudeCodeRunner.from_settings(ClaudeCodeSettings.from_config(config)))
    if name == OllamaBackend.name:
        api_key = credentials.get(OLLAMA_CREDENTIAL_TITLE)
        return OllamaBackend(OllamaClient.from_settings(OllamaSettings.from_config(config), api_key=api_key))
    raise ValueError(f"Unknown backend: {name}")
