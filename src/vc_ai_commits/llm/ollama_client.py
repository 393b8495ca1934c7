"""
Client for interacting with an Ollama LLM server.

This client wraps HTTP requests to the Ollama REST API and is the
network counterpart of the command line backend. It makes
non-streaming text generation requests via the ``/api/generate``
endpoint. On error conditions (HTTP errors, timeouts, unexpected
payloads) a :class:`LLMError` is raised.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from vc_ai_commits.config.settings import OllamaSettings


logger = logging.getLogger(__name__)
# Attach a null handler to avoid errors when the root logger is missing a
# stream. Messages will still propagate to the root logger if configured.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

_THINKING_TAGS = re.compile(
    r"<(think|thinking|thought|reasoning)>.*?</\1>", flags=re.DOTALL | re.IGNORECASE
)


class LLMError(Exception):
    """Raised when communication with the LLM server fails."""

    pass


def strip_thinking_tags(text: str) -> str:
    """Remove reasoning blocks such as ``<think>...</think>`` from a response.

    >>> strip_thinking_tags("<think>reasoning...</think>Answer")
    'Answer'
    """
    return _THINKING_TAGS.sub("", text).strip()


@dataclass
class OllamaClient:
    """Client for interacting with an Ollama server.

    Parameters
    ----------
    base_url : str
        Base URL of the Ollama server, e.g. ``"http://localhost"``.
    port : int
        Port number of the Ollama server, e.g. ``11434``.
    model : str
        Name of the model to use for generation, e.g. ``"llama3"``.
    request_timeout : float, optional
        Timeout in seconds for HTTP requests. Defaults to 60 seconds.
    max_tokens : int, optional
        Maximum number of tokens to generate, sent as ``num_predict``.
    api_key : str, optional
        Bearer token for servers behind an authenticating proxy.
    """

    base_url: str
    port: int
    model: str
    request_timeout: float = 60.0
    max_tokens: Optional[int] = None
    api_key: Optional[str] = None

    @classmethod
    def from_settings(cls, settings: OllamaSettings, api_key: Optional[str] = None) -> "OllamaClient":
        return cls(
            base_url=settings.base_url,
            port=settings.port,
            model=settings.model,
            request_timeout=settings.request_timeout,
            max_tokens=settings.max_tokens,
            api_key=api_key,
        )

    def _endpoint(self) -> str:
        return f"{self.base_url.rstrip('/')}:{self.port}/api/generate"

    def generate(self, prompt: str) -> str:
        """Generate a completion from the model.

        Returns
        -------
        str
            The generated response text, with reasoning blocks removed.

        Raises
        ------
        LLMError
            If the request fails or the server returns an error.
        """
        payload: Dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
        }
        if self.max_tokens is not None:
            payload["options"] = {"num_predict": self.max_tokens}
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else None

        url = self._endpoint()
        logger.debug("Sending request to LLM at %s for model %s", url, self.model)
        try:
            response = requests.post(
                url,
                json=payload,
                headers=headers,
                timeout=self.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Failed to connect to LLM: %s", exc)
            raise LLMError(str(exc)) from exc
        if response.status_code != 200:
            logger.error(
                "LLM returned non-200 status %s: %s", response.status_code, response.text
            )
            raise LLMError(f"LLM returned status {response.status_code}: {response.text}")
        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            logger.error("Failed to parse LLM response: %s", exc)
            raise LLMError("Failed to parse LLM response") from exc

        # /api/generate answers in 'response'; /api/chat style servers in 'message'
        if isinstance(data, dict) and "response" in data:
            return strip_thinking_tags(str(data.get("response") or ""))
        if isinstance(data, dict) and isinstance(data.get("message"), dict):
            return strip_thinking_tags(str(data["message"].get("content") or ""))
        raise LLMError("Unexpected response structure from LLM")
