"""
Language model integration for vc_ai_commits.

This package contains the two backends that turn a prompt into a commit
message: :class:`ClaudeCodeRunner`, which drives the ``claude`` command
line tool, and :class:`OllamaClient`, which talks to an Ollama server.
Both are wrapped by :mod:`vc_ai_commits.llm.backends` and report a
:class:`GenerationResult`.
"""

from .backends import ClaudeCodeBackend, LlmBackend, OllamaBackend, create_backend  # noqa: F401
from .cli_runner import ClaudeCodeRunner  # noqa: F401
from .ollama_client import LLMError, OllamaClient  # noqa: F401
from .results import ErrorKind, GenerationResult  # noqa: F401
