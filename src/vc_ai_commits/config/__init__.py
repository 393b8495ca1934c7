"""
Configuration loading for vc_ai_commits.

Provides the loader for the user configuration file and the frozen
settings snapshots built from it. See
:mod:`vc_ai_commits.config.loader` for details.
"""

from .loader import ConfigError, load_config  # noqa: F401
from .settings import ClaudeCodeSettings, OllamaSettings, PromptSettings  # noqa: F401
