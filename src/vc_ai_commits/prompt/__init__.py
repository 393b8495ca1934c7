"""
Prompt templates and the context they are rendered from.

The template engine lives in :mod:`vc_ai_commits.prompt.template`; the
repository-driven :class:`~vc_ai_commits.prompt.builder.PromptBuilder`
is imported from its own module.
"""

from .context_model import ActiveTask, CommitContext  # noqa: F401
from .template import DEFAULT_PROMPT, render  # noqa: F401
