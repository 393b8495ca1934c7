"""
Data models for prompt rendering.

:class:`CommitContext` bundles everything a prompt template can refer
to. It is built once per generation request and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class ActiveTask:
    """Externally tracked unit of work referenced by task placeholders.

    Attributes
    ----------
    id : str
        Task identifier, e.g. ``"PROJ-42"``.
    summary : str
        One-line task summary.
    description : str, optional
        Longer description; rendered as an empty string when missing.
    time_spent : int
        Total time spent on the task, in seconds.
    """

    id: str
    summary: str = ""
    description: Optional[str] = None
    time_spent: int = 0


@dataclass(frozen=True)
class CommitContext:
    """Aggregated context for one commit message request."""

    diff: str
    branch: Optional[str] = None
    hint: Optional[str] = None
    previous_commit_messages: Tuple[str, ...] = field(default_factory=tuple)
    locale: str = "en"
    task: Optional[ActiveTask] = None
