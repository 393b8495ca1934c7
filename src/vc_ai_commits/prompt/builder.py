"""
Prompt construction from repository state.

:class:`PromptBuilder` runs the context aggregator over the included
changes and renders the configured template. An empty diff stops the
pipeline before anything is rendered.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from vc_ai_commits.config.settings import PromptSettings
from vc_ai_commits.context.aggregator import (
    compute_diff,
    get_common_branch,
    get_last_commit_changes,
    get_previous_commit_messages,
    path_excluder,
)
from vc_ai_commits.prompt.context_model import ActiveTask, CommitContext
from vc_ai_commits.prompt.template import render
from vc_ai_commits.service.notifications import NotificationKind, NotificationSink
from vc_ai_commits.vcs.change_model import Change
from vc_ai_commits.vcs.provider import VcsProvider


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


@dataclass(frozen=True)
class PreparedPrompt:
    """The rendered prompt together with the context it came from."""

    prompt: str
    context: CommitContext

    @property
    def diff(self) -> str:
        return self.context.diff


class PromptBuilder:
    """Build prompts for a set of included changes."""

    def __init__(
        self,
        provider: VcsProvider,
        settings: PromptSettings,
        notifier: Optional[NotificationSink] = None,
    ) -> None:
        self.provider = provider
        self.settings = settings
        self.notifier = notifier or NotificationSink()
        self._is_excluded = path_excluder(settings.excluded_paths)

    def build_context(
        self,
        changes: Iterable[Change],
        hint: Optional[str] = None,
        task: Optional[ActiveTask] = None,
        amend: bool = False,
    ) -> Optional[CommitContext]:
        """Aggregate the commit context, or return ``None`` for an empty diff.

        In amend mode the changes of the last commit are included as well.
        An empty diff sends an :attr:`NotificationKind.EMPTY_DIFF` advisory.
        """
        included: List[Change] = list(changes)
        if amend:
            included += get_last_commit_changes(self.provider)

        diff = compute_diff(included, self.provider, reverse=False, is_excluded=self._is_excluded)
        if not diff.strip():
            logger.info("Diff is empty; nothing to describe")
            self.notifier.send(NotificationKind.EMPTY_DIFF)
            return None

        branch = get_common_branch(included, self.provider)
        previous = get_previous_commit_messages(
            self.settings.number_of_previous_commits, included, self.provider
        )
        return CommitContext(
            diff=diff,
            branch=branch,
            hint=hint,
            previous_commit_messages=tuple(previous),
            locale=self.settings.locale,
            task=task,
        )

    def build(
        self,
        changes: Iterable[Change],
        hint: Optional[str] = None,
        task: Optional[ActiveTask] = None,
        amend: bool = False,
    ) -> Optional[PreparedPrompt]:
        """Aggregate the context and render the prompt template."""
        context = self.build_context(changes, hint=hint, task=task, amend=amend)
        if context is None:
            return None
        prompt = render(self.settings.content, context, self.notifier)
        logger.debug("Rendered prompt of %d characters", len(prompt))
        return PreparedPrompt(prompt=prompt, context=context)
