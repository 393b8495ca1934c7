"""
Prompt template rendering.

A prompt template is plain text with placeholder tokens. The recognised
tokens are ``{locale}``, ``{branch}``, ``{hint}`` (or a brace group that
contains ``$hint``), ``{previousCommitMessages}``, ``{taskId}``,
``{taskSummary}``, ``{taskDescription}``, ``{taskTimeSpent}`` and
``{diff}``. Anything else is left untouched.

Substitutions run in a fixed order and the diff is inserted last, so
text coming from the diff is never scanned for tokens.
"""

from __future__ import annotations

import logging
import re
from typing import Optional

from vc_ai_commits.prompt.context_model import ActiveTask, CommitContext
from vc_ai_commits.prompt.locales import display_language
from vc_ai_commits.service.notifications import NotificationKind, NotificationSink


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

FALLBACK_BRANCH = "main"

TASK_TOKENS = ("{taskId}", "{taskSummary}", "{taskDescription}", "{taskTimeSpent}")

# A brace group holding the $hint marker, e.g. "{Use this hint: $hint}"
_HINT_GROUP = re.compile(r"\{[^{}]*\$hint[^{}]*\}")

DEFAULT_PROMPT = (
    "Write an insightful but concise Git commit message in a complete sentence in present "
    "tense for the following diff without prefacing it with anything. The response must be "
    "in the language {locale} and must NOT be longer than 74 characters. The sent text will "
    "be the differences between files, where deleted lines are prefixed with a single minus "
    "sign and added lines are prefixed with a single plus sign.{ Use this hint to improve the "
    "commit message: $hint}\n"
    "{diff}"
)


def format_duration(seconds: int) -> str:
    """Format a duration as a short human string, e.g. ``1h 05m``."""
    seconds = max(int(seconds), 0)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    if hours:
        return f"{hours}h {minutes:02d}m"
    if minutes:
        return f"{minutes}m"
    return f"{secs}s"


def replace_branch(content: str, branch: Optional[str], notifier: NotificationSink) -> str:
    """Substitute ``{branch}``; fall back to ``main`` with an advisory."""
    if "{branch}" not in content:
        return content
    if branch is not None:
        return content.replace("{branch}", branch)
    notifier.send(NotificationKind.NO_COMMON_BRANCH)
    return content.replace("{branch}", FALLBACK_BRANCH)


def replace_hint(content: str, hint: Optional[str]) -> str:
    """Substitute the hint group or the bare ``{hint}`` token.

    The first brace group containing ``$hint`` wins: with a non-blank hint
    its braces are dropped and ``$hint`` becomes the hint text, otherwise
    the whole group is removed. Without such a group, ``{hint}`` is
    replaced by the hint or by nothing.
    """
    match = _HINT_GROUP.search(content)
    if match is not None:
        group = match.group(0)
        if hint and hint.strip():
            value = group.replace("$hint", hint).replace("{", "").replace("}", "")
            return content.replace(group, value)
        return content.replace(group, "")
    return content.replace("{hint}", hint or "")


def replace_task(content: str, task: Optional[ActiveTask], notifier: NotificationSink) -> str:
    """Substitute the task tokens from ``task``.

    Without an active task the tokens stay in place and an advisory is
    sent if the template uses any of them.
    """
    if task is not None:
        content = content.replace("{taskId}", task.id)
        content = content.replace("{taskSummary}", task.summary)
        content = content.replace("{taskDescription}", task.description or "")
        content = content.replace("{taskTimeSpent}", format_duration(task.time_spent))
    elif any(token in content for token in TASK_TOKENS):
        notifier.send(NotificationKind.TASK_MANAGER_MISSING)
    return content


def substitute(template: str, context: CommitContext, notifier: Optional[NotificationSink] = None) -> str:
    """Apply every token substitution to ``template``.

    Unlike :func:`render` the diff is only inserted where ``{diff}``
    appears. Applying this to its own output changes nothing as long as
    the substituted values contain no tokens.
    """
    notifier = notifier or NotificationSink()
    content = template.replace("{locale}", display_language(context.locale))
    content = replace_branch(content, context.branch, notifier)
    content = replace_hint(content, context.hint)
    content = content.replace("{previousCommitMessages}", "\n".join(context.previous_commit_messages))
    content = replace_task(content, context.task, notifier)
    return content.replace("{diff}", context.diff)


def render(template: str, context: CommitContext, notifier: Optional[NotificationSink] = None) -> str:
    """Render ``template`` into the final prompt.

    If the template has no ``{diff}`` token the diff is appended on a new
    line, so it always reaches the model.
    """
    has_diff_token = "{diff}" in template
    content = substitute(template, context, notifier)
    if has_diff_token:
        return content
    logger.debug("Template has no {diff} token; appending the diff")
    return f"{content}\n{context.diff}"
