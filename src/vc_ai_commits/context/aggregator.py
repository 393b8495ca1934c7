"""
Aggregation of version control state into commit message context.

The functions in this module turn the included changes of a commit into
the pieces a prompt needs: a diff bundle with one section per
repository root, the branch most of the changes live on, and the
messages of recent commits. Lookups that fail for a single change or
root drop that unit and continue; only an empty diff is meaningful to
the caller.
"""

from __future__ import annotations

import fnmatch
import logging
from collections import Counter
from pathlib import PurePath
from typing import Callable, Iterable, List, Optional, Sequence

from vc_ai_commits.vcs.change_model import Change, CommitRecord
from vc_ai_commits.vcs.provider import VCS_ERRORS, VcsProvider


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

REPOSITORY_HEADER = "Repository: {root}\n"

ExclusionPredicate = Callable[[Change], bool]


def matches_globs(text: str, globs: Iterable[str]) -> bool:
    """Return True if ``text`` matches any of the glob patterns.

    Patterns use :mod:`fnmatch` semantics, so ``*`` also crosses
    directory separators.
    """
    return any(fnmatch.fnmatch(text, pattern) for pattern in globs)


def path_excluder(globs: Sequence[str]) -> ExclusionPredicate:
    """Build a predicate excluding changes whose path matches ``globs``.

    A change is excluded when its repository-relative path, its absolute
    path, or its bare file name matches one of the patterns.
    """
    patterns = [g for g in globs if g]

    def is_excluded(change: Change) -> bool:
        if not patterns:
            return False
        candidates = [change.path, PurePath(change.path).name]
        if change.absolute_path is not None:
            candidates.append(change.absolute_path.as_posix())
        return any(matches_globs(candidate, patterns) for candidate in candidates)

    return is_excluded


def _never_excluded(change: Change) -> bool:
    return False


def compute_diff(
    changes: Iterable[Change],
    provider: VcsProvider,
    reverse: bool = False,
    is_excluded: Optional[ExclusionPredicate] = None,
) -> str:
    """Build the diff bundle for ``changes``.

    Excluded and submodule changes are filtered out, the rest is grouped
    by repository root (in order of first occurrence) and each root
    contributes ``Repository: <root>`` followed by its unified diff.
    Sections are separated by a blank line.

    Returns
    -------
    str
        The diff bundle, or an empty string when nothing survives the
        filtering. An empty result means "nothing to commit", not an error.
    """
    is_excluded = is_excluded or _never_excluded
    kept = []
    for change in changes:
        if change.is_submodule:
            logger.debug("Skipping submodule change %s", change.path)
            continue
        if is_excluded(change):
            logger.debug("Skipping excluded change %s", change.path)
            continue
        kept.append(change)

    sections: List[str] = []
    for root, root_changes in provider.changes_grouped_by_root(kept).items():
        try:
            diff = provider.diff_for(root, root_changes, reverse=reverse)
        except VCS_ERRORS as exc:
            logger.warning("Could not compute diff for %s: %s", root, exc)
            continue
        if not diff.strip():
            continue
        if not diff.endswith("\n"):
            diff += "\n"
        sections.append(REPOSITORY_HEADER.format(root=root) + diff)
    return "\n".join(sections)


def get_common_branch(changes: Iterable[Change], provider: VcsProvider) -> Optional[str]:
    """Return the branch label shared by most of ``changes``.

    Each change is mapped to the branch of its owning repository; changes
    without a label are ignored. Ties go to the label encountered first
    in ``changes``.
    """
    tally: Counter = Counter()
    for change in changes:
        try:
            label = provider.branch_for(change)
        except VCS_ERRORS as exc:
            logger.debug("Could not resolve branch for %s: %s", change.path, exc)
            continue
        if label:
            tally[label] += 1
    if not tally:
        return None
    # most_common keeps first-encountered order among equal counts
    return tally.most_common(1)[0][0]


def get_previous_commit_messages(
    n: int,
    changes: Iterable[Change],
    provider: VcsProvider,
) -> List[str]:
    """Return up to ``n`` recent commit messages across touched repositories.

    Up to ``n`` commits are read from every repository touched by
    ``changes``; the candidates are merged, ordered newest first and
    truncated to ``n``. Nothing is looked up when ``n <= 0``.
    """
    if n <= 0:
        return []
    roots = list(provider.changes_grouped_by_root(changes))
    if not roots:
        return []

    candidates: List[CommitRecord] = []
    for root in roots:
        try:
            candidates.extend(provider.history_of(root, n))
        except VCS_ERRORS as exc:
            logger.warning("Could not read history of %s: %s", root, exc)
    candidates.sort(key=lambda record: record.timestamp, reverse=True)
    return [record.message for record in candidates[:n]]


def get_last_commit_changes(provider: VcsProvider) -> List[Change]:
    """Return the changes of the latest commit of each repository (amend)."""
    return provider.last_commit_changes()
