"""
Multi-repository access for the context aggregator.

:class:`VcsProvider` owns one client per repository root and exposes the
operations the aggregator needs: changes grouped by root, the current
branch of a root, its history, and per-root diffs. Git and SVN roots may
be mixed; each root is served by the client matching its metadata
directory.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from vc_ai_commits.vcs.change_model import Change, CommitRecord
from vc_ai_commits.vcs.git_client import GitClient, GitError
from vc_ai_commits.vcs.svn_client import SVNClient, SVNError


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

VcsClient = Union[GitClient, SVNClient]
VCS_ERRORS = (GitError, SVNError)


class VcsProvider:
    """Dispatch repository operations to the client owning each root."""

    def __init__(self, clients: Optional[Dict[Path, VcsClient]] = None) -> None:
        self._clients: Dict[Path, VcsClient] = dict(clients or {})

    @classmethod
    def for_roots(cls, roots: Iterable[Path]) -> "VcsProvider":
        """Build a provider for ``roots``, detecting Git or SVN for each.

        Roots with both or neither metadata directory are skipped.
        """
        clients: Dict[Path, VcsClient] = {}
        for root in roots:
            root = root.resolve()
            is_git = GitClient.is_repo(root)
            is_svn = SVNClient.is_repo(root)
            if is_git and is_svn:
                logger.warning("Both Git and SVN metadata found in %s; skipping", root)
                continue
            if is_git:
                clients[root] = GitClient(root)
            elif is_svn:
                clients[root] = SVNClient(root)
            else:
                logger.warning("No repository metadata found in %s; skipping", root)
        return cls(clients)

    @property
    def roots(self) -> List[Path]:
        return list(self._clients)

    def client_for(self, root: Optional[Path]) -> Optional[VcsClient]:
        if root is None:
            return None
        return self._clients.get(root)

    def vcs_name(self, root: Path) -> Optional[str]:
        client = self.client_for(root)
        if isinstance(client, GitClient):
            return "git"
        if isinstance(client, SVNClient):
            return "svn"
        return None

    # ------------------------------------------------------------------
    # Changes
    # ------------------------------------------------------------------
    def changes(self) -> List[Change]:
        """Collect working copy changes from every root, in root order."""
        collected: List[Change] = []
        for root, client in self._clients.items():
            collected.extend(client.get_changes())
        return collected

    def changes_grouped_by_root(self, changes: Iterable[Change]) -> Dict[Path, List[Change]]:
        """Partition ``changes`` by owning root.

        Roots appear in order of first occurrence. Changes whose root is
        unknown to this provider are dropped.
        """
        grouped: Dict[Path, List[Change]] = {}
        for change in changes:
            if self.client_for(change.repo_root) is None:
                logger.debug("No repository known for change %s; dropping", change.path)
                continue
            grouped.setdefault(change.repo_root, []).append(change)
        return grouped

    def diff_for(self, root: Path, changes: Iterable[Change], reverse: bool = False) -> str:
        """Return the unified diff of ``changes`` inside ``root``.

        A change whose diff cannot be produced is dropped with a warning.
        """
        client = self._clients[root]
        parts: List[str] = []
        for change in changes:
            try:
                parts.append(client.get_diff(change, reverse=reverse))
            except VCS_ERRORS as exc:
                logger.warning("Could not diff %s in %s: %s", change.path, root, exc)
        return "".join(parts)

    def last_commit_changes(self) -> List[Change]:
        """Flatten the changes of the most recent commit of each Git root."""
        collected: List[Change] = []
        for root, client in self._clients.items():
            if not isinstance(client, GitClient):
                continue
            try:
                collected.extend(client.get_last_commit_changes())
            except GitError as exc:
                logger.warning("Could not read last commit of %s: %s", root, exc)
        return collected

    # ------------------------------------------------------------------
    # Branch and history
    # ------------------------------------------------------------------
    def current_branch_of(self, root: Path) -> Optional[str]:
        client = self.client_for(root)
        if client is None:
            return None
        return client.get_current_branch()

    def branch_for(self, change: Change) -> Optional[str]:
        """Return the branch label of the repository owning ``change``.

        Git reports the checked-out branch of the root; SVN derives a label
        from the URL of the changed file itself.
        """
        client = self.client_for(change.repo_root)
        if isinstance(client, SVNClient):
            return client.get_current_branch(change.path)
        if isinstance(client, GitClient):
            return client.get_current_branch()
        return None

    def history_of(self, root: Path, max_count: int) -> List[CommitRecord]:
        """Return up to ``max_count`` most recent commits of ``root``.

        Only Git roots expose history; other roots yield an empty list.
        """
        client = self.client_for(root)
        if not isinstance(client, GitClient):
            return []
        return client.get_history(max_count)
