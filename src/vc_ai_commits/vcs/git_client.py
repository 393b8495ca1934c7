"""
Git client implementation for vc_ai_commits.

This module wraps the Git operations required to build commit message
context: listing changes, producing unified diffs, reading the current
branch and the commit history, and finally committing. All subprocess
calls go through :meth:`GitClient._run` so that unit tests can mock them
easily.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from vc_ai_commits.vcs.change_model import Change, CommitRecord


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

# Field and record separators used with ``git log --format``.
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
# Object id of the empty tree, the diff base before the first commit
EMPTY_TREE = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True,
            or if the git executable cannot be started.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding='utf-8',
                errors='replace',  # Replace invalid characters instead of failing
            )
        except UnicodeDecodeError as e:
            logger.error("Unicode decode error in Git output: %s", e)
            raise GitError(f"Failed to decode Git output: {e}") from e
        except FileNotFoundError as e:
            logger.error("Git executable not found: %s", e)
            raise GitError("git executable not found") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    def _is_submodule(self, path: str) -> bool:
        # A submodule checkout carries its own .git file or directory.
        return (self.repo_root / path / ".git").exists()

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def get_changes(self) -> List[Change]:
        """Get the list of changed files in the repository.

        Returns a list of :class:`Change` objects representing modified,
        added, deleted, and renamed files. Untracked files (status '??')
        are excluded. For renames the new path is reported.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain"], check=True)
        changes = []

        for line in result.stdout.splitlines():
            if not line.strip():
                continue

            # Git porcelain format: XY filename
            # X = index status, Y = working tree status
            if len(line) < 4:
                continue

            status_code = line[:2]
            filename = line[3:]

            if status_code == "??":
                continue

            status = status_code.strip()
            if not status:
                continue
            primary_status = status[0]

            if " -> " in filename:
                filename = filename.split(" -> ", 1)[1]
            filename = filename.strip('"')

            changes.append(
                Change(
                    path=filename,
                    status=primary_status,
                    repo_root=self.repo_root,
                    is_submodule=self._is_submodule(filename),
                )
            )

        return changes

    def _has_head(self) -> bool:
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        return result.returncode == 0

    def get_diff(self, change: Change, reverse: bool = False) -> str:
        """Return the unified diff for a single change.

        Working copy changes are diffed against HEAD (staged and unstaged
        modifications together), or against the empty tree while the
        repository has no commits yet. Changes that carry revisions are
        diffed between those revisions; a change without a parent revision
        is rendered with ``git show``.
        """
        options = ["-R"] if reverse else []
        if change.after_revision is None:
            base = "HEAD" if self._has_head() else EMPTY_TREE
            args = ["diff", *options, base, "--", change.path]
        elif change.before_revision is None:
            args = ["show", "--format=", "--patch", *options, change.after_revision, "--", change.path]
        else:
            args = ["diff", *options, change.before_revision, change.after_revision, "--", change.path]
        return self._run(args, check=True).stdout

    # ------------------------------------------------------------------
    # Branch and history
    # ------------------------------------------------------------------
    def get_current_branch(self) -> Optional[str]:
        """Get the name of the current branch.

        Returns
        -------
        Optional[str]
            The branch name, or ``None`` when HEAD is detached.

        Raises
        ------
        GitError
            If unable to determine the current branch.
        """
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        branch = result.stdout.strip()
        if not branch or branch == "HEAD":
            return None
        return branch

    def get_history(self, max_count: int) -> List[CommitRecord]:
        """Return up to ``max_count`` most recent commits, newest first."""
        if max_count <= 0:
            return []
        fmt = _FIELD_SEP.join(["%H", "%ct", "%an", "%B"]) + _RECORD_SEP
        result = self._run(["log", f"--max-count={max_count}", f"--format={fmt}"], check=True)

        records: List[CommitRecord] = []
        for raw in result.stdout.split(_RECORD_SEP):
            raw = raw.strip("\n")
            if not raw.strip():
                continue
            parts = raw.split(_FIELD_SEP, 3)
            if len(parts) != 4:
                logger.debug("Skipping unparsable log record: %r", raw)
                continue
            sha, timestamp, author, message = parts
            try:
                commit_time = int(timestamp)
            except ValueError:
                logger.debug("Skipping log record with bad timestamp: %r", timestamp)
                continue
            records.append(
                CommitRecord(sha=sha, timestamp=commit_time, message=message.strip(), author=author)
            )
        return records

    def _parent_of(self, sha: str) -> Optional[str]:
        result = self._run(["rev-parse", "--verify", "--quiet", f"{sha}^"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def get_commit_changes(self, sha: str) -> List[Change]:
        """Return the files touched by commit ``sha``."""
        result = self._run(
            ["diff-tree", "--no-commit-id", "--name-status", "-r", "--root", sha],
            check=True,
        )
        parent = self._parent_of(sha)
        changes: List[Change] = []
        for line in result.stdout.splitlines():
            fields = line.split("\t")
            if len(fields) < 2:
                continue
            status = fields[0][:1]
            # Renames and copies list the old and the new path
            path = fields[-1]
            changes.append(
                Change(
                    path=path,
                    status=status,
                    repo_root=self.repo_root,
                    before_revision=parent,
                    after_revision=sha,
                )
            )
        return changes

    def get_last_commit_changes(self) -> List[Change]:
        """Return the changes of the most recent commit, or [] if none."""
        history = self.get_history(1)
        if not history:
            return []
        return self.get_commit_changes(history[0].sha)

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_files(self, files: List[str]) -> None:
        """Stage the given files for commit.

        For deleted files, ``git rm`` is used; otherwise ``git add``.
        """
        for file in files:
            abs_path = self.repo_root / file
            if abs_path.exists():
                self._run(["add", "--", file], check=True)
            else:
                self._run(["rm", "--", file], check=True)

    def commit(self, message: str, amend: bool = False) -> None:
        """Create a commit with the given message.

        Multi-line commit messages are supported. With ``amend`` the last
        commit is replaced.
        """
        args = ["commit", "-m", message]
        if amend:
            args.insert(1, "--amend")
        self._run(args, check=True)
