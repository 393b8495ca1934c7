"""
Subversion (SVN) client implementation for vc_ai_commits.

This module provides a thin wrapper around the SVN command line
operations needed to describe a working copy: its changes, their diffs,
and the branch label derived from the conventional
``trunk``/``branches``/``tags`` repository layout.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from vc_ai_commits.vcs.change_model import Change


logger = logging.getLogger(__name__)
# Attach a null handler to prevent logging errors when no root handlers are
# configured. Logs will still propagate to the root logger when available.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class SVNError(Exception):
    """Raised when an SVN command fails."""

    pass


# First column of an ``svn status`` row
_STATUS_CODES = frozenset(" ACDIMRX?!~")


def _is_status_row(line: str) -> bool:
    """Return True for ``svn status`` lines describing a path.

    A row has seven status columns, a blank, then the path.
    """
    if len(line) < 9 or line[0] not in _STATUS_CODES or line[7] != " ":
        return False
    # "      >   local edit, incoming delete upon update"
    return not line.lstrip().startswith(">")


def extract_branch_name(url: str) -> Optional[str]:
    """Derive a branch label from an SVN URL using the standard layout.

    ``.../branches/<name>/...`` yields ``<name>``, ``.../tags/<name>/...``
    yields ``tag: <name>`` and ``.../trunk`` yields ``trunk``. URLs outside
    the standard layout have no branch concept and yield ``None``.

    >>> extract_branch_name("https://svn.example.com/repo/branches/feature-x/src")
    'feature-x'
    >>> extract_branch_name("https://svn.example.com/repo/tags/v1.0")
    'tag: v1.0'
    """
    normalized = url.lower()
    if "/branches/" in normalized:
        start = normalized.index("/branches/") + len("/branches/")
        return url[start:].split("/", 1)[0] or None
    if "/tags/" in normalized:
        start = normalized.index("/tags/") + len("/tags/")
        tag = url[start:].split("/", 1)[0]
        return f"tag: {tag}" if tag else None
    if "/trunk" in normalized:
        return "trunk"
    return None


class SVNClient:
    """Client for interacting with an SVN working copy."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of an SVN working copy."""
        return (path / ".svn").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of an SVN working copy starting from ``start``.

        Walk upwards until a ``.svn`` directory is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".svn").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # Internal helper to run SVN commands
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        full_cmd = ["svn"] + args
        logger.debug("Executing SVN command: %s", " ".join(full_cmd))
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
            logger.error("Unicode decode error in SVN output: %s", e)
            raise SVNError(f"Failed to decode SVN output: {e}") from e
        except FileNotFoundError as e:
            # SVN executable not found on PATH
            logger.error("SVN executable not found: %s", e)
            raise SVNError("svn executable not found") from e

        if check and result.returncode != 0:
            logger.error(
                "SVN command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise SVNError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Branch label (SVN branches are directories)
    # ------------------------------------------------------------------
    def get_url(self, path: Optional[str] = None) -> str:
        """Return the repository URL of the working copy or of ``path``."""
        args = ["info", "--show-item", "url"]
        if path:
            args += ["--", path]
        result = self._run(args, check=True)
        return result.stdout.strip()

    def get_current_branch(self, path: Optional[str] = None) -> Optional[str]:
        """Get the branch label for the working copy (or a file in it).

        Returns
        -------
        Optional[str]
            ``"trunk"``, the branch name, ``"tag: <name>"``, or ``None`` when
            the URL does not follow the standard layout.

        Raises
        ------
        SVNError
            If the URL cannot be determined.
        """
        return extract_branch_name(self.get_url(path))

    # ------------------------------------------------------------------
    # File operations
    # ------------------------------------------------------------------
    def get_changes(self) -> List[Change]:
        """Return a list of changes in the working copy relative to BASE.

        Unversioned ("?") and ignored ("I") files are excluded. Externals
        ("X") are reported as submodule boundaries; their contents are not
        listed. Lines that are not status rows (external headers,
        changelist headers, tree-conflict details) are skipped.
        """
        result = self._run(["status", "--ignore-externals"], check=True)
        changes: List[Change] = []
        for line in result.stdout.splitlines():
            if not _is_status_row(line):
                continue
            status_code = line[0]
            path = line[8:].strip()
            if status_code in ("?", "I"):
                continue
            if status_code in ("A", "D", "R"):
                status = status_code
            else:
                status = "M"
            changes.append(
                Change(
                    path=path,
                    status=status,
                    repo_root=self.repo_root,
                    is_submodule=status_code == "X",
                )
            )
        logger.debug("Detected SVN changes: %s", changes)
        return changes

    def get_diff(self, change: Change, reverse: bool = False) -> str:
        """Return the unified diff for a change relative to BASE.

        Raises
        ------
        SVNError
            If the diff fails or a reverse diff is requested; SVN cannot
            reverse a working copy diff.
        """
        if reverse:
            raise SVNError("Reverse diffs are not supported for SVN working copies")
        result = self._run(["diff", "--", change.path], check=True)
        return result.stdout

    def stage_files(self, files: List[str], statuses: Optional[Dict[str, str]] = None) -> None:
        """Schedule additions and deletions for commit.

        In SVN there is no index; modified files need no explicit staging.
        """
        statuses = statuses or {}
        for file in files:
            status = statuses.get(file, "M")
            if status == "A":
                # --force skips files that are already versioned
                self._run(["add", "--force", "--", file], check=True)
            elif status == "D":
                self._run(["delete", "--", file], check=True)

    def commit(self, message: str, files: List[str]) -> None:
        """Commit the specified files with the given message.

        Raises
        ------
        SVNError
            If files list is empty or commit fails.
        """
        if not files:
            raise SVNError("Cannot commit: files list is empty")
        args = ["commit", "-m", message, "--"] + files
        self._run(args, check=True)
