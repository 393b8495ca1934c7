"""
Data models shared by the VCS clients.

A :class:`Change` is a single file modification as reported by a
repository client. A :class:`CommitRecord` is one entry of a repository
history. Both are produced by the clients and treated as read-only by
the rest of the package.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass(frozen=True)
class Change:
    """Representation of a single file change.

    Attributes
    ----------
    path : str
        Path of the changed file relative to ``repo_root``.
    status : str
        Simplified status: 'M' modified, 'A' added, 'D' deleted, 'R' renamed.
    repo_root : Path, optional
        Root of the repository owning the file. ``None`` when the owning
        repository could not be determined.
    before_revision : str, optional
        Revision the change starts from. ``None`` means the working copy
        base (HEAD/BASE).
    after_revision : str, optional
        Revision the change ends at. ``None`` means the working copy.
    is_submodule : bool
        True when the path is a nested repository boundary.
    """

    path: str
    status: str
    repo_root: Optional[Path] = None
    before_revision: Optional[str] = None
    after_revision: Optional[str] = None
    is_submodule: bool = False

    @property
    def absolute_path(self) -> Optional[Path]:
        if self.repo_root is None:
            return None
        return self.repo_root / self.path


@dataclass
class CommitRecord:
    """A single commit from a repository history."""

    sha: str
    timestamp: int  # seconds since the epoch
    message: str
    author: str = ""
    changes: List[Change] = field(default_factory=list)
