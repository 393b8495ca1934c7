"""
Version control system (VCS) integrations.

This package contains the clients for Git and Subversion (SVN) working
copies and the :class:`VcsProvider` that groups changes by repository
root and dispatches diff, branch and history lookups to the owning
client.
"""

from .change_model import Change, CommitRecord  # noqa: F401
from .git_client import GitClient, GitError  # noqa: F401
from .provider import VCS_ERRORS, VcsProvider  # noqa: F401
from .svn_client import SVNClient, SVNError  # noqa: F401
