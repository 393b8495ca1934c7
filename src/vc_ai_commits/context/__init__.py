"""
Context aggregation for commit message prompts.

See :mod:`vc_ai_commits.context.aggregator` for the diff bundle, branch
voting and commit history helpers.
"""

from .aggregator import (  # noqa: F401
    compute_diff,
    get_common_branch,
    get_last_commit_changes,
    get_previous_commit_messages,
    path_excluder,
)
