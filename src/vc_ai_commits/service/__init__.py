"""
Generation service and its collaborators.

The leaf helpers (cancellation tokens, advisory notifications and
credential lookup) are exported here. The orchestrating
:class:`~vc_ai_commits.service.generation.CommitMessageService` is
imported from its own module.
"""

from .cancellation import CancellationToken  # noqa: F401
from .credentials import CredentialStore, EnvironmentCredentialStore  # noqa: F401
from .notifications import CollectingNotificationSink, NotificationKind, NotificationSink  # noqa: F401
