"""
Advisory notifications raised while preparing a prompt.

Advisories never change control flow beyond a fallback value; they are
handed to a :class:`NotificationSink`, which the command line wires to
the terminal and tests replace with :class:`CollectingNotificationSink`.
"""

from __future__ import annotations

import enum
import logging
from typing import List


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class NotificationKind(enum.Enum):
    """Advisory conditions reported to the user."""

    NO_COMMON_BRANCH = "no-common-branch"
    TASK_MANAGER_MISSING = "task-manager-missing"
    EMPTY_DIFF = "empty-diff"

    @property
    def text(self) -> str:
        return _TEXTS[self]


_TEXTS = {
    NotificationKind.NO_COMMON_BRANCH: (
        "No common branch was found for the included changes; using 'main' in the prompt."
    ),
    NotificationKind.TASK_MANAGER_MISSING: (
        "The prompt references task placeholders but no active task was given."
    ),
    NotificationKind.EMPTY_DIFF: "There are no changes to describe; the diff is empty.",
}


class NotificationSink:
    """Receiver of advisory notifications. The default sink logs them."""

    def send(self, kind: NotificationKind) -> None:
        logger.warning(kind.text)


class CollectingNotificationSink(NotificationSink):
    """Sink that records every advisory, in order."""

    def __init__(self) -> None:
        self.sent: List[NotificationKind] = []

    def send(self, kind: NotificationKind) -> None:
        self.sent.append(kind)
