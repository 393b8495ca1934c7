"""
Commit message generation service.

:class:`CommitMessageService` ties the pipeline together: aggregate the
repository context, render the prompt, and hand it to the configured
backend. Generations can run synchronously or as background jobs. The
service tracks a single current job; starting a new one cancels the
previous job's token, which also stops a CLI process that is still
running.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Optional

from vc_ai_commits.llm.backends import LlmBackend
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.prompt.builder import PreparedPrompt, PromptBuilder
from vc_ai_commits.prompt.context_model import ActiveTask
from vc_ai_commits.service.cancellation import CancellationToken
from vc_ai_commits.vcs.change_model import Change


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def _cancelled() -> GenerationResult:
    return GenerationResult.failure(ErrorKind.CANCELLED, "Generation was cancelled")


@dataclass
class GenerationJob:
    """Handle of a background generation."""

    token: CancellationToken
    future: Future

    def cancel(self) -> None:
        self.token.cancel()
        self.future.cancel()

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> GenerationResult:
        """Wait for the outcome; a job cancelled before it started reports CANCELLED."""
        try:
            return self.future.result(timeout=timeout)
        except CancelledError:
            return _cancelled()


class CommitMessageService:
    """Generate commit messages for sets of included changes."""

    def __init__(self, builder: PromptBuilder, backend: LlmBackend, max_workers: int = 2) -> None:
        self.builder = builder
        self.backend = backend
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="aicommits")
        self._lock = threading.Lock()
        self._current: Optional[GenerationJob] = None

    def __enter__(self) -> "CommitMessageService":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.shutdown()
        return False

    def prepare(
        self,
        changes: Iterable[Change],
        hint: Optional[str] = None,
        task: Optional[ActiveTask] = None,
        amend: bool = False,
    ) -> Optional[PreparedPrompt]:
        """Build the prompt without calling a backend; ``None`` for an empty diff."""
        return self.builder.build(changes, hint=hint, task=task, amend=amend)

    def generate(
        self,
        changes: Iterable[Change],
        hint: Optional[str] = None,
        task: Optional[ActiveTask] = None,
        amend: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> GenerationResult:
        """Run the whole pipeline on the calling thread.

        An empty diff stops before the backend is called and yields
        :attr:`ErrorKind.EMPTY_DIFF`. The token is checked before and after
        context aggregation and passed on to the backend.
        """
        token = token or CancellationToken()
        if token.cancelled:
            return _cancelled()
        prepared = self.prepare(changes, hint=hint, task=task, amend=amend)
        if prepared is None:
            return GenerationResult.failure(ErrorKind.EMPTY_DIFF, "There are no changes to describe")
        if token.cancelled:
            return _cancelled()
        logger.debug("Generating commit message with %s", self.backend.describe())
        return self.backend.generate(prepared.prompt, token=token)

    def start_generation(
        self,
        changes: Iterable[Change],
        hint: Optional[str] = None,
        task: Optional[ActiveTask] = None,
        amend: bool = False,
    ) -> GenerationJob:
        """Start a background generation and make it the current job.

        The previous current job, if any, is cancelled first.
        """
        changes = list(changes)
        token = CancellationToken()
        with self._lock:
            if self._current is not None and not self._current.done():
                logger.info("Cancelling the previous generation")
                self._current.cancel()
            future = self._executor.submit(self.generate, changes, hint, task, amend, token)
            job = GenerationJob(token=token, future=future)
            self._current = job
        return job

    @property
    def current_job(self) -> Optional[GenerationJob]:
        with self._lock:
            return self._current

    def cancel_current(self) -> None:
        with self._lock:
            if self._current is not None:
                self._current.cancel()

    def shutdown(self, wait: bool = True) -> None:
        self.cancel_current()
        self._executor.shutdown(wait=wait)
