import threading
import unittest
from pathlib import Path
from unittest.mock import Mock

from vc_ai_commits.config.settings import PromptSettings
from vc_ai_commits.llm.backends import LlmBackend
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.prompt.builder import PromptBuilder
from vc_ai_commits.service.cancellation import CancellationToken
from vc_ai_commits.service.generation import CommitMessageService
from vc_ai_commits.service.notifications import CollectingNotificationSink, NotificationKind
from vc_ai_commits.vcs.change_model import Change
from vc_ai_commits.vcs.git_client import GitClient
from vc_ai_commits.vcs.provider import VcsProvider


ROOT = Path("/work/repo")


class RecordingBackend(LlmBackend):
    name = "recording"

    def __init__(self, message="feat: add x"):
        self.message = message
        self.prompts = []

    def generate(self, prompt, token=None):
        self.prompts.append(prompt)
        return GenerationResult.success(self.message)


class BlockingBackend(LlmBackend):
    """Backend that waits until its token is cancelled."""

    name = "blocking"

    def __init__(self):
        self.started = threading.Event()

    def generate(self, prompt, token=None):
        self.started.set()
        if token.wait(10):
            return GenerationResult.failure(ErrorKind.CANCELLED, "Generation was cancelled")
        return GenerationResult.success("late")


def make_builder(diffs, settings=None, sink=None):
    client = Mock(spec=GitClient)
    client.get_current_branch.return_value = "main"
    client.get_history.return_value = []
    client.get_diff.side_effect = lambda change, reverse=False: diffs.get(change.path, "")
    provider = VcsProvider({ROOT: client})
    return PromptBuilder(provider, settings or PromptSettings(content="{diff}"), sink or CollectingNotificationSink())


class TestCommitMessageService(unittest.TestCase):
    def test_generate_success(self) -> None:
        backend = RecordingBackend()
        with CommitMessageService(make_builder({"a.py": "+x\n"}), backend) as service:
            result = service.generate([Change(path="a.py", status="M", repo_root=ROOT)])
        self.assertTrue(result.ok)
        self.assertEqual(result.message, "feat: add x")
        self.assertEqual(backend.prompts, [f"Repository: {ROOT}\n+x\n"])

    def test_empty_diff_never_calls_backend(self) -> None:
        backend = RecordingBackend()
        sink = CollectingNotificationSink()
        builder = make_builder({"a.py": "+x\n"}, PromptSettings(excluded_paths=("*.py",)), sink)
        with CommitMessageService(builder, backend) as service:
            result = service.generate([Change(path="a.py", status="M", repo_root=ROOT)])
        self.assertEqual(result.error, ErrorKind.EMPTY_DIFF)
        self.assertEqual(backend.prompts, [])
        self.assertEqual(sink.sent, [NotificationKind.EMPTY_DIFF])

    def test_cancelled_token_stops_before_aggregation(self) -> None:
        builder = Mock(spec=PromptBuilder)
        token = CancellationToken()
        token.cancel()
        with CommitMessageService(builder, RecordingBackend()) as service:
            result = service.generate([], token=token)
        self.assertEqual(result.error, ErrorKind.CANCELLED)
        builder.build.assert_not_called()

    def test_background_job(self) -> None:
        with CommitMessageService(make_builder({"a.py": "+x\n"}), RecordingBackend("fix: y")) as service:
            job = service.start_generation([Change(path="a.py", status="M", repo_root=ROOT)])
            self.assertIs(service.current_job, job)
            self.assertEqual(job.result(timeout=10).message, "fix: y")

    def test_new_job_cancels_previous(self) -> None:
        backend = BlockingBackend()
        changes = [Change(path="a.py", status="M", repo_root=ROOT)]
        with CommitMessageService(make_builder({"a.py": "+x\n"}), backend) as service:
            first = service.start_generation(changes)
            self.assertTrue(backend.started.wait(10))
            second = service.start_generation(changes)
            self.assertTrue(first.cancelled)
            self.assertEqual(first.result(timeout=10).error, ErrorKind.CANCELLED)
            self.assertIs(service.current_job, second)
            service.cancel_current()
            self.assertEqual(second.result(timeout=10).error, ErrorKind.CANCELLED)


if __name__ == "__main__":
    unittest.main()
