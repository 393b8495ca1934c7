"""Tests for the command line backend runner.

The process tests run small POSIX shell scripts in place of the real
executable and are skipped on Windows.
"""

import os
import stat
import sys
import tempfile
import threading
import time
import unittest
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import Mock, patch

from vc_ai_commits.config.settings import ClaudeCodeSettings
from vc_ai_commits.llm import cli_runner
from vc_ai_commits.llm.cli_runner import ClaudeCodeRunner, CliNotFoundError
from vc_ai_commits.llm.results import ErrorKind
from vc_ai_commits.service.cancellation import CancellationToken


class TestPathResolution(unittest.TestCase):
    @patch("vc_ai_commits.llm.cli_runner.subprocess.run")
    def test_detect_takes_first_line(self, mock_run) -> None:
        mock_run.return_value = SimpleNamespace(returncode=0, stdout="/usr/local/bin/claude\n/usr/bin/claude\n")
        with patch("vc_ai_commits.llm.cli_runner.platform.system", return_value="Linux"):
            self.assertEqual(ClaudeCodeRunner().detect_cli_path(), "/usr/local/bin/claude")
        self.assertEqual(mock_run.call_args[0][0], ["which", "claude"])
        self.assertEqual(mock_run.call_args.kwargs["timeout"], cli_runner.DETECT_TIMEOUT)

    @patch("vc_ai_commits.llm.cli_runner.subprocess.run")
    def test_detect_uses_where_on_windows(self, mock_run) -> None:
        mock_run.return_value = SimpleNamespace(returncode=0, stdout="C:\\tools\\claude.exe\r\n")
        with patch("vc_ai_commits.llm.cli_runner.platform.system", return_value="Windows"):
            self.assertEqual(ClaudeCodeRunner().detect_cli_path(), "C:\\tools\\claude.exe")
        self.assertEqual(mock_run.call_args[0][0], ["where", "claude"])

    @patch("vc_ai_commits.llm.cli_runner.subprocess.run")
    def test_detect_failures(self, mock_run) -> None:
        outcomes = [
            SimpleNamespace(returncode=1, stdout="claude not found"),
            SimpleNamespace(returncode=0, stdout="  \n"),
        ]
        for outcome in outcomes:
            with self.subTest(outcome=outcome):
                mock_run.return_value = outcome
                with self.assertRaises(CliNotFoundError):
                    ClaudeCodeRunner().detect_cli_path()
        mock_run.side_effect = OSError("no which")
        with self.assertRaises(CliNotFoundError):
            ClaudeCodeRunner().detect_cli_path()

    def test_missing_configured_path_is_not_found(self) -> None:
        result = ClaudeCodeRunner(cli_path="/definitely/not/here/claude").run("prompt")
        self.assertEqual(result.error, ErrorKind.EXECUTABLE_NOT_FOUND)
        self.assertIn("/definitely/not/here/claude", result.detail)

    def test_detect_failure_is_reported(self) -> None:
        with patch.object(ClaudeCodeRunner, "detect_cli_path", side_effect=CliNotFoundError("nope")):
            result = ClaudeCodeRunner().run("prompt")
        self.assertEqual(result.error, ErrorKind.EXECUTABLE_NOT_FOUND)
        self.assertEqual(result.detail, "nope")

    def test_build_command(self) -> None:
        self.assertEqual(
            ClaudeCodeRunner().build_command("/bin/claude", "hi"),
            ["/bin/claude", "-p", "--output-format", "json", "hi"],
        )
        self.assertEqual(
            ClaudeCodeRunner(model_id="sonnet").build_command("/bin/claude", "hi"),
            ["/bin/claude", "-p", "--output-format", "json", "--model", "sonnet", "hi"],
        )

    def test_from_settings(self) -> None:
        runner = ClaudeCodeRunner.from_settings(ClaudeCodeSettings(cli_path="/x", model_id="m", timeout=7))
        self.assertEqual((runner.cli_path, runner.model_id, runner.timeout), ("/x", "m", 7))

    def test_spawn_error(self) -> None:
        with patch.object(ClaudeCodeRunner, "resolve_cli_path", return_value="/bin/claude"):
            with patch("vc_ai_commits.llm.cli_runner.subprocess.Popen", side_effect=OSError("boom")):
                result = ClaudeCodeRunner().run("prompt")
        self.assertEqual(result.error, ErrorKind.SPAWN_ERROR)
        self.assertIn("boom", result.detail)


class TestWait(unittest.TestCase):
    def test_waits_on_token_in_slices(self) -> None:
        process = Mock(pid=42)
        process.poll.return_value = None
        token = Mock(spec=CancellationToken)
        token.wait.side_effect = [False, False, True]
        result = ClaudeCodeRunner(timeout=30)._wait(process, token)
        self.assertEqual(result.error, ErrorKind.CANCELLED)
        self.assertEqual(token.wait.call_count, 3)
        for call in token.wait.call_args_list:
            self.assertLessEqual(call.args[0], cli_runner.CANCEL_POLL_INTERVAL)
        process.wait.assert_not_called()

    def test_exited_process_is_not_waited_on(self) -> None:
        process = Mock(pid=42)
        process.poll.return_value = 0
        token = CancellationToken()
        token.cancel()
        self.assertIsNone(ClaudeCodeRunner(timeout=30)._wait(process, token))


@unittest.skipIf(sys.platform.startswith("win"), "requires a POSIX shell")
class TestProcessExecution(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def make_script(self, body: str, name: str = "claude") -> str:
        path = self.tmp / name
        path.write_text("#!/bin/sh\n" + body + "\n", encoding="utf-8")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return str(path)

    def test_success_with_prompt_as_last_argument(self) -> None:
        # Reading stdin only finishes because the runner closes it
        script = self.make_script(
            'cat >/dev/null\n'
            'for last; do :; done\n'
            'printf \'{"is_error":false,"result":"%s"}\' "$last"'
        )
        result = ClaudeCodeRunner(cli_path=script, model_id="haiku", timeout=10).run("hello world")
        self.assertTrue(result.ok, result.detail)
        self.assertEqual(result.message, "hello world")

    def test_array_response(self) -> None:
        script = self.make_script(
            'printf \'[{"type":"system"},{"type":"result","result":"feat: ok","is_error":false}]\''
        )
        result = ClaudeCodeRunner(cli_path=script, timeout=10).run("p")
        self.assertEqual(result.message, "feat: ok")

    def test_non_zero_exit_reports_stderr(self) -> None:
        script = self.make_script('echo "partial" ; echo "auth failed" >&2 ; exit 3')
        result = ClaudeCodeRunner(cli_path=script, timeout=10).run("p")
        self.assertEqual(result.error, ErrorKind.NON_ZERO_EXIT)
        self.assertEqual(result.detail, "CLI exited with code 3: auth failed")

    def test_non_zero_exit_falls_back_to_stdout(self) -> None:
        script = self.make_script('echo "only stdout" ; exit 2')
        result = ClaudeCodeRunner(cli_path=script, timeout=10).run("p")
        self.assertEqual(result.detail, "CLI exited with code 2: only stdout")

    def test_large_output_on_both_streams(self) -> None:
        # Both streams exceed any pipe buffer; stderr is filled first
        script = self.make_script(
            "head -c 1000000 /dev/zero | tr '\\000' e >&2\n"
            "printf '{\"result\":\"'\n"
            "head -c 1000000 /dev/zero | tr '\\000' a\n"
            "printf '\"}'"
        )
        started = time.monotonic()
        result = ClaudeCodeRunner(cli_path=script, timeout=30).run("p")
        self.assertTrue(result.ok, result.detail)
        self.assertEqual(len(result.message), 1000000)
        self.assertLess(time.monotonic() - started, 30)

    def test_timeout_kills_process(self) -> None:
        pid_file = self.tmp / "pid"
        script = self.make_script(f'echo $$ > "{pid_file}"\nexec sleep 30')
        started = time.monotonic()
        result = ClaudeCodeRunner(cli_path=script, timeout=1).run("p")
        elapsed = time.monotonic() - started
        self.assertEqual(result.error, ErrorKind.TIMEOUT)
        self.assertEqual(result.detail, "CLI did not finish within 1 seconds")
        self.assertLess(elapsed, 10)
        pid = int(pid_file.read_text().strip())
        with self.assertRaises(ProcessLookupError):
            os.kill(pid, 0)

    def test_cancellation_stops_process(self) -> None:
        script = self.make_script("exec sleep 30")
        token = CancellationToken()
        timer = threading.Timer(0.3, token.cancel)
        timer.start()
        started = time.monotonic()
        try:
            result = ClaudeCodeRunner(cli_path=script, timeout=30).run("p", token=token)
        finally:
            timer.cancel()
        self.assertEqual(result.error, ErrorKind.CANCELLED)
        self.assertLess(time.monotonic() - started, 10)

    def test_non_executable_file(self) -> None:
        path = self.tmp / "claude"
        path.write_text("#!/bin/sh\n", encoding="utf-8")
        path.chmod(0o644)
        result = ClaudeCodeRunner(cli_path=str(path)).run("p")
        self.assertEqual(result.error, ErrorKind.EXECUTABLE_NOT_FOUND)

    def test_output_read_timeout(self) -> None:
        script = self.make_script('printf \'{"result":"x"}\'')
        with patch.object(cli_runner._StreamDrain, "result", side_effect=FutureTimeoutError()):
            result = ClaudeCodeRunner(cli_path=script, timeout=10).run("p")
        self.assertEqual(result.error, ErrorKind.OUTPUT_READ_ERROR)
        self.assertEqual(result.detail, "Failed to read CLI output: timed out")

    def test_malformed_output(self) -> None:
        script = self.make_script("echo 'Thinking...'")
        result = ClaudeCodeRunner(cli_path=script, timeout=10).run("p")
        self.assertEqual(result.error, ErrorKind.MALFORMED_RESPONSE)


if __name__ == "__main__":
    unittest.main()
