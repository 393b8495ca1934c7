"""
Execution engine for the Claude Code command line backend.

:class:`ClaudeCodeRunner` turns a prompt into a :class:`GenerationResult`
by running the ``claude`` executable:

1. Resolve the executable: the configured path verbatim, or a
   ``which``/``where`` lookup on PATH.
2. Spawn it with JSON output requested and the prompt as the last
   argument. Stdin is closed right away because the CLI would otherwise
   wait for input.
3. Drain stdout and stderr on two threads at once. Reading one stream
   after the other can deadlock once the child fills the pipe buffer of
   the stream nobody is reading.
4. Wait for the exit, bounded by the configured timeout. On timeout (or
   cancellation) the process is killed and any partial output is
   discarded.
5. Check the exit code and parse the JSON response.

Runtime failures are returned as failed results and never raised.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
import time
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, List, Optional

from vc_ai_commits.config.settings import DEFAULT_CLI_TIMEOUT, ClaudeCodeSettings
from vc_ai_commits.llm.response_parser import parse_cli_response
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.service.cancellation import CancellationToken


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False

DEFAULT_EXECUTABLE = "claude"
OUTPUT_FORMAT_ARGS = ["-p", "--output-format", "json"]
DETECT_TIMEOUT = 10
# Bound on collecting the drained output once the process has exited.
DRAIN_JOIN_TIMEOUT = 5.0
CANCEL_POLL_INTERVAL = 0.1
_CHUNK_SIZE = 64 * 1024


class CliNotFoundError(Exception):
    """Raised when the CLI executable cannot be resolved."""

    pass


class _StreamDrain:
    """Read one pipe to EOF on a daemon thread and expose it as a future."""

    def __init__(self, stream: IO[bytes], name: str) -> None:
        self._stream = stream
        self._cancelled = threading.Event()
        self.future: Future = Future()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> "_StreamDrain":
        self._thread.start()
        return self

    def cancel(self) -> None:
        self._cancelled.set()
        self.future.cancel()

    def result(self, timeout: float) -> str:
        data = self.future.result(timeout=timeout)
        return data.decode("utf-8", errors="replace")

    def _run(self) -> None:
        if not self.future.set_running_or_notify_cancel():
            self._stream.close()
            return
        chunks: List[bytes] = []
        try:
            while not self._cancelled.is_set():
                chunk = self._stream.read1(_CHUNK_SIZE)
                if not chunk:
                    break
                chunks.append(chunk)
        except (OSError, ValueError) as exc:
            self.future.set_exception(exc)
        else:
            self.future.set_result(b"".join(chunks))
        finally:
            self._stream.close()


@contextmanager
def _spawned(command: List[str]) -> Iterator[subprocess.Popen]:
    """Start ``command`` and guarantee it is killed and reaped on exit."""
    process = subprocess.Popen(
        command,
        stdin=subprocess.PIPE,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
    )
    try:
        process.stdin.close()
        yield process
    finally:
        if process.poll() is None:
            logger.debug("Killing CLI process %s", process.pid)
            process.kill()
        process.wait()


@dataclass(frozen=True)
class ClaudeCodeRunner:
    """Run prompts through the ``claude`` command line tool.

    Parameters
    ----------
    cli_path : str
        Path to the executable. Blank means auto-detect on PATH.
    model_id : str
        Model passed with ``--model``; blank leaves the CLI default.
    timeout : int
        Seconds to wait for the process before killing it.
    """

    cli_path: str = ""
    model_id: str = ""
    timeout: int = DEFAULT_CLI_TIMEOUT
    executable_name: str = DEFAULT_EXECUTABLE

    @classmethod
    def from_settings(cls, settings: ClaudeCodeSettings) -> "ClaudeCodeRunner":
        return cls(cli_path=settings.cli_path, model_id=settings.model_id, timeout=settings.timeout)

    # ------------------------------------------------------------------
    # Path resolution
    # ------------------------------------------------------------------
    def detect_cli_path(self) -> str:
        """Locate the executable on PATH.

        Raises
        ------
        CliNotFoundError
            If the lookup fails, exits non-zero, or prints nothing.
        """
        finder = "where" if platform.system() == "Windows" else "which"
        command = [finder, self.executable_name]
        logger.debug("Detecting CLI path with: %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                timeout=DETECT_TIMEOUT,
            )
        except (OSError, subprocess.SubprocessError) as exc:
            logger.error("CLI lookup failed: %s", exc)
            raise CliNotFoundError(
                f"Could not find the '{self.executable_name}' executable on PATH"
            ) from exc

        output = result.stdout.strip()
        if result.returncode != 0 or not output:
            raise CliNotFoundError(f"Could not find the '{self.executable_name}' executable on PATH")
        return output.splitlines()[0].strip()

    def resolve_cli_path(self) -> str:
        """Return the configured path, or the detected one when blank.

        Raises
        ------
        CliNotFoundError
            If no path is found or it is not an executable file.
        """
        path = self.cli_path if self.cli_path.strip() else self.detect_cli_path()
        if not Path(path).is_file() or not os.access(path, os.X_OK):
            raise CliNotFoundError(f"CLI executable not found or not executable: {path}")
        return path

    def build_command(self, path: str, prompt: str) -> List[str]:
        command = [path, *OUTPUT_FORMAT_ARGS]
        if self.model_id.strip():
            command += ["--model", self.model_id]
        command.append(prompt)
        return command

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    def _wait(
        self, process: subprocess.Popen, token: Optional[CancellationToken]
    ) -> Optional[GenerationResult]:
        """Wait for exit; return a failure on timeout or cancellation.

        Without a token the process is waited on directly. With one, the
        token is waited on in short slices between exit checks so that a
        cancellation is seen within :data:`CANCEL_POLL_INTERVAL`.
        """
        deadline = time.monotonic() + self.timeout
        while process.poll() is None:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning("CLI process %s timed out after %ss", process.pid, self.timeout)
                return GenerationResult.failure(
                    ErrorKind.TIMEOUT, f"CLI did not finish within {self.timeout} seconds"
                )
            if token is None:
                try:
                    process.wait(timeout=remaining)
                except subprocess.TimeoutExpired:
                    pass
                continue
            if token.wait(min(remaining, CANCEL_POLL_INTERVAL)):
                logger.info("Generation cancelled; stopping CLI process %s", process.pid)
                return GenerationResult.failure(ErrorKind.CANCELLED, "Generation was cancelled")
        return None

    def run(self, prompt: str, token: Optional[CancellationToken] = None) -> GenerationResult:
        """Execute ``prompt`` and return the parsed result."""
        try:
            path = self.resolve_cli_path()
        except CliNotFoundError as exc:
            return GenerationResult.failure(ErrorKind.EXECUTABLE_NOT_FOUND, str(exc))

        command = self.build_command(path, prompt)
        logger.debug("Executing CLI command: %s <prompt>", " ".join(command[:-1]))
        try:
            with _spawned(command) as process:
                stdout = _StreamDrain(process.stdout, "cli-stdout").start()
                stderr = _StreamDrain(process.stderr, "cli-stderr").start()

                interrupted = self._wait(process, token)
                if interrupted is not None:
                    stdout.cancel()
                    stderr.cancel()
                    return interrupted

                try:
                    output = stdout.result(DRAIN_JOIN_TIMEOUT)
                    errors = stderr.result(DRAIN_JOIN_TIMEOUT)
                except (FutureTimeoutError, OSError, ValueError) as exc:
                    stdout.cancel()
                    stderr.cancel()
                    logger.error("Failed to read CLI output: %s", exc)
                    return GenerationResult.failure(
                        ErrorKind.OUTPUT_READ_ERROR, f"Failed to read CLI output: {str(exc) or 'timed out'}"
                    )
                returncode = process.returncode
        except OSError as exc:
            logger.error("Failed to start CLI %s: %s", path, exc)
            return GenerationResult.failure(ErrorKind.SPAWN_ERROR, f"Failed to start {path}: {exc}")

        if returncode != 0:
            detail = errors.strip() or output.strip()
            logger.error("CLI exited with code %s: %s", returncode, detail)
            return GenerationResult.failure(
                ErrorKind.NON_ZERO_EXIT, f"CLI exited with code {returncode}: {detail}"
            )
        return parse_cli_response(output)
