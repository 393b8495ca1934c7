"""
Command line interface for the vc_ai_commits tool.

This module defines the ``main`` command group used as the entry point
of the ``aicommits`` command. ``generate`` prints a commit message for
the current changes, ``commit`` reviews the message interactively and
commits it, and ``verify`` checks the configured model backend. Exit
codes are listed below.
"""

from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import click

from vc_ai_commits import __version__
from vc_ai_commits.config.loader import ConfigError, load_config
from vc_ai_commits.config.settings import PromptSettings
from vc_ai_commits.llm.backends import LlmBackend, create_backend
from vc_ai_commits.llm.results import ErrorKind, GenerationResult
from vc_ai_commits.llm.verification import verify_configuration
from vc_ai_commits.prompt.builder import PromptBuilder
from vc_ai_commits.prompt.context_model import ActiveTask
from vc_ai_commits.service.credentials import EnvironmentCredentialStore
from vc_ai_commits.service.generation import CommitMessageService
from vc_ai_commits.service.notifications import NotificationKind, NotificationSink
from vc_ai_commits.vcs.change_model import Change
from vc_ai_commits.vcs.git_client import GitClient
from vc_ai_commits.vcs.provider import VCS_ERRORS, VcsProvider
from vc_ai_commits.vcs.svn_client import SVNClient

# Module-level logger with a null handler; logging is configured by the
# command group when the CLI runs.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_LLM_FAILURE = 7
EXIT_DECLINED = 8


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Simple progress indicator for user feedback on stderr."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = None

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"⠋ {self.message}...", nl=False, err=True)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        elapsed = time.time() - self.start_time
        mark = "✓" if exc_type is None else "✗"
        click.echo(f"\r{mark} {self.message} (took {elapsed:.1f}s)", err=True)
        return False


def print_info(message: str, indent: int = 0):
    """Print an info message."""
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=True)


def print_success(message: str, indent: int = 0):
    """Print a success message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    """Print a warning message."""
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    """Print an error message."""
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


class TerminalNotificationSink(NotificationSink):
    """Show advisories as terminal warnings."""

    def send(self, kind: NotificationKind) -> None:
        logger.debug("Advisory: %s", kind.value)
        print_warning(kind.text)


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def detect_repository_root(start_dir: Path) -> Path:
    """Find the Git or SVN repository containing ``start_dir``.

    Raises
    ------
    click.exceptions.Exit
        With EXIT_NO_REPO if no repository is found or if both Git and SVN
        metadata are found.
    """
    git_root = GitClient.find_repo_root(start_dir)
    svn_root = SVNClient.find_repo_root(start_dir)

    if git_root and svn_root:
        print_error(f"Both Git and SVN repository metadata found for {start_dir}; ambiguous repository.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    if git_root:
        return git_root
    if svn_root:
        return svn_root
    print_error(f"No Git or SVN repository found at {start_dir} or its parent directories.")
    raise click.exceptions.Exit(EXIT_NO_REPO)


def build_provider(repos: Sequence[Path]) -> VcsProvider:
    """Build the provider for ``repos`` (or the current directory)."""
    starts = list(repos) or [Path.cwd()]
    roots: List[Path] = []
    for start in starts:
        root = detect_repository_root(start)
        if root not in roots:
            roots.append(root)
    provider = VcsProvider.for_roots(roots)
    for root in provider.roots:
        print_success(f"Found {provider.vcs_name(root).upper()} repository at: {root}")
    return provider


def load_configuration(config_path: Optional[Path]) -> Dict:
    try:
        return load_config(config_path)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)


def build_backend(config: Dict) -> LlmBackend:
    try:
        return create_backend(config, EnvironmentCredentialStore())
    except ValueError as exc:
        print_error(f"Configuration error: {exc}")
        raise click.exceptions.Exit(EXIT_CONFIG_ERROR)


def collect_changes(provider: VcsProvider) -> List[Change]:
    try:
        with ProgressIndicator("Scanning for modified files"):
            changes = provider.changes()
    except VCS_ERRORS as exc:
        print_error(f"VCS error: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    print_info(f"Found {len(changes)} changed file{'s' if len(changes) != 1 else ''}")
    return changes


def build_task(
    task_id: Optional[str],
    summary: Optional[str],
    description: Optional[str],
    time_spent: int,
) -> Optional[ActiveTask]:
    if not task_id:
        return None
    return ActiveTask(id=task_id, summary=summary or "", description=description, time_spent=time_spent)


def run_generation(
    config: Dict,
    provider: VcsProvider,
    changes: List[Change],
    hint: Optional[str],
    task: Optional[ActiveTask],
    amend: bool,
) -> str:
    """Generate the message or exit with the matching code."""
    backend = build_backend(config)
    builder = PromptBuilder(provider, PromptSettings.from_config(config), TerminalNotificationSink())
    print_info(f"Backend: {backend.describe()}")

    with CommitMessageService(builder, backend) as service:
        with ProgressIndicator("Generating commit message (this may take a moment)"):
            job = service.start_generation(changes, hint=hint, task=task, amend=amend)
            result: GenerationResult = job.result()

    if result.error is ErrorKind.EMPTY_DIFF:
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    if not result.ok:
        print_error(f"Generation failed ({result.error.value}): {result.detail}")
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
    return result.message.strip()


def edit_message(message: str) -> str:
    """Let the user edit ``message`` in $EDITOR or line by line."""
    editor = os.environ.get("EDITOR")
    if editor:
        print_info("Opening editor...")
        with tempfile.NamedTemporaryFile(mode="w+", delete=False, suffix=".txt", encoding='utf-8') as tmp:
            tmp.write(message)
            tmp_path = tmp.name
        try:
            subprocess.run([editor, tmp_path], check=True)
            with open(tmp_path, 'r', encoding='utf-8') as f:
                edited = f.read().strip()
        except (OSError, subprocess.CalledProcessError) as e:
            print_error(f"Editor failed: {e}")
            edited = ""
        finally:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
    else:
        click.echo("\n   💡 No EDITOR environment variable set.")
        click.echo("   Enter your commit message below.")
        click.echo("   End with a line containing only a period (.)")
        lines: List[str] = []
        while True:
            line = click.prompt("   ", default="", show_default=False)
            if line.strip() == ".":
                break
            lines.append(line)
        edited = "\n".join(lines).strip()

    if not edited:
        print_warning("Empty message, using original")
        return message
    print_success("Message edited successfully")
    return edited


def prompt_user(message: str) -> Optional[str]:
    """Ask the user to accept, edit or decline ``message``.

    Returns the final message, or ``None`` if declined.
    """
    click.echo("\n💬 Proposed commit message:")
    click.echo("   ┌" + "─" * 56 + "┐")
    for line in message.splitlines():
        display_line = line[:54]
        click.echo(f"   │ {display_line.ljust(54)} │")
    click.echo("   └" + "─" * 56 + "┘")

    choice = click.prompt(
        "   Choose action",
        type=click.Choice(['A', 'E', 'D', 'a', 'e', 'd'], case_sensitive=False),
        default='A',
        show_choices=True,
        show_default=True,
    ).strip().lower()

    if choice == 'd':
        print_warning("Declined commit message")
        return None
    if choice == 'e':
        return edit_message(message)
    print_success("Accepted commit message")
    return message


def commit_changes(provider: VcsProvider, changes: List[Change], message: str, amend: bool) -> List[Path]:
    """Commit ``changes`` with ``message`` in each repository they touch.

    When amending, Git repositories without working changes still get
    their last commit reworded. Other repositories left with nothing to
    commit (e.g. only externals or submodules changed) are skipped.

    Returns
    -------
    List[Path]
        The roots that were committed.

    Raises
    ------
    GitError, SVNError
        If a commit fails. Roots committed before the failure are reported
        first; they are not rolled back.
    """
    grouped = provider.changes_grouped_by_root(changes)
    if amend:
        for root in provider.roots:
            if root not in grouped and isinstance(provider.client_for(root), GitClient):
                grouped[root] = []

    committed: List[Path] = []
    for root, root_changes in grouped.items():
        client = provider.client_for(root)
        files = [change.path for change in root_changes if not change.is_submodule]
        is_git = isinstance(client, GitClient)
        if not files and not (is_git and amend):
            print_warning(f"Nothing to commit in {root}; skipping")
            continue
        try:
            with ProgressIndicator(f"Committing {len(files)} file(s) in {root}"):
                if is_git:
                    if files:
                        client.stage_files(files)
                    client.commit(message, amend=amend)
                else:
                    statuses = {change.path: change.status for change in root_changes}
                    client.stage_files(files, statuses=statuses)
                    client.commit(message, files)
        except VCS_ERRORS:
            if committed:
                print_warning("Already committed before the failure:")
                for done in committed:
                    print_info(str(done), indent=1)
            raise
        committed.append(root)
    return committed


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

_repo_option = click.option(
    "--repo", "repos", multiple=True, type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Repository (or a directory inside one) to include; may be repeated. Defaults to the current directory.",
)
_hint_option = click.option("--hint", help="Free-text guidance for the generated message.")
_amend_option = click.option("--amend", is_flag=True, help="Include the changes of the last commit.")


def _task_options(func):
    func = click.option("--task-time-spent", type=int, default=0, show_default=True,
                        help="Seconds spent on the active task.")(func)
    func = click.option("--task-description", help="Description of the active task.")(func)
    func = click.option("--task-summary", help="Summary of the active task.")(func)
    func = click.option("--task-id", help="Identifier of the active task.")(func)
    return func


@click.group()
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              help="Configuration file (default: ~/.aicommits/config.json).")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="aicommits")
@click.pass_context
def main(ctx: click.Context, config_path: Optional[Path], verbose: bool) -> None:
    """🚀 AI-written commit messages for Git and SVN changes."""
    # force=True reconfigures handlers on repeated invocations (tests)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    # Module loggers start detached; route them to the root handlers now
    for name, item in logging.root.manager.loggerDict.items():
        if name.startswith("vc_ai_commits") and isinstance(item, logging.Logger):
            item.propagate = True
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@main.command()
@_repo_option
@_hint_option
@_amend_option
@_task_options
@click.pass_context
def generate(
    ctx: click.Context,
    repos: Tuple[Path, ...],
    hint: Optional[str],
    amend: bool,
    task_id: Optional[str],
    task_summary: Optional[str],
    task_description: Optional[str],
    task_time_spent: int,
) -> None:
    """Print a commit message for the current changes."""
    provider = build_provider(repos)
    config = load_configuration(ctx.obj.get("config_path"))
    changes = collect_changes(provider)
    task = build_task(task_id, task_summary, task_description, task_time_spent)
    message = run_generation(config, provider, changes, hint, task, amend)
    click.echo(message)


@main.command()
@_repo_option
@_hint_option
@_amend_option
@_task_options
@click.option("--yes", "yes", is_flag=True, help="Commit the generated message without prompting.")
@click.pass_context
def commit(
    ctx: click.Context,
    repos: Tuple[Path, ...],
    hint: Optional[str],
    amend: bool,
    task_id: Optional[str],
    task_summary: Optional[str],
    task_description: Optional[str],
    task_time_spent: int,
    yes: bool,
) -> None:
    """Generate a commit message, review it, and commit the changes."""
    provider = build_provider(repos)
    config = load_configuration(ctx.obj.get("config_path"))
    changes = collect_changes(provider)
    task = build_task(task_id, task_summary, task_description, task_time_spent)
    message = run_generation(config, provider, changes, hint, task, amend)

    final_message = message if yes else prompt_user(message)
    if final_message is None:
        raise click.exceptions.Exit(EXIT_DECLINED)

    try:
        committed = commit_changes(provider, changes, final_message, amend)
    except VCS_ERRORS as exc:
        print_error(f"Failed to commit changes: {exc}")
        raise click.exceptions.Exit(EXIT_VCS_FAILURE)
    if not committed:
        print_warning("Nothing was committed")
        raise click.exceptions.Exit(EXIT_NO_CHANGES)
    print_success("Changes committed")


@main.command()
@click.pass_context
def verify(ctx: click.Context) -> None:
    """Check that the configured model backend answers."""
    config = load_configuration(ctx.obj.get("config_path"))
    backend = build_backend(config)
    print_info(f"Backend: {backend.describe()}")
    with ProgressIndicator("Running verification prompt"):
        status = verify_configuration(backend)
    click.echo(f"{status.symbol} {status.text}")
    if not status.ok:
        raise click.exceptions.Exit(EXIT_LLM_FAILURE)
