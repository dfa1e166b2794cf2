"""
Command line interface for the commit_splitter tool.

This module defines the ``main`` function used as the entry point of the
``aisplit`` command. It detects the repository, collects the changes,
shows the detected project boundaries, asks the grouping oracle for
commit groups, lets the user review them, and finally commits each group
in turn. Exit codes are listed below.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import List, Optional

import click

from commit_splitter import __version__
from commit_splitter.config.loader import COMMIT_TYPES, load_config, load_settings
from commit_splitter.errors import (
    ConfigError,
    GitOperationError,
    PartialStagingWarning,
    ValidationError,
)
from commit_splitter.grouping.boundary_detector import find_enclosing_boundary
from commit_splitter.grouping.group_model import Boundary, CommitGroup, ExecutionResult
from commit_splitter.llm.grouping_oracle import OllamaGroupingOracle
from commit_splitter.llm.ollama_client import OllamaClient
from commit_splitter.orchestrator import (
    BOUNDARIES_DETECTED,
    BOUNDARY_STARTED,
    GROUP_COMMITTED,
    GROUP_FAILED,
    GROUPS_PROPOSED,
    ORACLE_FAILED,
    SplitEvent,
    SplitOrchestrator,
)
from commit_splitter.vcs.git_client import GitClient

# Module-level logger with a null handler; the CLI's basicConfig call
# attaches real handlers to the root logger.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_CANCELLED = 8


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Print a start line and the elapsed time once the wrapped step is done."""

    def __init__(self, message: str) -> None:
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            elapsed = time.time() - self.start_time
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str) -> None:
    click.echo(f"\n{'=' * 60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'=' * 60}")


def print_info(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}ℹ {message}")


def print_success(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✓ {message}")


def print_warning(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}⚠ {message}")


def print_error(message: str, indent: int = 0) -> None:
    click.echo(f"{'  ' * indent}✗ {message}", err=True)


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


TYPE_ICONS = {
    "node": "📦",
    "python": "🐍",
    "rust": "🦀",
    "go": "🐹",
    "java": "☕",
    "ruby": "💎",
    "helm": "⎈",
    "docker": "🐳",
    "ansible": "🔧",
    "taskrunner": "⚙️",
    "submodule": "📎",
    "misc": "📂",
}


def format_boundary_summary(boundaries: List[Boundary]) -> str:
    """One line per boundary with its file count and kind."""
    total = sum(len(b.files) for b in boundaries)
    noun = "boundary" if len(boundaries) == 1 else "boundaries"
    lines = [f"📁 {_plural(total, 'change')} across {len(boundaries)} project {noun}:"]
    for b in boundaries:
        auto = " (auto-grouped)" if b.is_auto_grouped else ""
        lines.append(f"     {b.name.ljust(25)} ({_plural(len(b.files), 'file')}, {b.kind}){auto}")
    return "\n".join(lines)


def format_boundary_details(boundaries: List[Boundary], max_bar: int = 30) -> str:
    """Bar chart of boundary sizes with up to three sample files each."""
    total = sum(len(b.files) for b in boundaries)
    largest = max((len(b.files) for b in boundaries), default=0)
    lines: List[str] = []
    for b in boundaries:
        count = len(b.files)
        share = round(count * 100 / total) if total else 0
        bar = "█" * (max(1, round(count * max_bar / largest)) if largest else 1)
        auto = " [auto]" if b.is_auto_grouped else ""
        lines.append(f"  {TYPE_ICONS.get(b.kind, '📁')} {b.name}")
        lines.append(f"     {bar} {count:>4} files ({share}%) · {b.kind}{auto}")
        for path in b.files[:3]:
            lines.append(f"     · {path}")
        if count > 3:
            lines.append(f"     · … {count - 3} more")
        lines.append("")
    lines.append(f"  Total: {total} files across {len(boundaries)} boundaries")
    return "\n".join(lines)


def display_groups(groups: List[CommitGroup], max_files: int = 10) -> None:
    for idx, group in enumerate(groups, start=1):
        click.echo(f"\n  {click.style(f'Group {idx}:', fg='green')} {group.message}")
        shown = group.files[:max_files]
        for pos, path in enumerate(shown):
            last = pos == len(shown) - 1 and len(group.files) <= max_files
            click.echo(f"    {'└' if last else '├'} {path}")
        if len(group.files) > max_files:
            click.echo(f"    └ ... and {len(group.files) - max_files} more files")


def render_event(event: SplitEvent) -> None:
    """Print orchestrator progress events."""
    if event.kind == BOUNDARIES_DETECTED:
        click.echo(format_boundary_summary(event.boundaries))
    elif event.kind == BOUNDARY_STARTED:
        print_info(f"[{event.index}/{event.total}] Analyzing {event.message}...", indent=1)
    elif event.kind == GROUPS_PROPOSED:
        print_success(f"{event.message}: {_plural(len(event.groups), 'group')}", indent=1)
    elif event.kind == ORACLE_FAILED:
        print_warning(f"{event.message} ({event.error}); using a single commit", indent=1)
    elif event.kind == GROUP_COMMITTED:
        print_success(f"[{event.index}/{event.total}] {event.message.splitlines()[0]}")
    elif event.kind == GROUP_FAILED:
        print_error(f"[{event.index}/{event.total}] {event.message.splitlines()[0]}: {event.error}")


def review_groups(groups: List[CommitGroup]) -> Optional[List[CommitGroup]]:
    """Ask whether to commit, edit the messages, or cancel.

    Returns the groups to commit, or None when the user cancels.
    """
    click.echo("")
    choice = click.prompt(
        "   Commit all groups (C), edit messages (E), or quit (Q)?",
        type=click.Choice(["c", "e", "q"], case_sensitive=False),
        default="c",
        show_choices=False,
    ).strip().lower()
    if choice == "q":
        return None
    if choice == "c":
        return groups

    edited: List[CommitGroup] = []
    for idx, group in enumerate(groups, start=1):
        message = click.prompt(
            f"   Message for group {idx} ({_plural(len(group.files), 'file')})",
            default=group.message,
        ).strip()
        if not message:
            print_warning("Empty message, keeping the proposed one", indent=1)
            message = group.message
        edited.append(CommitGroup(message=message, files=list(group.files)))
    return edited


def confirm_partial_staging(files: List[str]) -> bool:
    print_warning(f"{_plural(len(files), 'file')} partially staged:")
    for path in files[:5]:
        click.echo(f"     · {path}")
    if len(files) > 5:
        click.echo(f"     … and {len(files) - 5} more")
    click.echo("   Proceeding will stage ALL changes of these files (partial staging is lost).")
    return click.confirm("   Continue anyway?", default=False)


def print_result(result: ExecutionResult) -> None:
    click.echo(f"\n{'=' * 60}")
    click.echo("✨ Summary")
    click.echo(f"{'=' * 60}\n")
    click.echo(f"  ✓ Committed: {_plural(len(result.committed), 'group')}")
    for outcome in result.failed:
        click.echo(f"  ✗ Failed: {outcome.group.message.splitlines()[0]} ({outcome.error})")
    if result.skipped:
        click.echo(f"  ⚠ Not committed: {_plural(len(result.skipped), 'group')}")
        for outcome in result.skipped:
            click.echo(f"     · {outcome.group.message.splitlines()[0]}")
    if result.set_aside:
        click.echo(f"  ℹ Left out of the commits and still staged: {_plural(len(result.set_aside), 'file')}")
    if result.restore_error:
        click.echo(f"  ⚠ Could not restage {', '.join(result.set_aside)}: {result.restore_error}")


def resolve_here_scope(repo_root: Path, cwd: Path) -> Optional[str]:
    """Return the project directory enclosing ``cwd`` relative to ``repo_root``."""
    try:
        relative = cwd.resolve().relative_to(repo_root.resolve())
    except ValueError:
        return None
    found = find_enclosing_boundary(repo_root, relative.as_posix())
    return found[0] if found else None


def _enable_package_logging() -> None:
    """Let module loggers propagate to the handlers installed by basicConfig."""
    for name, item in logging.root.manager.loggerDict.items():
        if name.startswith("commit_splitter") and isinstance(item, logging.Logger):
            item.propagate = True


@click.command()
@click.option("--staged", "-S", is_flag=True, help="Split the files already staged in the index.")
@click.option("--all", "-a", "include_untracked", is_flag=True, help="Include untracked files (unstaged mode only).")
@click.option("--yes", "-y", is_flag=True, help="Commit all groups without prompting.")
@click.option("--dry-run", "-d", is_flag=True, help="Show the proposed groups without committing.")
@click.option("--max-groups", "-m", type=click.IntRange(min=1), help="Maximum number of groups per boundary.")
@click.option("--scope", "-s", help="Only process changes under this directory.")
@click.option("--here", is_flag=True, help="Only process the project enclosing the current directory.")
@click.option("--scan", is_flag=True, help="Show the detected project boundaries and exit.")
@click.option("--flat", "-F", is_flag=True, help="Skip boundary detection and group all changes freely.")
@click.option("--prompt", "-p", "custom_prompt", help="Extra instructions for the grouping model.")
@click.option("--type", "-t", "commit_type", type=click.Choice(COMMIT_TYPES), help="Commit message style.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="aisplit")
def main(
    staged: bool,
    include_untracked: bool,
    yes: bool,
    dry_run: bool,
    max_groups: Optional[int],
    scope: Optional[str],
    here: bool,
    scan: bool,
    flat: bool,
    custom_prompt: Optional[str],
    commit_type: Optional[str],
    verbose: bool,
) -> None:
    """✂️  Split a large set of changes into small, logical commits using AI."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    _enable_package_logging()
    ctx = click.get_current_context(silent=True)

    click.echo("\n" + "=" * 60)
    click.echo("✂️  AI Commit Splitter".center(60))
    click.echo("=" * 60)

    total_steps = 5
    try:
        # Step 1: repository and settings
        print_step(1, total_steps, "Detecting Repository")
        if staged and include_untracked:
            print_error("--staged and --all are mutually exclusive; --all only applies to unstaged changes.")
            raise click.exceptions.Exit(EXIT_INVALID_USAGE)
        if scope and here:
            print_error("--scope and --here cannot be combined.")
            raise click.exceptions.Exit(EXIT_INVALID_USAGE)

        cwd = Path.cwd()
        repo_root = GitClient.find_repo_root(cwd)
        if repo_root is None:
            print_error("No Git repository found in current directory or parent directories.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        print_success(f"Found Git repository at: {repo_root}")

        try:
            settings = load_settings()
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        if max_groups:
            settings.max_groups = max_groups

        if here:
            scope = resolve_here_scope(repo_root, cwd)
            if scope is None:
                print_error("No project marker found between the current directory and the repository root.")
                raise click.exceptions.Exit(EXIT_INVALID_USAGE)
            print_info(f"Scope: {scope}", indent=1)

        client = GitClient(repo_root)
        orchestrator = SplitOrchestrator(client, settings=settings, listener=render_event)

        # Step 2: changes
        print_step(2, total_steps, "Analyzing Changes")
        try:
            change_set = orchestrator.collect_changes(
                staged=staged, include_untracked=include_untracked, scope=scope
            )
        except ValidationError as exc:
            print_warning(str(exc))
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        where = "staged" if staged else "changed"
        print_success(f"Found {_plural(len(change_set), f'{where} file')}")
        for path in change_set.files[:15]:
            print_info(path, indent=1)
        if len(change_set) > 15:
            print_info(f"... and {len(change_set) - 15} more", indent=1)

        if scan:
            if flat:
                print_info("Flat mode: all files would be grouped freely, without boundaries.")
                raise click.exceptions.Exit(EXIT_SUCCESS)
            print_step(3, total_steps, "Detecting Project Boundaries")
            boundaries = orchestrator.detect_boundaries(change_set)
            click.echo("")
            click.echo(format_boundary_details(boundaries))
            print_info("Run without --scan to group and commit, or use --scope <dir> to focus on one boundary.")
            raise click.exceptions.Exit(EXIT_SUCCESS)

        # Step 3: grouping
        print_step(3, total_steps, "Grouping Changes")
        try:
            config = load_config()
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        print_info(f"LLM Server: {config['base_url']}:{config['port']} ({config['model']})", indent=1)

        ollama_client = OllamaClient(
            base_url=config["base_url"],
            port=config["port"],
            model=config["model"],
            request_timeout=config["request_timeout"],
            max_tokens=config["max_tokens"],
        )
        orchestrator.oracle = OllamaGroupingOracle(
            ollama_client, locale=config["locale"], custom_prompt=custom_prompt
        )
        orchestrator.style = commit_type or config["commit_type"]

        with ProgressIndicator("Asking the model for commit groups"):
            groups = orchestrator.propose_groups(change_set, flat=flat)
        print_success(f"Grouped into {_plural(len(groups), 'commit')}")

        # Step 4: review
        print_step(4, total_steps, "Review")
        display_groups(groups)
        if dry_run:
            click.echo("\n   Dry run: no changes were made.")
            raise click.exceptions.Exit(EXIT_SUCCESS)
        if not yes:
            reviewed = review_groups(groups)
            if reviewed is None:
                print_warning("Cancelled; no changes committed.")
                raise click.exceptions.Exit(EXIT_CANCELLED)
            groups = reviewed

        # Step 5: commit
        print_step(5, total_steps, "Committing")
        plan = orchestrator.build_plan(change_set, groups)
        confirm = (lambda files: True) if yes else confirm_partial_staging
        try:
            result = orchestrator.execute(plan, confirm_partial=confirm)
        except PartialStagingWarning:
            print_warning("Cancelled; partial staging left untouched.")
            raise click.exceptions.Exit(EXIT_CANCELLED)

        print_result(result)
        if not result.succeeded:
            print_error("Stopped after a failed git operation; earlier commits were kept.")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        click.echo(f"\n🎉 All done! {_plural(len(result.committed), 'commit')} created.\n")
        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except GitOperationError as exc:
        print_error(f"Git error: {exc}")
        ctx.exit(EXIT_VCS_FAILURE)
    except ValidationError as exc:
        print_error(str(exc))
        ctx.exit(EXIT_INVALID_USAGE)
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
