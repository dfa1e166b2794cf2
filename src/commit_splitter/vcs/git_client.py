"""
Git client implementation for commit_splitter.

This module wraps the Git operations the splitting engine needs: listing
changed files in the working tree or the index, producing diffs and
diff statistics, staging, unstaging and committing. All subprocess
calls go through :meth:`GitClient._run` so that unit tests can mock
them easily. Failures are raised as :class:`GitOperationError`.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Iterable, List, Optional

from commit_splitter.errors import GitOperationError
from commit_splitter.grouping.group_model import ChangeMode


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


LOCK_FILE_NAMES = {"package-lock.json", "pnpm-lock.yaml"}


def is_lock_file(path: str) -> bool:
    """Return True for dependency lock files, whose diffs are noise for grouping."""
    name = path.rsplit("/", 1)[-1]
    return name in LOCK_FILE_NAMES or name.endswith(".lock")


def _split_lines(output: str) -> List[str]:
    return [line for line in output.splitlines() if line.strip()]


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitOperationError
            If git cannot be started, or the command exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as exc:
            logger.error("Failed to run git: %s", exc)
            raise GitOperationError(f"Failed to run git: {exc}") from exc

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitOperationError(
                result.stderr.strip() or result.stdout.strip() or f"git {args[0]} failed"
            )
        return result

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------
    def list_changed_files(
        self, mode: ChangeMode, include_untracked: bool = False
    ) -> List[str]:
        """List changed files relative to the repository root.

        Parameters
        ----------
        mode : ChangeMode
            ``INDEX`` lists staged files; ``WORKING_TREE`` lists files
            with unstaged modifications.
        include_untracked : bool, optional
            In working-tree mode, also list untracked files that are not
            ignored.

        Renames are reported as a deletion plus an addition so that both
        paths can be staged and unstaged independently.
        """
        if mode == ChangeMode.INDEX:
            result = self._run(["diff", "--cached", "--name-only", "--no-renames"])
            return _split_lines(result.stdout)

        files = _split_lines(self._run(["diff", "--name-only", "--no-renames"]).stdout)
        if include_untracked:
            untracked = self._run(["ls-files", "--others", "--exclude-standard"])
            known = set(files)
            files.extend(path for path in _split_lines(untracked.stdout) if path not in known)
        return files

    def partially_staged_files(self) -> List[str]:
        """Return files that have both staged and unstaged changes."""
        staged = _split_lines(self._run(["diff", "--cached", "--name-only", "--no-renames"]).stdout)
        unstaged = set(_split_lines(self._run(["diff", "--name-only", "--no-renames"]).stdout))
        return [path for path in staged if path in unstaged]

    def submodule_paths(self) -> List[str]:
        """Return the paths declared in ``.gitmodules``, or an empty list."""
        if not (self.repo_root / ".gitmodules").exists():
            return []
        result = self._run(
            ["config", "--file", ".gitmodules", "--get-regexp", "path"], check=False
        )
        if result.returncode != 0:
            return []
        paths = []
        for line in _split_lines(result.stdout):
            parts = line.split(None, 1)
            if len(parts) == 2:
                paths.append(parts[1].strip().rstrip("/"))
        return paths

    # ------------------------------------------------------------------
    # Diffs
    # ------------------------------------------------------------------
    def _diff_args(self, files: Iterable[str], staged: bool) -> List[str]:
        files = list(files)
        args = ["diff"]
        if staged:
            args.append("--cached")
        args.append("--diff-algorithm=minimal")
        # Lock files are only kept when nothing else is in the diff
        if any(not is_lock_file(path) for path in files):
            files = [path for path in files if not is_lock_file(path)]
        return args + ["--"] + files

    def diff(self, files: Iterable[str], staged: bool = False) -> str:
        """Return the unified diff of ``files``, without lock file contents."""
        files = list(files)
        if not files:
            return ""
        return self._run(self._diff_args(files, staged)).stdout

    def diff_stat(self, files: Iterable[str], staged: bool = False) -> str:
        """Return the ``git diff --stat`` summary of ``files``."""
        files = list(files)
        if not files:
            return ""
        args = ["diff"]
        if staged:
            args.append("--cached")
        return self._run(args + ["--stat", "--"] + files).stdout

    # ------------------------------------------------------------------
    # Index and commits
    # ------------------------------------------------------------------
    def stage(self, files: Iterable[str]) -> None:
        """Stage the given files.

        Files present on disk are added with ``git add``; deleted files are
        removed from the index with ``git rm --cached``, which is a no-op
        when the deletion is already staged.
        """
        files = list(files)
        if not files:
            return
        present = [path for path in files if (self.repo_root / path).exists()]
        deleted = [path for path in files if not (self.repo_root / path).exists()]
        if present:
            self._run(["add", "--"] + present)
        if deleted:
            self._run(["rm", "--cached", "--ignore-unmatch", "-q", "--"] + deleted)

    def unstage(self, files: Iterable[str]) -> None:
        """Remove the given files from the index, keeping working tree changes."""
        files = list(files)
        if not files:
            return
        self._run(["reset", "-q", "--"] + files)

    def commit(self, message: str) -> None:
        """Create a commit from the current index with the given message."""
        self._run(["commit", "-m", message])
