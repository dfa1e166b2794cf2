"""
Exception types shared across commit_splitter.

The CLI distinguishes these classes to pick an exit code and to decide
whether a failure is local to one boundary (absorbed and downgraded to a
catch-all group) or fatal for the rest of a commit plan.
"""

from __future__ import annotations

from typing import List, Optional


class SplitterError(Exception):
    """Base class for all commit_splitter errors."""


class ConfigError(SplitterError):
    """Raised when the configuration file is missing or invalid."""


class ValidationError(SplitterError):
    """Raised for user input problems such as an empty changeset or
    conflicting options. No commit is attempted after this error."""


class ExternalServiceError(SplitterError):
    """Raised when the classification service times out, cannot be reached,
    or answers with something that cannot be parsed."""


class GitOperationError(SplitterError):
    """Raised when a git command exits with a non-zero status."""


class PartialStagingWarning(SplitterError):
    """Confirmation gate for splitting an index that holds partially staged files.

    Committing such a file stages all of its remaining hunks, so the
    hunk-level staging the user made is lost. The executor raises this
    when no confirmation was given.
    """

    def __init__(self, files: List[str], message: Optional[str] = None) -> None:
        self.files = list(files)
        if message is None:
            noun = "file is" if len(self.files) == 1 else "files are"
            message = (
                f"{len(self.files)} {noun} partially staged; committing will "
                f"stage all of their changes: {', '.join(self.files)}"
            )
        super().__init__(message)
