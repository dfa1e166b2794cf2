"""
Version control system (VCS) integration.

This package contains the Git client used by the splitting engine. It
exposes methods for detecting the repository root, listing changed
files, producing diffs, staging, unstaging, and committing.
"""

from .git_client import GitClient  # noqa: F401
