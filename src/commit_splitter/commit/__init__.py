"""
Commit execution.

See :mod:`commit_splitter.commit.executor` for the staging choreography
used to turn a plan into commits.
"""

from .executor import CommitExecutor  # noqa: F401
