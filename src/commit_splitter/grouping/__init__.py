"""
Grouping of changed files into commits.

This package detects project boundaries in a changeset, builds the diff
payloads sent to the grouping oracle, and validates the oracle's answers
into a complete, disjoint partition of the changed files. See
:mod:`commit_splitter.grouping.boundary_detector`,
:mod:`commit_splitter.grouping.oracle_adapter` and
:mod:`commit_splitter.grouping.partition_validator` for details.
"""

from .boundary_detector import BoundaryDetector  # noqa: F401
from .group_model import (  # noqa: F401
    Boundary,
    ChangeMode,
    ChangeSet,
    CommitGroup,
    ExecutionPlan,
    ExecutionResult,
    GroupOutcome,
)
from .oracle_adapter import GroupingOracleAdapter  # noqa: F401
from .partition_validator import parse_groups, validate_partition  # noqa: F401
from .payload_builder import PayloadBuilder  # noqa: F401
