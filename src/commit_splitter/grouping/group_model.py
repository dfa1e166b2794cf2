"""
Data models for commit splitting.

A :class:`ChangeSet` is the universe of changed files for one run. The
:class:`Boundary` objects detected over it partition those files into
independent sub-projects, each of which is turned into one or more
:class:`CommitGroup` objects. The groups are replayed in order as an
:class:`ExecutionPlan`, and the outcome of every group is collected in an
:class:`ExecutionResult`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from commit_splitter.errors import ValidationError


class ChangeMode(str, Enum):
    """Where the changed files live when the run starts."""

    WORKING_TREE = "working-tree"
    INDEX = "index"


@dataclass
class ChangeSet:
    """The changed file paths of one invocation, relative to the repository root."""

    files: List[str]
    mode: ChangeMode = ChangeMode.WORKING_TREE

    def __len__(self) -> int:
        return len(self.files)


@dataclass
class CommitGroup:
    """Representation of one commit to be created.

    Attributes
    ----------
    message : str
        Commit message. Never empty.
    files : List[str]
        Files included in the commit, without duplicates.
    """

    message: str
    files: List[str]


@dataclass
class Boundary:
    """An independent sub-project inside a changeset.

    Attributes
    ----------
    name : str
        Directory path relative to the repository root, ``"root"`` or
        ``"misc"`` for synthetic boundaries.
    kind : str
        Ecosystem tag of the marker that identified the directory
        (``node``, ``python``...), ``"submodule"`` or ``"misc"``.
    files : List[str]
        Changed files assigned to this boundary.
    auto_group : CommitGroup, optional
        Deterministic group for boundaries that skip the oracle.
    """

    name: str
    kind: str
    files: List[str] = field(default_factory=list)
    auto_group: Optional[CommitGroup] = None

    @property
    def is_auto_grouped(self) -> bool:
        return self.auto_group is not None


@dataclass
class ExecutionPlan:
    """Ordered commit groups together with the full file universe they cover."""

    groups: List[CommitGroup]
    files: List[str]
    mode: ChangeMode = ChangeMode.WORKING_TREE

    def validate(self) -> None:
        """Check that the groups cover ``files`` exactly once.

        Raises
        ------
        ValidationError
            If a group is empty or has no message, a file is committed
            twice, a file outside the universe appears, or a file of the
            universe is left out.
        """
        universe = set(self.files)
        seen: set = set()
        for index, group in enumerate(self.groups, start=1):
            if not group.message or not group.message.strip():
                raise ValidationError(f"Commit group {index} has an empty message")
            if not group.files:
                raise ValidationError(f"Commit group {index} has no files")
            for path in group.files:
                if path not in universe:
                    raise ValidationError(f"Commit group {index} lists unknown file: {path}")
                if path in seen:
                    raise ValidationError(f"File is assigned to more than one group: {path}")
                seen.add(path)
        missing = [path for path in self.files if path not in seen]
        if missing:
            raise ValidationError(f"Files not assigned to any group: {', '.join(missing)}")


@dataclass
class GroupOutcome:
    """What happened to one group of a plan."""

    group: CommitGroup
    committed: bool = False
    error: Optional[str] = None


@dataclass
class ExecutionResult:
    """Per-group outcomes of an executed plan, in plan order.

    ``set_aside`` lists the staged files outside the plan that were kept out
    of the commits; ``restore_error`` is set when they could not be staged
    again afterwards.
    """

    outcomes: List[GroupOutcome] = field(default_factory=list)
    set_aside: List[str] = field(default_factory=list)
    restore_error: Optional[str] = None

    @property
    def committed(self) -> List[GroupOutcome]:
        return [outcome for outcome in self.outcomes if outcome.committed]

    @property
    def failed(self) -> List[GroupOutcome]:
        return [outcome for outcome in self.outcomes if outcome.error is not None]

    @property
    def skipped(self) -> List[GroupOutcome]:
        return [
            outcome
            for outcome in self.outcomes
            if not outcome.committed and outcome.error is None
        ]

    @property
    def succeeded(self) -> bool:
        return all(outcome.committed for outcome in self.outcomes)
