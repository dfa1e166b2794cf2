"""
Sequencing of a split run.

:class:`SplitOrchestrator` ties the pieces together: it collects the
changeset from git, detects boundaries, asks the oracle for groups,
builds the execution plan and hands it to the executor. It has no
console dependency; progress is reported as :class:`SplitEvent` objects
to an optional listener, which the CLI renders.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from commit_splitter.commit.executor import CommitExecutor, ConfirmCallback
from commit_splitter.config.loader import SplitSettings
from commit_splitter.errors import ValidationError
from commit_splitter.grouping.boundary_detector import BoundaryDetector
from commit_splitter.grouping.group_model import (
    Boundary,
    ChangeMode,
    ChangeSet,
    CommitGroup,
    ExecutionPlan,
    ExecutionResult,
    GroupOutcome,
)
from commit_splitter.grouping.oracle_adapter import GroupingOracleAdapter
from commit_splitter.grouping.payload_builder import PayloadBuilder


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


CHANGES_DETECTED = "changes_detected"
BOUNDARIES_DETECTED = "boundaries_detected"
BOUNDARY_STARTED = "boundary_started"
GROUPS_PROPOSED = "groups_proposed"
ORACLE_FAILED = "oracle_failed"
GROUP_COMMITTED = "group_committed"
GROUP_FAILED = "group_failed"


@dataclass
class SplitEvent:
    """A progress notification for the presentation layer."""

    kind: str
    message: str = ""
    boundaries: List[Boundary] = field(default_factory=list)
    groups: List[CommitGroup] = field(default_factory=list)
    outcome: Optional[GroupOutcome] = None
    error: Optional[str] = None
    index: int = 0
    total: int = 0


Listener = Callable[[SplitEvent], None]


def filter_scope(files: List[str], scope: str) -> List[str]:
    """Keep the files equal to ``scope`` or located under it."""
    scope = scope.strip().rstrip("/")
    if scope in ("", "."):
        return list(files)
    return [path for path in files if path == scope or path.startswith(scope + "/")]


class SplitOrchestrator:
    """Run boundary detection, grouping and commit execution in sequence.

    Parameters
    ----------
    client : GitClient
        Git collaborator.
    oracle : OllamaGroupingOracle, optional
        Grouping oracle; only needed by :meth:`propose_groups`.
    settings : SplitSettings, optional
        Tuning constants.
    style : str, optional
        Commit message style hint.
    listener : Callable[[SplitEvent], None], optional
        Receives progress events.
    sleep : Callable[[float], None], optional
        Used between oracle calls.
    """

    def __init__(
        self,
        client,
        oracle=None,
        settings: Optional[SplitSettings] = None,
        style: str = "conventional",
        listener: Optional[Listener] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.oracle = oracle
        self.settings = settings or SplitSettings()
        self.style = style
        self._listener = listener
        self._sleep = sleep

    def _emit(self, event: SplitEvent) -> None:
        if self._listener is not None:
            self._listener(event)

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------
    def collect_changes(
        self,
        staged: bool = False,
        include_untracked: bool = False,
        scope: Optional[str] = None,
    ) -> ChangeSet:
        """Build the changeset of this run.

        Raises
        ------
        ValidationError
            If ``staged`` and ``include_untracked`` are combined, nothing
            changed, or nothing is left in ``scope``.
        """
        if staged and include_untracked:
            raise ValidationError(
                "--staged and --all are mutually exclusive: untracked files "
                "can only be included when splitting unstaged changes."
            )
        mode = ChangeMode.INDEX if staged else ChangeMode.WORKING_TREE
        files = self.client.list_changed_files(mode, include_untracked=include_untracked)
        if not files:
            where = "staged" if staged else "unstaged"
            raise ValidationError(f"No {where} changes found.")
        if scope:
            files = filter_scope(files, scope)
            if not files:
                raise ValidationError(f"No changes found in scope: {scope}")
        change_set = ChangeSet(files=list(dict.fromkeys(files)), mode=mode)
        self._emit(SplitEvent(CHANGES_DETECTED, f"{len(change_set)} changed files", total=len(change_set)))
        return change_set

    def detect_boundaries(self, change_set: ChangeSet) -> List[Boundary]:
        repo_root = Path(self.client.repo_root)
        detector = BoundaryDetector(repo_root, self.client.submodule_paths(), self.settings)
        boundaries = detector.detect(change_set.files)
        self._emit(SplitEvent(BOUNDARIES_DETECTED, boundaries=boundaries, total=len(boundaries)))
        return boundaries

    def _adapter(self, change_set: ChangeSet) -> GroupingOracleAdapter:
        if self.oracle is None:
            raise ValidationError("No grouping oracle configured")
        builder = PayloadBuilder(
            self.client, staged=change_set.mode == ChangeMode.INDEX, settings=self.settings
        )
        return GroupingOracleAdapter(
            self.oracle,
            builder,
            settings=self.settings,
            style=self.style,
            sleep=self._sleep,
            on_failure=lambda label, exc: self._emit(
                SplitEvent(ORACLE_FAILED, f"Grouping failed for {label}", error=str(exc))
            ),
        )

    def propose_groups(
        self,
        change_set: ChangeSet,
        flat: bool = False,
        boundaries: Optional[List[Boundary]] = None,
    ) -> List[CommitGroup]:
        """Return commit groups covering every file of ``change_set``.

        Flat mode is classified in chunks, and so is a changeset of at most
        ``boundary_threshold`` files when no ``boundaries`` are given.
        Otherwise ``boundaries`` (detected on demand when omitted) are
        classified one by one.
        """
        adapter = self._adapter(change_set)
        if flat or (boundaries is None and len(change_set) <= self.settings.boundary_threshold):
            groups = adapter.propose_flat(change_set.files)
            self._emit(SplitEvent(GROUPS_PROPOSED, "all changes", groups=groups))
            return groups

        if boundaries is None:
            boundaries = self.detect_boundaries(change_set)
        groups: List[CommitGroup] = []
        for index, boundary in enumerate(boundaries, start=1):
            self._emit(SplitEvent(BOUNDARY_STARTED, boundary.name, boundaries=[boundary],
                                  index=index, total=len(boundaries)))
            boundary_groups = adapter.propose_for_boundary(boundary)
            self._emit(SplitEvent(GROUPS_PROPOSED, boundary.name, groups=boundary_groups,
                                  index=index, total=len(boundaries)))
            groups.extend(boundary_groups)
        return groups

    def build_plan(self, change_set: ChangeSet, groups: List[CommitGroup]) -> ExecutionPlan:
        """Wrap ``groups`` in a validated plan over the whole changeset."""
        plan = ExecutionPlan(groups=list(groups), files=list(change_set.files), mode=change_set.mode)
        plan.validate()
        return plan

    def execute(
        self, plan: ExecutionPlan, confirm_partial: Optional[ConfirmCallback] = None
    ) -> ExecutionResult:
        """Commit ``plan``; see :meth:`CommitExecutor.execute`."""
        executor = CommitExecutor(self.client, on_group=self._on_group)
        return executor.execute(plan, confirm_partial=confirm_partial)

    def _on_group(self, index: int, total: int, outcome: GroupOutcome) -> None:
        kind = GROUP_FAILED if outcome.error is not None else GROUP_COMMITTED
        self._emit(SplitEvent(kind, outcome.group.message, outcome=outcome,
                              error=outcome.error, index=index, total=total))
