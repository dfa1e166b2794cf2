"""
Replay of an execution plan as a sequence of commits.

Groups are committed strictly in plan order. Files staged before the run
that are not part of the plan (for example staged files outside a
``--scope``) are unstaged first and staged again once the run is over,
so that no commit picks them up. In working-tree mode every staged file
is set aside that way, and each group's files are then staged and
committed in turn. In index mode all plan files start out staged
together, and the git index has no way to reserve part of its content
for a later commit, so each iteration:

1. unstages every file that is neither committed yet nor in the group;
2. stages the group's files;
3. commits;
4. re-stages every file not committed yet.

A failing git command stops the loop. Commits already created are kept
and the index is left as it was at the failure; the returned
:class:`ExecutionResult` tells which groups made it.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional

from commit_splitter.errors import GitOperationError, PartialStagingWarning
from commit_splitter.grouping.group_model import (
    ChangeMode,
    ExecutionPlan,
    ExecutionResult,
    GroupOutcome,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


ConfirmCallback = Callable[[List[str]], bool]
GroupCallback = Callable[[int, int, GroupOutcome], None]


class CommitExecutor:
    """Execute plans against a git client.

    Parameters
    ----------
    client : GitClient
        Any object implementing ``list_changed_files``, ``stage``,
        ``unstage``, ``commit`` and ``partially_staged_files``.
    on_group : Callable[[int, int, GroupOutcome], None], optional
        Called after each group with its 1-based index, the group count,
        and its outcome.
    """

    def __init__(self, client, on_group: Optional[GroupCallback] = None) -> None:
        self.client = client
        self._on_group = on_group

    def check_partial_staging(
        self,
        plan: ExecutionPlan,
        confirm: Optional[ConfirmCallback] = None,
        outside: Iterable[str] = (),
    ) -> List[str]:
        """Gate runs that would overwrite partial staging.

        Index-mode plan files are staged whole when committed, and files
        in ``outside`` are staged whole again after the run; either way
        their hunk-level staging is lost.

        Returns the affected partially staged files when ``confirm``
        accepts them (or there are none).

        Raises
        ------
        PartialStagingWarning
            If such files exist and ``confirm`` is missing or declines.
        """
        guarded = set(outside)
        if plan.mode == ChangeMode.INDEX:
            guarded.update(plan.files)
        if not guarded:
            return []
        partial = [path for path in self.client.partially_staged_files() if path in guarded]
        if not partial:
            return []
        logger.warning("%d partially staged files would be restaged: %s", len(partial), partial)
        if confirm is None or not confirm(partial):
            raise PartialStagingWarning(partial)
        return partial

    def execute(
        self, plan: ExecutionPlan, confirm_partial: Optional[ConfirmCallback] = None
    ) -> ExecutionResult:
        """Commit every group of ``plan`` in order.

        Parameters
        ----------
        plan : ExecutionPlan
            The groups to commit. Validated before anything is touched.
        confirm_partial : Callable[[List[str]], bool], optional
            Asked to confirm before partially staged files are restaged.

        Raises
        ------
        ValidationError
            If the plan does not cover its files exactly once.
        PartialStagingWarning
            If partial staging was not confirmed.
        GitOperationError
            If the staged files outside the plan cannot be set aside.
        """
        plan.validate()
        staged = self.client.list_changed_files(ChangeMode.INDEX)
        universe = set(plan.files)
        outside = [path for path in staged if path not in universe]
        self.check_partial_staging(plan, confirm_partial, outside)

        result = ExecutionResult(
            outcomes=[GroupOutcome(group=group) for group in plan.groups],
            set_aside=outside,
        )
        held = list(staged) if plan.mode == ChangeMode.WORKING_TREE else outside
        if held:
            logger.info("Unstaging %d files before committing", len(held))
            self.client.unstage(held)

        try:
            self._run_groups(plan, result)
        finally:
            if outside:
                try:
                    self.client.stage(outside)
                except GitOperationError as exc:
                    logger.error("Could not restage %d files: %s", len(outside), exc)
                    result.restore_error = str(exc)
        return result

    def _run_groups(self, plan: ExecutionPlan, result: ExecutionResult) -> None:
        committed: set = set()
        total = len(plan.groups)
        for index, outcome in enumerate(result.outcomes, start=1):
            try:
                self._commit_group(plan, outcome, committed)
            except GitOperationError as exc:
                logger.error("Commit group %d/%d failed: %s", index, total, exc)
                outcome.error = str(exc)
                self._notify(index, total, outcome)
                break
            logger.info("Committed %d/%d: %s", index, total, outcome.group.message.splitlines()[0])
            self._notify(index, total, outcome)

    def _commit_group(self, plan: ExecutionPlan, outcome: GroupOutcome, committed: set) -> None:
        group = outcome.group
        if plan.mode == ChangeMode.INDEX:
            in_group = set(group.files)
            self.client.unstage(
                [path for path in plan.files if path not in committed and path not in in_group]
            )
        self.client.stage(group.files)
        self.client.commit(group.message)
        outcome.committed = True
        committed.update(group.files)
        if plan.mode == ChangeMode.INDEX:
            remaining = [path for path in plan.files if path not in committed]
            if remaining:
                self.client.stage(remaining)

    def _notify(self, index: int, total: int, outcome: GroupOutcome) -> None:
        if self._on_group is not None:
            self._on_group(index, total, outcome)
