"""
Turning boundaries and chunks into commit groups with the grouping oracle.

Oracle calls are made one at a time, with a fixed delay between two
consecutive calls to stay under the service's rate limit. A failing call
(unreachable service, timeout, unparsable answer) is not retried: the
boundary or chunk gets a single catch-all group and processing moves on.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Optional

from commit_splitter.config.loader import SplitSettings
from commit_splitter.grouping.group_model import Boundary, CommitGroup
from commit_splitter.grouping.partition_validator import parse_groups, validate_partition
from commit_splitter.grouping.payload_builder import PayloadBuilder
from commit_splitter.llm.prompts import fallback_message


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def chunk_files(files: List[str], size: int) -> List[List[str]]:
    """Split ``files`` into consecutive chunks of at most ``size`` files."""
    size = max(int(size), 1)
    return [files[i:i + size] for i in range(0, len(files), size)]


class GroupingOracleAdapter:
    """Propose commit groups for boundaries or flat chunks.

    Parameters
    ----------
    oracle : OllamaGroupingOracle
        Any object implementing
        ``classify(files, payload, max_groups, style_hint) -> str``.
    payload_builder : PayloadBuilder
        Produces the diff text sent with each call.
    settings : SplitSettings, optional
        Delay, chunk size and group budget.
    style : str, optional
        Commit message style passed to the oracle.
    sleep : Callable[[float], None], optional
        Used to wait between calls; tests pass a recorder.
    on_failure : Callable[[str, Exception], None], optional
        Called with the boundary or chunk label when a call falls back.
    """

    def __init__(
        self,
        oracle,
        payload_builder: PayloadBuilder,
        settings: Optional[SplitSettings] = None,
        style: str = "conventional",
        sleep: Callable[[float], None] = time.sleep,
        on_failure: Optional[Callable[[str, Exception], None]] = None,
    ) -> None:
        self.oracle = oracle
        self.payload_builder = payload_builder
        self.settings = settings or SplitSettings()
        self.style = style
        self._sleep = sleep
        self._on_failure = on_failure
        self._calls = 0

    def _throttle(self) -> None:
        if self._calls and self.settings.call_delay > 0:
            logger.debug("Waiting %.1fs before the next oracle call", self.settings.call_delay)
            self._sleep(self.settings.call_delay)
        self._calls += 1

    def propose(
        self,
        files: List[str],
        max_groups: int,
        label: str = "root",
        scope: Optional[str] = None,
    ) -> List[CommitGroup]:
        """Ask the oracle to group ``files`` and return a valid partition of them.

        Parameters
        ----------
        files : List[str]
            Files of the boundary or chunk.
        max_groups : int
            Group budget passed to the oracle.
        label : str, optional
            Name used in logs and failure callbacks.
        scope : str, optional
            Directory named in the catch-all message; defaults to ``label``.

        Oracle failures never raise; a single catch-all group is returned
        instead. Git failures while building the payload do propagate.
        """
        if not files:
            return []
        default = fallback_message(label if scope is None else scope, len(files), self.style)
        payload = self.payload_builder.build(files)
        self._throttle()
        try:
            raw = self.oracle.classify(files, payload, max_groups, self.style)
            groups = validate_partition(parse_groups(raw), files, default_message=default)
        except Exception as exc:  # any oracle failure degrades to one commit
            logger.warning("Grouping failed for %s: %s; using a single commit.", label, exc)
            if self._on_failure is not None:
                self._on_failure(label, exc)
            return [CommitGroup(message=default, files=list(dict.fromkeys(files)))]
        logger.debug("Oracle proposed %d groups for %s", len(groups), label)
        return groups

    def propose_for_boundary(self, boundary: Boundary) -> List[CommitGroup]:
        """Return the groups of one boundary; auto-grouped boundaries skip the oracle."""
        if boundary.auto_group is not None:
            return [CommitGroup(message=boundary.auto_group.message, files=list(boundary.auto_group.files))]
        return self.propose(boundary.files, self.settings.max_groups, label=boundary.name)

    def propose_flat(self, files: List[str]) -> List[CommitGroup]:
        """Group ``files`` without boundaries, one oracle call per chunk."""
        groups: List[CommitGroup] = []
        chunks = chunk_files(files, self.settings.chunk_size)
        for index, chunk in enumerate(chunks, start=1):
            label = f"chunk {index}/{len(chunks)}" if len(chunks) > 1 else "root"
            groups.extend(self.propose(chunk, self.settings.max_groups * 2, label=label, scope=""))
        return groups
