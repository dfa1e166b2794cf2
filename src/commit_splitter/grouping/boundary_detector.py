"""
Detection of independent sub-projects inside a changeset.

Each changed file is assigned to the nearest directory that carries a
project marker. Strong markers (package manifests) identify a project
at any depth. Weak markers (task runners, compose files) recur in many
unrelated subdirectories, so they only count near the repository root.
Files without any marked ancestor are grouped by their top-level
directory.

Boundaries whose directory looks like a cleanup target (``old``,
``archive``, ``deprecated``...) get a deterministic commit group and
never reach the oracle. When more than ``max_boundaries`` boundaries are
found they are consolidated so that the number of oracle calls stays
bounded.
"""

from __future__ import annotations

import logging
import posixpath
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from commit_splitter.config.loader import SplitSettings
from commit_splitter.grouping.group_model import Boundary, CommitGroup


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


ROOT = "."
ROOT_NAME = "root"
MISC = "misc"
SUBMODULE = "submodule"

# (file name, ecosystem) pairs, checked in order
STRONG_MARKERS: List[Tuple[str, str]] = [
    ("package.json", "node"),
    ("pyproject.toml", "python"),
    ("setup.py", "python"),
    ("Cargo.toml", "rust"),
    ("go.mod", "go"),
    ("pom.xml", "java"),
    ("build.gradle", "java"),
    ("Gemfile", "ruby"),
    ("Chart.yaml", "helm"),
    ("helmfile.yaml", "helm"),
]

WEAK_MARKERS: List[Tuple[str, str]] = [
    ("docker-compose.yml", "docker"),
    ("docker-compose.yaml", "docker"),
    ("ansible.cfg", "ansible"),
    ("Justfile", "taskrunner"),
    ("justfile", "taskrunner"),
    ("Makefile", "taskrunner"),
]

CLEANUP_PATTERNS = (".obsolete", "deprecated", "archive", "old", "backup")


def dir_depth(directory: str) -> int:
    """Return the depth of a repository-relative directory (root is 0)."""
    if directory in (ROOT, ""):
        return 0
    return directory.count("/") + 1


def ancestor_dirs(path: str) -> List[str]:
    """Return every ancestor directory of ``path``, deepest first, ending with the root."""
    dirs = []
    current = posixpath.dirname(path)
    while current and current != ROOT:
        dirs.append(current)
        current = posixpath.dirname(current)
    dirs.append(ROOT)
    return dirs


def top_level_segment(path: str) -> str:
    """Return the first path segment of ``path``, or the root for top-level files."""
    return path.split("/", 1)[0] if "/" in path else ROOT


def is_cleanup_dir(directory: str) -> bool:
    """Tell whether the last segment of ``directory`` names a cleanup target.

    The name is split on ``-``, ``_`` and ``.``, so ``old_api`` and
    ``.obsolete`` match while ``golden`` and ``placeholder`` do not.
    """
    name = posixpath.basename(directory.rstrip("/")).lower()
    words = {pattern.lstrip(".") for pattern in CLEANUP_PATTERNS}
    for token in re.split(r"[-_.\s]+", name):
        if token in words or (token.endswith("s") and token[:-1] in words):
            return True
    return False


def find_marker_kind(repo_root: Path, directory: str, weak_marker_max_depth: int = 1) -> Optional[str]:
    """Return the ecosystem of the first marker found in ``directory``, if any."""
    base = repo_root if directory == ROOT else repo_root / directory
    for marker, kind in STRONG_MARKERS:
        if (base / marker).exists():
            return kind
    if dir_depth(directory) <= weak_marker_max_depth:
        for marker, kind in WEAK_MARKERS:
            if (base / marker).exists():
                return kind
    return None


def find_enclosing_boundary(repo_root: Path, start: str) -> Optional[Tuple[str, str]]:
    """Walk up from ``start`` to the nearest directory with a strong marker.

    Parameters
    ----------
    repo_root : Path
        Repository root.
    start : str
        Directory relative to ``repo_root``.

    Returns
    -------
    Optional[Tuple[str, str]]
        ``(directory, kind)`` of the nearest marked directory strictly
        below the repository root, or None.
    """
    current = start.strip("/")
    while current and current != ROOT:
        for marker, kind in STRONG_MARKERS:
            if (repo_root / current / marker).exists():
                return current, kind
        current = posixpath.dirname(current)
    return None


def _boundary_name(directory: str) -> str:
    return ROOT_NAME if directory == ROOT else directory


class BoundaryDetector:
    """Partition changed files into project boundaries.

    Parameters
    ----------
    repo_root : Path
        Repository root used for marker lookups.
    submodule_paths : Iterable[str], optional
        Paths of known sub-repositories; each is a boundary of kind
        ``submodule`` even without a marker file.
    settings : SplitSettings, optional
        Tuning constants (weak marker depth, consolidation limits).
    """

    def __init__(
        self,
        repo_root: Path,
        submodule_paths: Iterable[str] = (),
        settings: Optional[SplitSettings] = None,
    ) -> None:
        self.repo_root = repo_root
        self.submodule_paths = [path.strip("/") for path in submodule_paths if path.strip("/")]
        self.settings = settings or SplitSettings()

    # ------------------------------------------------------------------
    # Detection
    # ------------------------------------------------------------------
    def find_marker_dirs(self, files: Iterable[str]) -> Dict[str, str]:
        """Return a mapping of marked directory to kind for all ancestors of ``files``."""
        candidates: List[str] = []
        seen = set()
        for path in files:
            for directory in ancestor_dirs(path):
                if directory not in seen:
                    seen.add(directory)
                    candidates.append(directory)

        markers: Dict[str, str] = {}
        for directory in candidates:
            kind = find_marker_kind(self.repo_root, directory, self.settings.weak_marker_max_depth)
            if kind:
                markers[directory] = kind
        for path in self.submodule_paths:
            markers.setdefault(path, SUBMODULE)
        return markers

    def detect(self, files: List[str]) -> List[Boundary]:
        """Partition ``files`` into boundaries.

        The result is ordered with regular boundaries first, largest
        first, and auto-grouped boundaries last. Every input file appears
        in exactly one boundary.
        """
        markers = self.find_marker_dirs(files)
        # Deepest first; the root sorts last
        ordered = sorted(markers.items(), key=lambda item: dir_depth(item[0]), reverse=True)

        assigned: Dict[str, Tuple[str, List[str]]] = {}
        seen_files = set()
        for path in files:
            if path in seen_files:
                continue
            seen_files.add(path)
            directory, kind = self._assign(path, ordered)
            assigned.setdefault(directory, (kind, []))[1].append(path)

        boundaries = []
        for directory, (kind, boundary_files) in assigned.items():
            boundary = Boundary(name=_boundary_name(directory), kind=kind, files=boundary_files)
            if directory != ROOT and is_cleanup_dir(directory):
                boundary.auto_group = CommitGroup(
                    message=f"chore: clean up {directory}", files=list(boundary_files)
                )
            boundaries.append(boundary)

        boundaries = self._sort(boundaries)
        logger.debug("Detected %d boundaries for %d files", len(boundaries), len(seen_files))
        if len(boundaries) > self.settings.max_boundaries:
            boundaries = self.consolidate(boundaries)
        return boundaries

    def _assign(self, path: str, ordered: List[Tuple[str, str]]) -> Tuple[str, str]:
        root_kind = None
        for directory, kind in ordered:
            if directory == ROOT:
                root_kind = kind
                continue
            if path.startswith(directory + "/"):
                return directory, kind
            # A changed submodule shows up as a path equal to the submodule itself
            if kind == SUBMODULE and path == directory:
                return directory, kind
        if root_kind is not None:
            return ROOT, root_kind
        return top_level_segment(path), MISC

    @staticmethod
    def _sort(boundaries: List[Boundary]) -> List[Boundary]:
        return sorted(boundaries, key=lambda b: (b.is_auto_grouped, -len(b.files)))

    # ------------------------------------------------------------------
    # Consolidation
    # ------------------------------------------------------------------
    def consolidate(self, boundaries: List[Boundary]) -> List[Boundary]:
        """Reduce the number of boundaries to at most ``max_boundaries``.

        Auto-grouped boundaries are kept untouched. Small boundaries are
        merged into a ``misc`` boundary first; if that is not enough,
        boundaries sharing a top-level directory are merged; as a last
        resort the smallest boundaries are folded into ``misc``.
        """
        auto = [b for b in boundaries if b.is_auto_grouped]
        regular = [b for b in boundaries if not b.is_auto_grouped]
        target = max(self.settings.max_boundaries - len(auto), 1)

        regular = self._merge_small(regular)
        if len(regular) > target:
            regular = self._merge_by_top_level(regular)
        if len(regular) > target:
            regular = self._fold_smallest(regular, target)

        regular.sort(key=lambda b: -len(b.files))
        logger.debug("Consolidated into %d boundaries (+%d auto-grouped)", len(regular), len(auto))
        return regular + auto

    def _merge_small(self, regular: List[Boundary]) -> List[Boundary]:
        keep: List[Boundary] = []
        misc_files: List[str] = []
        for boundary in regular:
            if len(boundary.files) < self.settings.min_boundary_files:
                misc_files.extend(boundary.files)
            else:
                keep.append(boundary)
        if misc_files:
            existing = next((b for b in keep if b.name == MISC), None)
            if existing is not None:
                existing.files.extend(misc_files)
            else:
                keep.append(Boundary(name=MISC, kind=MISC, files=misc_files))
        return keep

    @staticmethod
    def _merge_by_top_level(regular: List[Boundary]) -> List[Boundary]:
        merged: Dict[str, Boundary] = {}
        for boundary in regular:
            top = boundary.name.split("/", 1)[0]
            if top in merged:
                merged[top].files.extend(boundary.files)
            else:
                merged[top] = Boundary(name=top, kind=boundary.kind, files=list(boundary.files))
        return list(merged.values())

    @staticmethod
    def _fold_smallest(regular: List[Boundary], target: int) -> List[Boundary]:
        misc = [b for b in regular if b.name == MISC]
        others = sorted((b for b in regular if b.name != MISC), key=lambda b: -len(b.files))
        head = others[: target - 1]
        tail = misc + others[target - 1:]
        folded = [path for boundary in tail for path in boundary.files]
        return head + [Boundary(name=MISC, kind=MISC, files=folded)]
