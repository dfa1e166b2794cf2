"""
Parsing and repair of oracle answers.

The oracle is asked for a JSON array of ``{"message": ..., "files": [...]}``
objects but nothing guarantees it complies. :func:`parse_groups` pulls
the first JSON array out of the raw text (bare, or inside a fenced code
block) and :func:`validate_partition` turns whatever was parsed into a
partition of the authoritative file list:

* files the oracle invented are dropped;
* a file listed in several groups stays in the first one;
* groups left without files are discarded;
* files the oracle forgot are appended to the last group.

The surviving groups are pairwise disjoint and together contain exactly
the authoritative files.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

from commit_splitter.errors import ExternalServiceError
from commit_splitter.grouping.group_model import CommitGroup
from commit_splitter.llm.ollama_client import strip_thinking_tags


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


FENCED_BLOCK = re.compile(r"```[a-zA-Z0-9_-]*\s*\n?(.*?)```", re.DOTALL)


def _first_json_array(text: str) -> Optional[List[Any]]:
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _end = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    return None


def parse_groups(raw: str) -> List[Any]:
    """Extract the first JSON array from an oracle answer.

    Fenced code blocks are searched first, then the whole text.

    Raises
    ------
    ExternalServiceError
        If no JSON array can be found.
    """
    text = strip_thinking_tags(raw or "")
    for block in FENCED_BLOCK.findall(text):
        found = _first_json_array(block)
        if found is not None:
            return found
    found = _first_json_array(text)
    if found is None:
        raise ExternalServiceError("No JSON array found in the grouping response")
    return found


def validate_partition(
    raw_groups: List[Any],
    files: List[str],
    default_message: str = "chore: update files",
) -> List[CommitGroup]:
    """Repair ``raw_groups`` into a disjoint, complete partition of ``files``.

    Parameters
    ----------
    raw_groups : List[Any]
        Parsed oracle output. Entries that are not objects, or whose
        ``files`` is not a list, contribute no files.
    files : List[str]
        Authoritative file list of the boundary or chunk.
    default_message : str, optional
        Message for a group that has files but no usable message, and
        for the single group built when nothing usable survives.
    """
    authoritative = list(dict.fromkeys(files))
    if not authoritative:
        return []
    known = set(authoritative)
    claimed = set()
    groups: List[CommitGroup] = []

    for entry in raw_groups if isinstance(raw_groups, list) else []:
        if not isinstance(entry, dict):
            logger.debug("Ignoring non-object group entry: %r", entry)
            continue
        message = entry.get("message")
        message = message.strip() if isinstance(message, str) else ""
        entry_files = entry.get("files")
        if not isinstance(entry_files, list):
            entry_files = []

        kept = []
        for path in entry_files:
            if not isinstance(path, str):
                continue
            path = path.strip()
            if path not in known:
                logger.debug("Dropping unknown file from grouping response: %s", path)
                continue
            if path in claimed:
                continue
            claimed.add(path)
            kept.append(path)
        if kept:
            groups.append(CommitGroup(message=message or default_message, files=kept))

    missing = [path for path in authoritative if path not in claimed]
    if missing:
        if groups:
            logger.debug("Appending %d unassigned files to the last group", len(missing))
            groups[-1].files.extend(missing)
        else:
            groups.append(CommitGroup(message=default_message, files=missing))
    return groups
