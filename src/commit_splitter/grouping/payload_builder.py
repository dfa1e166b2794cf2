"""
Size-bounded diff payloads for the grouping oracle.

The amount of diff text sent per request depends on how many files are
involved, so that request sizes stay predictable:

* up to ``full_diff_file_limit`` files: the full diff;
* up to ``summary_file_limit`` files: a ``--stat`` summary of every file
  followed by the full diff of the first ``summary_diff_files`` files;
* beyond that: the ``--stat`` summary only.

The first two tiers are truncated to ``payload_char_limit`` characters.
"""

from __future__ import annotations

from typing import List, Optional

from commit_splitter.config.loader import SplitSettings


TRUNCATION_NOTICE = "\n... (diff truncated)"


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to at most ``limit`` characters, marking the cut."""
    if len(text) <= limit:
        return text
    if limit <= len(TRUNCATION_NOTICE):
        return text[:limit]
    return text[: limit - len(TRUNCATION_NOTICE)] + TRUNCATION_NOTICE


class PayloadBuilder:
    """Build oracle payloads from a git client's diffs.

    Parameters
    ----------
    client : GitClient
        Any object implementing ``diff(files, staged)`` and
        ``diff_stat(files, staged)``.
    staged : bool
        Whether diffs are taken from the index instead of the working tree.
    settings : SplitSettings, optional
        Tier limits.
    """

    def __init__(self, client, staged: bool = False, settings: Optional[SplitSettings] = None) -> None:
        self.client = client
        self.staged = staged
        self.settings = settings or SplitSettings()

    def build(self, files: List[str]) -> str:
        limit = self.settings.payload_char_limit
        if len(files) <= self.settings.full_diff_file_limit:
            return truncate(self.client.diff(files, staged=self.staged), limit)

        stat = self.client.diff_stat(files, staged=self.staged)
        if len(files) <= self.settings.summary_file_limit:
            head = files[: self.settings.summary_diff_files]
            diff = self.client.diff(head, staged=self.staged)
            text = (
                f"Summary of all {len(files)} changed files:\n{stat}\n"
                f"Full diff of the first {len(head)} files:\n{diff}"
            )
            return truncate(text, limit)
        return f"Summary of all {len(files)} changed files:\n{stat}"
