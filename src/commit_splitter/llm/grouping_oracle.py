"""
Grouping oracle backed by an Ollama model.

:class:`OllamaGroupingOracle` implements the ``classify`` contract the
splitting engine consumes: given files, a diff payload, a group budget
and a message style, it returns the model's raw answer text. Parsing and
repair happen in :mod:`commit_splitter.grouping.partition_validator`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from commit_splitter.llm.ollama_client import OllamaClient
from commit_splitter.llm.prompts import SYSTEM_PROMPT, build_grouping_prompt


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class OllamaGroupingOracle:
    """Ask an Ollama model to propose commit groups."""

    def __init__(
        self,
        ollama_client: OllamaClient,
        locale: str = "en",
        custom_prompt: Optional[str] = None,
    ) -> None:
        self.ollama_client = ollama_client
        self.locale = locale
        self.custom_prompt = custom_prompt

    def classify(
        self,
        files: List[str],
        payload: str,
        max_groups: int,
        style_hint: str = "conventional",
    ) -> str:
        """Return the raw model answer for grouping ``files``.

        Raises
        ------
        ExternalServiceError
            If the model cannot be reached or answers with an error.
        """
        prompt = build_grouping_prompt(
            files,
            payload,
            max_groups,
            style=style_hint,
            locale=self.locale,
            custom_prompt=self.custom_prompt,
        )
        logger.debug("Requesting up to %d groups for %d files", max_groups, len(files))
        return self.ollama_client.generate(prompt, system=SYSTEM_PROMPT)
