"""
Prompt construction for commit grouping.

The prompt asks the model to split a list of changed files into a small
number of logical commits and to answer with a JSON array only. The
answer is never trusted as-is; see
:mod:`commit_splitter.grouping.partition_validator`.
"""

from __future__ import annotations

from textwrap import dedent
from typing import List, Optional


STYLE_INSTRUCTIONS = {
    "plain": (
        "Write each message as a short imperative sentence, e.g. "
        '"Add retry support to the HTTP client".'
    ),
    "conventional": (
        "Write each message in Conventional Commits format: "
        "<type>(<optional scope>): <description>, where type is one of "
        "feat, fix, docs, style, refactor, perf, test, build, ci, chore, revert."
    ),
    "gitmoji": (
        "Start each message with a single gitmoji followed by a short "
        "imperative description, e.g. "
        '"✨ Add export command" or "🐛 Fix crash on empty input".'
    ),
}

SYSTEM_PROMPT = (
    "You are an expert software engineer who organises working changes into "
    "small, atomic, logically coherent git commits. You answer with JSON only."
)


def build_grouping_prompt(
    files: List[str],
    payload: str,
    max_groups: int,
    style: str = "conventional",
    locale: str = "en",
    custom_prompt: Optional[str] = None,
) -> str:
    """Build the prompt asking the model to group ``files`` into commits.

    Parameters
    ----------
    files : List[str]
        Authoritative list of files to group.
    payload : str
        Bounded diff text describing the changes.
    max_groups : int
        Maximum number of groups the model may propose.
    style : str, optional
        Commit message style: ``plain``, ``conventional`` or ``gitmoji``.
    locale : str, optional
        Language of the commit messages.
    custom_prompt : str, optional
        Extra guidance from the user.
    """
    style_instruction = STYLE_INSTRUCTIONS.get(style, STYLE_INSTRUCTIONS["plain"])
    file_list = "\n".join(f"- {path}" for path in files)
    extra = f"\nADDITIONAL INSTRUCTIONS FROM THE USER:\n{custom_prompt.strip()}\n" if custom_prompt else ""

    prompt = dedent(
        """
        Group the following changed files into at most {max_groups} logical commits.

        RULES:
        - Every file listed under FILES must appear in exactly one group.
        - Do not invent files that are not listed.
        - Keep related changes together (a feature and its tests, a refactor and its call sites).
        - {style_instruction}
        - Write the messages in the language with locale code "{locale}".
        - Keep each message under 72 characters.

        OUTPUT FORMAT (strict):
        A JSON array and nothing else, for example:
        [{{"message": "feat: add login form", "files": ["src/login.ts", "src/login.test.ts"]}}]
        """
    ).strip().format(
        max_groups=max_groups,
        style_instruction=style_instruction,
        locale=locale,
    )
    return (
        f"{prompt}\n{extra}\nFILES:\n{file_list}\n\nCHANGES:\n{payload}\n\n"
        "Answer with the JSON array now:"
    )


def fallback_message(label: str, file_count: int, style: str = "conventional") -> str:
    """Return the generic message of a catch-all group covering ``file_count`` files."""
    noun = "file" if file_count == 1 else "files"
    subject = f"update {file_count} {noun}"
    if label and label not in {"root", "."}:
        subject += f" in {label}"
    if style == "conventional":
        return f"chore: {subject}"
    if style == "gitmoji":
        return f"🔧 {subject[0].upper()}{subject[1:]}"
    return subject[0].upper() + subject[1:]
