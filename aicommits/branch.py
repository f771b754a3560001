"""Derive commit message prefixes from branch names."""

from __future__ import annotations

import re

TICKET_PATTERN = re.compile(r"[A-Z]+-\d+", re.IGNORECASE)
_WORKFLOW_PREFIX = re.compile(r"^(feature|fix|bugfix|hotfix|release|chore)/")


def derive_prefix(branch_name: str) -> str:
    """Return a ticket id (``ABC-42``) or a cleaned phrase for ``branch_name``.

    The ticket check runs first, so ``JIRA-123-fix-thing`` yields
    ``JIRA-123`` rather than a cleaned phrase.
    """
    match = TICKET_PATTERN.search(branch_name)
    if match:
        return match.group(0).upper()
    cleaned = _WORKFLOW_PREFIX.sub("", branch_name)
    cleaned = re.sub(r"[-_]", " ", cleaned)
    return re.sub(r"\s+", " ", cleaned).strip()


def apply_prefix(message: str, prefix: str) -> str:
    if not prefix:
        return message
    return f"{prefix}: {message}"
