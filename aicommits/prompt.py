"""System prompt construction for commit message generation."""

from __future__ import annotations

import json

COMMIT_TYPE_FORMATS = {
    "": "<commit message>",
    "conventional": "<type>(<optional scope>): <commit message>",
}

CONVENTIONAL_TYPES = {
    "docs": "Documentation only changes",
    "style": (
        "Changes that do not affect the meaning of the code "
        "(white-space, formatting, missing semi-colons, etc)"
    ),
    "refactor": "A code change that neither fixes a bug nor adds a feature",
    "perf": "A code change that improves performance",
    "test": "Adding missing tests or correcting existing tests",
    "build": "Changes that affect the build system or external dependencies",
    "ci": "Changes to our CI configuration files and scripts",
    "chore": "Other changes that don't modify src or test files",
    "revert": "Reverts a previous commit",
    "feat": "A new feature",
    "fix": "A bug fix",
}


def build_system_prompt(locale: str, max_length: int, commit_type: str) -> str:
    system_lines = [
        "Generate a concise git commit message written in present tense "
        "for the following code diff with the given specifications below:",
        f"Message language: {locale}",
        f"Commit message must be a maximum of {max_length} characters.",
        "Exclude anything unnecessary such as translation. Your entire "
        "response will be passed directly into git commit.",
    ]
    if commit_type == "conventional":
        system_lines.append(
            "Choose a type from the type-to-description JSON below that best "
            "describes the git diff:\n" + json.dumps(CONVENTIONAL_TYPES, indent=2)
        )
    system_lines.append(
        "The output response must be in format:\n"
        + COMMIT_TYPE_FORMATS.get(commit_type, COMMIT_TYPE_FORMATS[""])
    )
    return "\n".join(system_lines)
