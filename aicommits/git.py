"""Git operations for aicommits."""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from .exceptions import GitError

logger = logging.getLogger(__name__)

# Lock files and build output rarely say anything useful about a change.
DEFAULT_EXCLUDES = (
    "package-lock.json",
    "pnpm-lock.yaml",
    "yarn.lock",
    "*.lock",
    "dist/**",
    "build/**",
)

# Both staged-diff queries share these so the file list matches the diff.
_DIFF_CACHED = ("diff", "--cached", "--diff-algorithm=minimal")


def exclude_pathspec(pattern: str) -> str:
    return f":(exclude){pattern}"


@dataclass(frozen=True)
class StagedChange:
    """Staged file list and the combined diff for those files."""

    files: tuple[str, ...]
    diff: str


def detected_message(files: Sequence[str]) -> str:
    count = len(files)
    return f"Detected {count:,} staged file{'s' if count > 1 else ''}"


class GitRepo:
    """Handles Git repository operations."""

    def __init__(self, repo_path: Optional[str] = None) -> None:
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()

    def _run_git_command(self, args: list[str]) -> str:
        """Run a Git command and return its stripped stdout."""
        logger.debug("git %s", " ".join(args))
        try:
            result = subprocess.run(
                ["git"] + args,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=True,
            )
            return result.stdout.strip()
        except subprocess.CalledProcessError as e:
            cmd = " ".join(args)
            detail = (e.stderr or "").strip()
            raise GitError(f"Git command failed: {cmd}\n{detail}".rstrip()) from e
        except FileNotFoundError as exc:
            raise GitError(
                "Git is not installed or not available in PATH"
            ) from exc

    def assert_repo(self) -> str:
        """Return the repository root, or raise if cwd is not inside one."""
        try:
            return self._run_git_command(["rev-parse", "--show-toplevel"])
        except GitError as exc:
            if isinstance(exc.__cause__, FileNotFoundError):
                raise
            raise GitError("The current directory must be a Git repository!") from exc

    def stage_all(self) -> None:
        """Stage modifications to tracked files, like ``git commit --all``."""
        self._run_git_command(["add", "--update"])

    def get_staged_diff(
        self, exclude_files: Optional[Sequence[str]] = None
    ) -> Optional[StagedChange]:
        """Return staged files and diff, or ``None`` when nothing is staged.

        The default excludes always apply on top of ``exclude_files``.
        """
        excludes = [exclude_pathspec(p) for p in DEFAULT_EXCLUDES]
        excludes += [exclude_pathspec(p) for p in exclude_files or ()]
        try:
            names = self._run_git_command([*_DIFF_CACHED, "--name-only", *excludes])
            if not names.strip():
                return None
            diff = self._run_git_command([*_DIFF_CACHED, *excludes])
        except GitError as exc:
            raise GitError(f"Failed to get staged changes: {exc}") from exc
        files = tuple(line for line in names.splitlines() if line.strip())
        return StagedChange(files=files, diff=diff)

    def current_branch(self) -> str:
        """Return the checked-out branch name.

        A detached HEAD yields an empty name from git, which is reported as
        a failure so callers can fall back to an unprefixed message.
        """
        try:
            branch = self._run_git_command(["branch", "--show-current"])
        except GitError as exc:
            raise GitError(f"Failed to get current branch: {exc}") from exc
        if not branch:
            raise GitError("Failed to get current branch: HEAD is detached")
        return branch

    def commit(self, message: str, extra_args: Sequence[str] = ()) -> str:
        """Commit without hooks using ``message`` plus pass-through args."""
        return self._run_git_command(["commit", "-n", "-m", message, *extra_args])
