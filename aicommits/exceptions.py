"""Custom exceptions for aicommits.

Every class here is a "known" error: the CLI prints its message on a single
line and exits non-zero without a stack trace. Anything that is not an
``AICommitsError`` is treated as unexpected.
"""


class AICommitsError(Exception):
    """Base exception for user-facing aicommits errors."""


class GitError(AICommitsError):
    """Raised when a git invocation fails or the cwd is not a repository."""


class NoStagedChangesError(AICommitsError):
    """Raised when a run requires staged changes and there are none."""


class ConfigError(AICommitsError):
    """Raised for missing or invalid configuration values."""


class LLMError(AICommitsError):
    """Base exception for completion API failures."""


class NetworkError(LLMError):
    """Raised when the completion API cannot be reached or times out."""


class APIError(LLMError):
    """Raised when the completion API answers with an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NoMessagesError(LLMError):
    """Raised when no usable candidates survive post-processing."""
