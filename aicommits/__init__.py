"""aicommits - AI-generated git commit messages for staged changes."""

from importlib import import_module
from typing import TYPE_CHECKING

__version__ = "0.1.0"

# Public API (lazy-exported to avoid import-time side effects)
__all__ = [
    # Config
    "Configuration", "load_config",
    # Git
    "GitRepo", "StagedChange",
    # Generation
    "LLMClient",
    # Workflow
    "AICommitsWorkflow", "WorkflowOptions", "WorkflowResult",
    # Exceptions
    "AICommitsError", "GitError", "ConfigError", "LLMError",
]


def __getattr__(name: str):
    """Lazy attribute loader so ``import aicommits`` stays cheap."""
    mapping = {
        "Configuration": ("aicommits.config", "Configuration"),
        "load_config": ("aicommits.config", "load_config"),
        "GitRepo": ("aicommits.git", "GitRepo"),
        "StagedChange": ("aicommits.git", "StagedChange"),
        "LLMClient": ("aicommits.llm", "LLMClient"),
        "AICommitsWorkflow": ("aicommits.core", "AICommitsWorkflow"),
        "WorkflowOptions": ("aicommits.core", "WorkflowOptions"),
        "WorkflowResult": ("aicommits.core", "WorkflowResult"),
        "AICommitsError": ("aicommits.exceptions", "AICommitsError"),
        "GitError": ("aicommits.exceptions", "GitError"),
        "ConfigError": ("aicommits.exceptions", "ConfigError"),
        "LLMError": ("aicommits.exceptions", "LLMError"),
    }
    if name in mapping:
        mod_name, attr = mapping[name]
        value = getattr(import_module(mod_name), attr)
        globals()[name] = value  # cache for future access
        return value
    raise AttributeError(f"module 'aicommits' has no attribute {name!r}")


if TYPE_CHECKING:
    from .config import Configuration, load_config
    from .git import GitRepo, StagedChange
    from .llm import LLMClient
    from .core import AICommitsWorkflow, WorkflowOptions, WorkflowResult
    from .exceptions import AICommitsError, GitError, ConfigError, LLMError
