"""Core workflow logic for aicommits."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

import pyperclip

from .branch import apply_prefix, derive_prefix
from .config import Configuration, ConfigKey, load_config
from .exceptions import GitError, NoStagedChangesError
from .git import GitRepo, detected_message
from .llm import LLMClient, capitalize, deduplicate

logger = logging.getLogger(__name__)

RESET = "\033[0m"
BOLD = "\033[1m"
CYAN = "\033[96m"
GREEN = "\033[92m"
DIM = "\033[2m"
BG_CYAN = "\033[46m"
BLACK = "\033[30m"


class WorkflowState(str, Enum):
    INIT = "init"
    REPO_CHECK = "repo_check"
    STAGE_ALL = "stage_all"
    COLLECT_CHANGES = "collect_changes"
    LOAD_CONFIG = "load_config"
    GENERATE = "generate"
    APPLY_PREFIX = "apply_prefix"
    SELECT = "select"
    COMMIT = "commit"
    DONE = "done"
    FAILED = "failed"


@dataclass
class WorkflowOptions:
    """Per-run options collected from the command line."""

    generate: Optional[str] = None
    exclude_files: List[str] = field(default_factory=list)
    stage_all: bool = False
    commit_type: Optional[str] = None
    use_branch_prefix: bool = False
    capitalize_message: bool = False
    raw_args: List[str] = field(default_factory=list)

    def config_overrides(self) -> Dict[str, str]:
        """CLI values layered above environment and config file.

        ``use-branch-prefix`` is only contributed when the flag is set, so an
        absent flag never masks the persisted value.
        """
        overrides: Dict[str, str] = {}
        if self.generate is not None:
            overrides[ConfigKey.GENERATE.value] = str(self.generate)
        if self.commit_type is not None:
            overrides[ConfigKey.TYPE.value] = self.commit_type
        if self.use_branch_prefix:
            overrides[ConfigKey.USE_BRANCH_PREFIX.value] = "true"
        return overrides


@dataclass(frozen=True)
class SelectedMessage:
    """A candidate message and whether the branch prefix is already on it."""

    text: str
    prefixed: bool = False


@dataclass
class WorkflowResult:
    """Outcome of a single run."""

    state: WorkflowState
    message: Optional[str] = None
    committed: bool = False
    cancelled: bool = False
    copied: bool = False
    files: tuple[str, ...] = ()


class ConsolePrompter:
    """Minimal stdin prompts; ``None`` means the operator cancelled."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], Any] = print,
    ) -> None:
        self._input = input_fn
        self._output = output_fn

    def confirm(self, message: str) -> Optional[bool]:
        try:
            answer = self._input(f"{message} {DIM}[Y/n]{RESET} ")
        except (EOFError, KeyboardInterrupt):
            return None
        return answer.strip().lower() in {"", "y", "yes"}

    def select(self, message: str, options: Sequence[str]) -> Optional[int]:
        self._output(f"{message} {DIM}(Ctrl+c to exit){RESET}")
        for idx, option in enumerate(options, start=1):
            self._output(f"  {CYAN}{idx}{RESET}) {option}")
        while True:
            try:
                answer = self._input("Choice: ").strip().lower()
            except (EOFError, KeyboardInterrupt):
                return None
            if answer in {"", "q", "quit"}:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return int(answer) - 1
            self._output(f"Please enter a number between 1 and {len(options)}.")


def copy_to_clipboard(text: str) -> bool:
    """Best-effort clipboard copy; failures are logged, never raised."""
    try:
        pyperclip.copy(text)
    except Exception as exc:  # noqa: BLE001 - clipboard backends vary widely
        logger.debug("Failed to copy to clipboard: %s", exc)
        return False
    return True


class AICommitsWorkflow:
    """Generate, select and commit a message for the staged changes."""

    def __init__(
        self,
        options: Optional[WorkflowOptions] = None,
        repo: Optional[GitRepo] = None,
        client_factory: Callable[[Configuration], LLMClient] = LLMClient,
        prompter: Optional[ConsolePrompter] = None,
        clipboard: Callable[[str], bool] = copy_to_clipboard,
        config_loader: Callable[[Mapping[str, str]], Configuration] = load_config,
    ) -> None:
        self.options = options or WorkflowOptions()
        self.repo = repo or GitRepo()
        self.client_factory = client_factory
        self.prompter = prompter or ConsolePrompter()
        self.clipboard = clipboard
        self.config_loader = config_loader
        self.state = WorkflowState.INIT

    def _enter(self, state: WorkflowState) -> None:
        logger.debug("workflow: %s -> %s", self.state.value, state.value)
        self.state = state

    def execute(self) -> WorkflowResult:
        """Run the pipeline; errors leave ``state`` at FAILED and propagate."""
        try:
            return self._run()
        except Exception:
            logger.debug("workflow failed in state %s", self.state.value)
            self.state = WorkflowState.FAILED
            raise

    def _run(self) -> WorkflowResult:
        print(f"\n{BG_CYAN}{BLACK} aicommits {RESET}\n")

        self._enter(WorkflowState.REPO_CHECK)
        self.repo.assert_repo()

        if self.options.stage_all:
            self._enter(WorkflowState.STAGE_ALL)
            self.repo.stage_all()

        self._enter(WorkflowState.COLLECT_CHANGES)
        staged = self.repo.get_staged_diff(self.options.exclude_files)
        if staged is None or not staged.files:
            raise NoStagedChangesError(
                "No staged changes found. Stage your changes manually, or "
                "automatically stage all changes with the `--all` flag."
            )
        listing = "\n".join(f"     {name}" for name in staged.files)
        print(f"{detected_message(staged.files)}:\n{listing}\n")

        self._enter(WorkflowState.LOAD_CONFIG)
        config = self.config_loader(self.options.config_overrides())

        self._enter(WorkflowState.GENERATE)
        print(f"{DIM}The AI is analyzing your changes…{RESET}")
        messages = self.client_factory(config).generate(staged.diff)
        if self.options.capitalize_message:
            messages = deduplicate(capitalize(m) for m in messages)
        candidates = [SelectedMessage(m) for m in messages]

        if config.use_branch_prefix:
            self._enter(WorkflowState.APPLY_PREFIX)
            candidates = self._apply_branch_prefix(candidates)

        self._enter(WorkflowState.SELECT)
        selected = self._select(candidates)
        if selected is None:
            self._enter(WorkflowState.DONE)
            print("Commit cancelled")
            return WorkflowResult(
                state=self.state, cancelled=True, files=staged.files
            )

        self._enter(WorkflowState.COMMIT)
        copied = self._commit(selected)
        self._enter(WorkflowState.DONE)
        return WorkflowResult(
            state=self.state,
            message=selected.text,
            committed=True,
            copied=copied,
            files=staged.files,
        )

    def _apply_branch_prefix(
        self, candidates: List[SelectedMessage]
    ) -> List[SelectedMessage]:
        """Prefix every candidate with the branch-derived prefix.

        A failed branch lookup (detached HEAD, git error) leaves the
        candidates unprefixed instead of failing the run.
        """
        try:
            branch = self.repo.current_branch()
        except GitError as exc:
            logger.debug("Branch prefix skipped: %s", exc)
            return candidates
        prefix = derive_prefix(branch)
        logger.debug("Current branch: %s, prefix: %r", branch, prefix)
        if not prefix:
            return candidates
        return [
            c if c.prefixed else SelectedMessage(apply_prefix(c.text, prefix), True)
            for c in candidates
        ]

    def _select(self, candidates: List[SelectedMessage]) -> Optional[SelectedMessage]:
        if len(candidates) == 1:
            only = candidates[0]
            confirmed = self.prompter.confirm(
                f"Use this commit message?\n\n   {BOLD}{only.text}{RESET}\n"
            )
            return only if confirmed else None
        index = self.prompter.select(
            "Pick a commit message to use:", [c.text for c in candidates]
        )
        if index is None:
            return None
        return candidates[index]

    def _commit(self, selected: SelectedMessage) -> bool:
        # The prefix, if any, was applied before selection; never again here.
        message = selected.text
        copied = self.clipboard(message)
        self.repo.commit(message, self.options.raw_args)
        note = f" {DIM}(Commit message copied to clipboard){RESET}" if copied else ""
        print(f"{GREEN}✔{RESET} Successfully committed!{note}")
        return copied
