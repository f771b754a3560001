"""Command-line interface for aicommits.

``aicommits`` wraps ``git commit``: any flag or argument it does not know is
forwarded untouched to the final commit invocation.
"""

from __future__ import annotations

import argparse
import logging
import sys
import traceback
from typing import Optional

from . import __version__
from .config import get_configs, parse_assignments, set_configs
from .core import DIM, RESET, AICommitsWorkflow, WorkflowOptions
from .exceptions import AICommitsError

RED = "\033[91m"
REPORT_INDENT = "    "


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        format="%(levelname)s(%(name)s): %(message)s", stream=sys.stderr
    )
    logging.getLogger("aicommits").setLevel(
        logging.DEBUG if debug else logging.WARNING
    )


class CLI:
    """Argument parsing and top-level error reporting."""

    def __init__(self) -> None:
        self.parser = self._create_parser()
        self.config_parser = self._create_config_parser()

    def _create_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="aicommits",
            description="Generate commits with AI in terminal",
            epilog=(
                "Unrecognised flags and arguments are passed through to "
                "`git commit`. Use `aicommits config set KEY=VALUE` to "
                "persist settings."
            ),
            allow_abbrev=False,
        )
        # Flags must not overlap with `git commit` options they would shadow.
        parser.add_argument(
            "-g",
            "--generate",
            metavar="N",
            help="Number of messages to generate (1-5)",
        )
        parser.add_argument(
            "-x",
            "--exclude",
            action="append",
            default=[],
            metavar="GLOB",
            help="Files to exclude from AI analysis (repeatable)",
        )
        parser.add_argument(
            "-a",
            "--all",
            action="store_true",
            help="Automatically stage changes in tracked files",
        )
        parser.add_argument(
            "-t",
            "--type",
            metavar="TYPE",
            help='Type of commit message to generate ("" or "conventional")',
        )
        parser.add_argument(
            "-b",
            "--branch-prefix",
            action="store_true",
            help="Use current branch name as commit message prefix",
        )
        parser.add_argument(
            "-c",
            "--capitalize-message",
            action="store_true",
            help="Capitalize the first letter of the commit message",
        )
        parser.add_argument(
            "--debug", action="store_true", help="Show debug information"
        )
        parser.add_argument(
            "--version", action="version", version=f"aicommits {__version__}"
        )
        return parser

    def _create_config_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(
            prog="aicommits config",
            description="Read or write persisted aicommits settings",
        )
        sub = parser.add_subparsers(dest="action", required=True)
        set_parser = sub.add_parser("set", help="Persist KEY=VALUE pairs")
        set_parser.add_argument("assignments", nargs="+", metavar="KEY=VALUE")
        get_parser = sub.add_parser("get", help="Print persisted values")
        get_parser.add_argument("keys", nargs="+", metavar="KEY")
        return parser

    def run(self, args: Optional[list[str]] = None) -> int:
        argv = list(sys.argv[1:] if args is None else args)
        try:
            if argv and argv[0] == "config":
                return self._run_config(argv[1:])
            if argv and argv[0] == "generate":
                argv = argv[1:]
            return self._run_generate(argv)
        except SystemExit as exc:  # argparse --help / --version / usage errors
            return exc.code if isinstance(exc.code, int) else 0
        except AICommitsError as exc:
            self._print_error(str(exc))
            return 1
        except KeyboardInterrupt:
            self._print_error("Cancelled")
            return 1
        except Exception as exc:  # noqa: BLE001 - top-level report
            self._print_error(str(exc) or exc.__class__.__name__)
            self._print_report(exc)
            return 1

    def _run_generate(self, argv: list[str]) -> int:
        parsed, passthrough = self.parser.parse_known_args(argv)
        _configure_logging(parsed.debug)
        options = WorkflowOptions(
            generate=parsed.generate,
            exclude_files=list(parsed.exclude),
            stage_all=parsed.all,
            commit_type=parsed.type,
            use_branch_prefix=parsed.branch_prefix,
            capitalize_message=parsed.capitalize_message,
            raw_args=passthrough,
        )
        logging.getLogger(__name__).debug("git commit pass-through: %s", passthrough)
        AICommitsWorkflow(options).execute()
        return 0

    def _run_config(self, argv: list[str]) -> int:
        parsed = self.config_parser.parse_args(argv)
        if parsed.action == "set":
            set_configs(parse_assignments(parsed.assignments))
            return 0
        for key, value in get_configs(parsed.keys):
            print(f"{key}={value}")
        return 0

    def _print_error(self, message: str) -> None:
        print(f"{RED}✖{RESET} {message}", file=sys.stderr)

    def _print_report(self, exc: BaseException) -> None:
        lines = traceback.format_exception(type(exc), exc, exc.__traceback__)
        print(f"{DIM}{''.join(lines).rstrip()}{RESET}", file=sys.stderr)
        print(f"\n{REPORT_INDENT}{DIM}aicommits v{__version__}{RESET}", file=sys.stderr)
        print(
            f"\n{REPORT_INDENT}Please report this issue with the information above.",
            file=sys.stderr,
        )


def main(argv: Optional[list[str]] = None) -> int:
    return CLI().run(argv)


if __name__ == "__main__":
    sys.exit(main())
