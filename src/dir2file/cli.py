"""dir2file: export a project directory into a single Markdown document.

Usage
-----
Run ``dir2file --help`` for the full list of options. Common examples:
    - Export the project in the current directory (reads ``exportconfig.json``):
        dir2file export
    - Export with the project tree on top, without comments:
        dir2file export --structure --remove-comments --output docs/export.md
    - Export a few files, asking before including files the rules drop:
        dir2file export-files src/app.ts src/util.ts
    - Remember a selection and export it again later:
        dir2file export-selected src tests/test_app.py --remember
        dir2file export-selected
    - Author rule files:
        dir2file create-ignore --patterns "dist/, *.log"
        dir2file create-include --patterns "src/, README.md" --append
    - Explain why paths are (not) exported:
        dir2file check src/gen/y.ts node_modules
"""

from __future__ import annotations

import argparse
import signal
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from dir2file import __version__
from dir2file.config import RuleKind
from dir2file.exceptions import Dir2FileError, ExportCancelledError
from dir2file.export import ExportOperation
from dir2file.file_manipulation import WriteMode, create_rule_file, seed_patterns_from_gitignore, split_patterns
from dir2file.logging import setup_logging
from dir2file.progress import CancellationToken
from dir2file.rules import build_rule_set
from dir2file.selection import SelectionEngine
from dir2file.selection_store import load_selection, save_selection
from dir2file.settings import Settings, load_export_config, load_host_config

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence
    from typing import TextIO

    import structlog

    from dir2file.export import ExportResult

COMMANDS = ("export", "export-files", "export-selected", "create-ignore", "create-include", "check")
RULE_FILE_CHOICES = ("Overwrite", "Append", "Cancel")
EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


class ConsoleAsker:
    """Ask questions on the terminal, or answer them all the same way.

    Every prompt of the tool lists its affirmative choice first and its
    most negative choice last, so ``assume`` picks one of those two. A Ctrl-C
    while waiting for an answer cancels ``token`` and answers None.
    """

    def __init__(
        self,
        assume: bool | None = None,  # noqa: FBT001
        *,
        stream: TextIO | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.assume = assume
        self.stream = stream if stream is not None else sys.stderr
        self.token = token

    def ask(self, prompt: str, choices: Sequence[str]) -> str | None:
        if self.assume is not None:
            return choices[0] if self.assume else choices[-1]
        if not sys.stdin.isatty() or (self.token is not None and self.token.is_cancelled):
            return None
        write = self.stream.write
        write(f"{prompt}\n")
        for idx, choice in enumerate(choices, start=1):
            write(f"  {idx}) {choice}\n")
        try:
            with interruptible_prompt():
                raw = input("> ").strip()
        except EOFError:
            return None
        except KeyboardInterrupt:
            write("\n")
            if self.token is not None:
                self.token.cancel()
            return None
        if raw.isdigit() and 1 <= int(raw) <= len(choices):
            return choices[int(raw) - 1]
        return raw if raw in choices else None


class ConsoleProgress:
    """Print ``[done/total] message`` lines to stderr."""

    def report(self, done: int, total: int, message: str) -> None:
        sys.stderr.write(f"[{done}/{total}] {message}\n")


def _add_common_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--root", type=Path, default=Path.cwd(), help="Project root.")
    p.add_argument("--log-file", type=str, default="", help="Log file path.")
    p.add_argument("--verbose", action="store_true", help="Log every selection decision.")
    answers = p.add_mutually_exclusive_group()
    answers.add_argument(
        "--yes-all",
        dest="assume",
        action="store_const",
        const=True,
        default=None,
        help="Answer yes to every prompt.",
    )
    answers.add_argument(
        "--no-all",
        dest="assume",
        action="store_const",
        const=False,
        help="Answer no to every prompt.",
    )


def _add_export_arguments(p: argparse.ArgumentParser) -> None:
    p.add_argument("--output", type=str, default=None, help="Output file, relative to the root.")
    p.add_argument(
        "--structure",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Prepend the project structure.",
    )
    p.add_argument(
        "--remove-comments",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Strip comments from supported languages.",
    )
    p.add_argument("--max-file-size", type=int, default=None, help="Files above (bytes) are stubbed.")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with one subparser per command.

    Returns:
        argparse.ArgumentParser: Configured parser.
    """
    parser = argparse.ArgumentParser(
        prog="dir2file",
        description="Export a project directory into a single Markdown document.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("export", help="Export the whole project (default).")
    _add_common_arguments(p)
    _add_export_arguments(p)

    p = sub.add_parser("export-files", help="Export the given files only.")
    _add_common_arguments(p)
    _add_export_arguments(p)
    p.add_argument("paths", nargs="+", help="Files to export.")

    p = sub.add_parser("export-selected", help="Export a selection, remembered across runs.")
    _add_common_arguments(p)
    _add_export_arguments(p)
    p.add_argument("paths", nargs="*", help="Files and directories; the remembered selection when omitted.")
    p.add_argument("--remember", action="store_true", help="Remember this selection for later runs.")

    for name, what in (("create-ignore", "ignore"), ("create-include", "include")):
        p = sub.add_parser(name, help=f"Create or extend the project {what} file.")
        _add_common_arguments(p)
        p.add_argument("--patterns", type=str, default=None, help="Comma-separated patterns.")
        p.add_argument("--append", action="store_true", help="Append to an existing file.")

    p = sub.add_parser("check", help="Explain the selection decision for paths.")
    _add_common_arguments(p)
    p.add_argument("paths", nargs="+", help="Paths relative to the root.")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> Settings:
    """Parse CLI arguments into run settings; ``export`` is the default command.

    Args:
        argv (Sequence[str] | None): Optional CLI args.

    Returns:
        Settings: Parsed settings.
    """
    args_list = list(sys.argv[1:] if argv is None else argv)
    if not args_list or (args_list[0] not in COMMANDS and args_list[0] not in {"-h", "--help", "--version"}):
        args_list.insert(0, "export")
    args = build_parser().parse_args(args_list)
    return Settings(**vars(args))


def report_result(result: ExportResult) -> None:
    for warning in result.warnings:
        sys.stderr.write(f"WARNING: {warning}\n")
    print(f"Files exported to {result.output} files={len(result.files)}")  # noqa: T201


def run_export(settings: Settings, logger: structlog.stdlib.BoundLogger, token: CancellationToken) -> int:
    """Run one of the export commands.

    Args:
        settings (Settings): parsed run settings
        logger (structlog.stdlib.BoundLogger): logger handed to every component
        token (CancellationToken): cancelled on SIGINT

    Returns:
        int: process exit code
    """
    root = settings.root.resolve()
    config = settings.apply_overrides(load_export_config(root))
    operation = ExportOperation(
        root,
        config,
        load_host_config(),
        asker=ConsoleAsker(settings.assume, token=token),
        progress=ConsoleProgress(),
        token=token,
        logger=logger,
    )
    if settings.command == "export-files":
        result = operation.run_for_paths(settings.paths)
    elif settings.command == "export-selected":
        paths = settings.paths or load_selection(root)
        if settings.remember and settings.paths:
            save_selection(root, settings.paths)
        result = operation.run_for_selection(paths)
    else:
        result = operation.run()
    report_result(result)
    return EXIT_OK


def run_create_rule_file(settings: Settings, kind: RuleKind) -> int:
    """Create or extend the project ignore or include file.

    Args:
        settings (Settings): parsed run settings
        kind (RuleKind): which rule file to write

    Returns:
        int: process exit code
    """
    root = settings.root.resolve()
    config = load_export_config(root)
    name = config.ignore_file if kind is RuleKind.IGNORE else config.include_file
    path = root / name

    mode = WriteMode.APPEND if settings.append else WriteMode.OVERWRITE
    if path.exists() and not settings.append:
        prompt = f"{name} already exists. What would you like to do?"
        choice = ConsoleAsker(settings.assume).ask(prompt, RULE_FILE_CHOICES)
        if choice not in {"Overwrite", "Append"}:
            print(f"{name} left unchanged")  # noqa: T201
            return EXIT_CANCELLED
        mode = WriteMode(choice.lower())

    patterns = split_patterns(settings.patterns or "")
    if not patterns and kind is RuleKind.IGNORE and mode is WriteMode.OVERWRITE:
        patterns = seed_patterns_from_gitignore(root)
    if not patterns:
        sys.stderr.write("ERROR: no patterns given\n")
        return EXIT_ERROR

    create_rule_file(path, patterns, mode)
    print(f"{name} {'updated' if mode is WriteMode.APPEND else 'created'}")  # noqa: T201
    return EXIT_OK


def run_check(settings: Settings, logger: structlog.stdlib.BoundLogger) -> int:
    """Print the previewed selection decision and the matching rules for each path.

    Args:
        settings (Settings): parsed run settings
        logger (structlog.stdlib.BoundLogger): logger handed to the engine

    Returns:
        int: process exit code
    """
    root = settings.root.resolve()
    rules = build_rule_set(root, load_export_config(root), load_host_config())
    engine = SelectionEngine(rules, logger=logger)
    for raw in settings.paths:
        is_dir = (root / raw).is_dir()
        decision = engine.preview(raw, is_dir=is_dir)
        print(f"{decision.path}: {decision.verdict} ({decision.reason})")  # noqa: T201
        for rule in rules.explain(decision.path, is_dir=is_dir):
            print(f"  {rule.pattern.rule_kind} [{rule.source}] {rule.pattern.source}")  # noqa: T201
    return EXIT_OK


@contextmanager
def interruptible_prompt() -> Iterator[None]:
    """Let Ctrl-C raise :class:`KeyboardInterrupt` while blocked on terminal input."""
    try:
        previous = signal.signal(signal.SIGINT, signal.default_int_handler)
    except ValueError:
        # not in the main thread
        previous = None
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


@contextmanager
def sigint_cancels(token: CancellationToken) -> Iterator[None]:
    """Turn Ctrl-C into a cooperative cancellation of the running export."""
    previous = signal.getsignal(signal.SIGINT)

    def handler(signum: int, frame: object) -> None:  # noqa: ARG001
        token.cancel()

    try:
        signal.signal(signal.SIGINT, handler)
    except ValueError:
        # not in the main thread
        previous = None
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the ``dir2file`` command.

    Args:
        argv (Sequence[str] | None): Optional CLI arguments.

    Returns:
        int: Process exit code.
    """
    settings = parse_args(argv)
    logger = setup_logging(settings.log_file or None, verbose=settings.verbose)
    token = CancellationToken()

    with sigint_cancels(token):
        return _dispatch(settings, logger, token)


def _dispatch(settings: Settings, logger: structlog.stdlib.BoundLogger, token: CancellationToken) -> int:
    try:
        if settings.command == "create-ignore":
            return run_create_rule_file(settings, RuleKind.IGNORE)
        if settings.command == "create-include":
            return run_create_rule_file(settings, RuleKind.INCLUDE)
        if settings.command == "check":
            return run_check(settings, logger)
        return run_export(settings, logger, token)
    except ExportCancelledError:
        logger.info("export cancelled")
        print("Export operation was cancelled")  # noqa: T201
        return EXIT_CANCELLED
    except Dir2FileError as exc:
        logger.error("export failed", error=str(exc))  # noqa: TRY400
        sys.stderr.write(f"ERROR: {exc}\n")
        return EXIT_ERROR


if __name__ == "__main__":
    raise SystemExit(main())
