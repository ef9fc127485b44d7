# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""CLI harness for listing, building and watching derived artifacts."""

import argparse
import logging
import os
import sys
import threading
from pathlib import Path
from typing import TextIO

from rich.console import Console
from rich.logging import RichHandler
from rich.style import Style
from rich.table import Table

from cxv.config import (
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_OUTPUT_DIR,
    WORKSPACE_PLACEHOLDER,
    ExplorerConfig,
)
from cxv.document import Document
from cxv.errors import (
    ArtifactIOError,
    BuildError,
    ConfigurationError,
    NotFoundError,
    ParseError,
)
from cxv.model import ArtifactKind
from cxv.parser import PlainTextParser
from cxv.provider import DocumentProvider
from cxv.session import CompileSession, parse_extra_args

logger = logging.getLogger(__name__)

TABLE_COLUMN_RATIOS: dict[str, int] = {
    "source": 3,
    "kind": 2,
    "artifact": 4,
}

EXTRA_ARGS_OPTION = "--extra-args"


def configure_logging(level: int = logging.INFO) -> None:
    """Configure application logging with Rich handler.

    Args:
        level: Logging severity threshold.
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _add_session_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--root", default=".", help="Project root directory.")
    parser.add_argument(
        "--out-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Artifact output directory; {WORKSPACE_PLACEHOLDER} expands to the root.",
    )
    parser.add_argument(
        "--compile-commands-dir",
        default=WORKSPACE_PLACEHOLDER,
        help="Directory containing compile_commands.json.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_BUILD_TIMEOUT,
        help="Seconds before a build is abandoned; 0 waits forever.",
    )


def _add_artifact_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--source", required=True, help="Source file to view.")
    parser.add_argument(
        "--kind",
        choices=[kind.value for kind in ArtifactKind],
        default=ArtifactKind.DISASSEMBLY.value,
        help="Derived view to build.",
    )
    parser.add_argument(
        EXTRA_ARGS_OPTION,
        default="",
        help="Extra compiler arguments for the build, e.g. --extra-args '-DFOO=1 -O3'.",
    )


def _attach_option_values(argv: list[str]) -> list[str]:
    """Rewrite `--extra-args VALUE` as `--extra-args=VALUE` so dash-led flags parse as values."""
    attached: list[str] = []
    index = 0
    while index < len(argv):
        token = argv[index]
        if token == EXTRA_ARGS_OPTION and index + 1 < len(argv):
            attached.append(f"{EXTRA_ARGS_OPTION}={argv[index + 1]}")
            index += 2
            continue
        attached.append(token)
        index += 1
    return attached


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser instance.
    """
    parser = argparse.ArgumentParser(prog="cxv")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list")
    _add_session_arguments(list_parser)

    show_parser = subparsers.add_parser("show")
    _add_session_arguments(show_parser)
    _add_artifact_arguments(show_parser)

    watch_parser = subparsers.add_parser("watch")
    _add_session_arguments(watch_parser)
    _add_artifact_arguments(watch_parser)
    return parser


def run(argv: list[str], stdout: TextIO, stderr: TextIO) -> int:
    """Run CLI command.

    Args:
        argv: CLI arguments.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code.
    """
    parser = build_parser()
    try:
        args = parser.parse_args(_attach_option_values(argv))
    except SystemExit:
        logger.warning(f"Argument parsing failed (argv={argv})")
        return 2

    session = build_session(args)
    try:
        session.load()
    except (ConfigurationError, ParseError, ArtifactIOError) as exc:
        logger.warning(f"Compilation database could not be loaded (error={exc})")
        stderr.write(f"{exc}\n")
        return 2

    if args.command == "list":
        _write_table(session=session, stdout=stdout)
        return 0
    if args.command == "show":
        return _run_show(args=args, session=session, stdout=stdout, stderr=stderr)
    if args.command == "watch":
        return _run_watch(args=args, session=session, stdout=stdout, stderr=stderr)

    logger.warning(f"Unsupported command (command={args.command})")
    stderr.write(f"Unsupported command: {args.command}\n")
    return 2


def build_session(args: argparse.Namespace) -> CompileSession:
    """Create the compile session described by parsed CLI arguments."""
    config = ExplorerConfig(
        project_root=Path(args.root),
        output_dir=args.out_dir,
        compile_commands_dir=args.compile_commands_dir,
        build_timeout=args.timeout or None,
    )
    return CompileSession(config)


def _resolve_source(args: argparse.Namespace) -> Path:
    source = Path(args.source)
    if not source.is_absolute():
        source = Path(args.root) / source
    return Path(os.path.abspath(source))


def _run_show(
    args: argparse.Namespace,
    session: CompileSession,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Build and print one artifact.

    Args:
        args: Parsed CLI arguments.
        session: Loaded compile session.
        stdout: Standard output stream.
        stderr: Standard error stream.

    Returns:
        Exit code; 1 when the build failed.
    """
    session.set_extra_args(parse_extra_args(args.extra_args))
    kind = ArtifactKind(args.kind)
    source = _resolve_source(args)
    artifact = session.artifact_for(source, kind)
    if artifact is None:
        logger.warning(f"Source has no compile command (source={source})")
        stderr.write(f"No compile command for {source}\n")
        return 2

    try:
        session.compile(artifact).raise_for_status()
    except BuildError as exc:
        stderr.write(f"{exc.result.command}\n{exc.result.message}\n")
        return 1

    document = Document.build(artifact, session, PlainTextParser())
    if not document.ok:
        stderr.write(f"{document.render()}\n")
        return 1
    _write_document(text=document.render(), stdout=stdout)
    return 0


def _run_watch(
    args: argparse.Namespace,
    session: CompileSession,
    stdout: TextIO,
    stderr: TextIO,
) -> int:
    """Print one artifact and re-print it on every change until interrupted."""
    session.set_extra_args(parse_extra_args(args.extra_args))
    source = _resolve_source(args)
    provider = DocumentProvider(session=session)
    changed = threading.Event()
    provider.on_document_changed(lambda _artifact: changed.set())
    try:
        try:
            _write_document(
                text=provider.request_artifact(source, ArtifactKind(args.kind)),
                stdout=stdout,
            )
        except NotFoundError as exc:
            stderr.write(f"{exc}\n")
            return 2
        artifact = session.artifact_for(source, ArtifactKind(args.kind))
        while True:
            changed.wait()
            changed.clear()
            if artifact is None:
                continue
            _write_document(text=provider.get_document(artifact).render(), stdout=stdout)
    except KeyboardInterrupt:
        logger.info("Watch interrupted")
        return 0
    finally:
        provider.dispose()


def _write_document(text: str, stdout: TextIO) -> None:
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def _write_table(session: CompileSession, stdout: TextIO) -> None:
    """Write every registered artifact grouped by source.

    Args:
        session: Loaded compile session.
        stdout: Standard output stream.
    """
    console = Console(file=stdout, force_terminal=False, color_system="truecolor")
    console.rule(f"{session.database_path}", style=Style(color="cyan"), characters="-")
    table = Table(show_header=True, show_lines=True, expand=True)
    table.add_column("source", ratio=TABLE_COLUMN_RATIOS["source"], overflow="fold")
    table.add_column("kind", ratio=TABLE_COLUMN_RATIOS["kind"], overflow="fold")
    table.add_column("artifact", ratio=TABLE_COLUMN_RATIOS["artifact"], overflow="fold")
    for record in session.records():
        table.add_row(str(record.source), record.kind.value, str(record.artifact))
    console.print(table)


def main() -> None:
    """Run the CLI application and exit."""
    configure_logging()
    exit_code = run(sys.argv[1:], stdout=sys.stdout, stderr=sys.stderr)
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
