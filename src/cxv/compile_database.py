# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Compilation database loading and command normalization."""

import json
import logging
import os
import re
from pathlib import Path

from cxv.errors import ConfigurationError, ParseError
from cxv.model import CompileCommand, NormalizedCommand

logger = logging.getLogger(__name__)

# Shell word: a run of non-space non-quote characters optionally followed by a
# double-quoted span that may contain escaped quotes.
_SHELL_WORD = re.compile(r'[^"\s]*(?:"(?:\\"|[^"])+")?')

_DROPPED_FLAGS = frozenset({"-c", "-g"})
_OUTPUT_FLAG = "-o"


def load_compile_commands(path: Path) -> list[CompileCommand]:
    """Load every entry of a compilation database.

    Args:
        path: ``compile_commands.json`` file path.

    Returns:
        Raw compile commands in file order.

    Raises:
        ConfigurationError: If the file is missing or unreadable.
        ParseError: If the JSON is malformed or an entry violates the schema.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning(
            f"Compilation database is not readable (path={path} error={exc})"
        )
        raise ConfigurationError(f"Cannot read compilation database {path}: {exc}") from exc

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        logger.warning(f"Compilation database is not valid JSON (path={path} error={exc})")
        raise ParseError(f"Malformed compilation database {path}: {exc}") from exc

    if not isinstance(payload, list):
        raise ParseError(f"Compilation database {path} must contain a JSON array.")
    return [_parse_entry(entry, index) for index, entry in enumerate(payload)]


def _parse_entry(entry: object, index: int) -> CompileCommand:
    if not isinstance(entry, dict):
        raise ParseError(f"Entry {index} is not a JSON object.")
    file = entry.get("file")
    directory = entry.get("directory")
    if not isinstance(file, str) or not isinstance(directory, str):
        raise ParseError(f"Entry {index} requires string 'file' and 'directory'.")

    command = entry.get("command")
    arguments = entry.get("arguments")
    if command is None and arguments is None:
        raise ParseError(f"Entry {index} requires 'command' or 'arguments'.")
    if command is not None and not isinstance(command, str):
        raise ParseError(f"Entry {index} has a non-string 'command'.")
    if arguments is not None and (
        not isinstance(arguments, list)
        or not all(isinstance(arg, str) for arg in arguments)
    ):
        raise ParseError(f"Entry {index} has a non-string-list 'arguments'.")
    return CompileCommand(
        file=file, directory=directory, command=command, arguments=arguments
    )


def split_command(command: str) -> list[str]:
    """Split a shell command on whitespace, keeping double-quoted spans intact.

    Quotes are preserved in the tokens since commands are re-joined for the shell.
    """
    return [token for token in _SHELL_WORD.findall(command) if token]


def sanitize_args(args: list[str]) -> list[str]:
    """Drop ``-c``, ``-g`` and every ``-o <value>`` pair.

    Args:
        args: Raw compiler arguments without the executable.

    Returns:
        Arguments with output-control flags removed.
    """
    sanitized: list[str] = []
    skip_next = False
    for arg in args:
        if skip_next:
            skip_next = False
            continue
        if arg == _OUTPUT_FLAG:
            skip_next = True
            continue
        if arg in _DROPPED_FLAGS:
            continue
        sanitized.append(arg)
    return sanitized


def process(entry: CompileCommand) -> NormalizedCommand:
    """Normalize one raw entry into compiler, arguments and source path.

    Args:
        entry: Raw compilation database entry.

    Returns:
        Normalized command.

    Raises:
        ParseError: If the entry yields no compiler token.
    """
    if entry.command:
        tokens = split_command(entry.command)
    else:
        tokens = [arg for arg in entry.arguments or [] if arg]
    if not tokens:
        raise ParseError(f"Entry for {entry.file} has an empty command.")

    source = Path(os.path.abspath(os.path.join(entry.directory, entry.file)))
    return NormalizedCommand(
        source=source,
        directory=Path(entry.directory),
        compiler=tokens[0],
        args=sanitize_args(tokens[1:]),
    )
