# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Line parser contract for artifact text and a plain default parser."""

import re
from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class PlainLine:
    """Represent one artifact line without an address."""

    text: str
    source_line: int | None = None


@dataclass(frozen=True)
class AddressedLine:
    """Represent one artifact line carrying a raw numeric address."""

    text: str
    address: int
    source_line: int | None = None


Line = PlainLine | AddressedLine


@dataclass(frozen=True)
class FilterOptions:
    """Options passed to the line parser.

    Attributes:
        binary: Parse ``<hex address>: text`` lines into addressed lines.
    """

    binary: bool = False


class AssemblyParser(Protocol):
    """Parse raw compiler output into line records."""

    def parse(self, text: str, options: FilterOptions) -> list[Line]:
        """Parse artifact text into lines."""


_LOC_DIRECTIVE = re.compile(r"^\s*\.loc\s+\d+\s+(\d+)")
_ADDRESSED = re.compile(r"^\s*([0-9a-fA-F]+):\s?(.*)$")


class PlainTextParser:
    """Keep every line, tracking ``.loc`` directives as the source line."""

    def parse(self, text: str, options: FilterOptions) -> list[Line]:
        lines: list[Line] = []
        source_line: int | None = None
        for raw in text.splitlines():
            loc = _LOC_DIRECTIVE.match(raw)
            if loc:
                source_line = int(loc.group(1))
            if options.binary:
                addressed = _ADDRESSED.match(raw)
                if addressed:
                    lines.append(
                        AddressedLine(
                            text=addressed.group(2),
                            address=int(addressed.group(1), 16),
                            source_line=source_line,
                        )
                    )
                    continue
            lines.append(PlainLine(text=raw, source_line=source_line))
        return lines
