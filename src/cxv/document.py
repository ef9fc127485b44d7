# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Renderable documents backed by built artifacts."""

import logging
from dataclasses import dataclass, field
from pathlib import Path

from cxv.parser import AddressedLine, AssemblyParser, FilterOptions, Line
from cxv.session import CompileSession

logger = logging.getLogger(__name__)

COMPILE_FAILED_TEXT = "Failed to compile."


@dataclass(frozen=True)
class Document:
    """Represent the parsed view of one artifact, or the error that replaced it.

    Attributes:
        artifact: Artifact path this document renders.
        lines: Parsed lines; empty when ``error`` is set.
        error: Error text shown instead of lines, ``None`` on success.
        source_mapping: Source line to output line indexes.
    """

    artifact: Path
    lines: list[Line] = field(default_factory=list)
    error: str | None = None
    source_mapping: dict[int, list[int]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failed(cls, artifact: Path, error: str) -> "Document":
        return cls(artifact=artifact, error=error)

    @classmethod
    def build(
        cls,
        artifact: Path,
        session: CompileSession,
        parser: AssemblyParser,
        options: FilterOptions | None = None,
    ) -> "Document":
        """Compile the artifact if needed and parse it.

        Args:
            artifact: Artifact path.
            session: Session that knows how to build the artifact.
            parser: Line parser for the artifact text.
            options: Parser options; defaults to non-binary parsing.

        Returns:
            Parsed document, or a document carrying the build error text.

        Raises:
            NotFoundError: If the session has no record for ``artifact``.
        """
        result = session.compile(artifact)
        if not result.success:
            return cls.failed(artifact, result.message)
        try:
            text = artifact.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            logger.warning(f"Built artifact is not readable (artifact={artifact} error={exc})")
            return cls.failed(artifact, f"Cannot read {artifact}: {exc}")

        lines = parser.parse(text, options or FilterOptions())
        mapping: dict[int, list[int]] = {}
        for index, line in enumerate(lines):
            if line.source_line is not None:
                mapping.setdefault(line.source_line, []).append(index)
        return cls(artifact=artifact, lines=lines, source_mapping=mapping)

    def render(self) -> str:
        """Render the document text shown to the host."""
        if self.error is not None:
            return self.error or COMPILE_FAILED_TEXT
        return "\n".join(_render_line(line) for line in self.lines)


def _render_line(line: Line) -> str:
    if isinstance(line, AddressedLine):
        return f"<{line.address:08x}> {line.text}"
    return line.text
