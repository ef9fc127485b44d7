# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Domain models for compile commands and derived artifacts."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from cxv.errors import BuildError


class ArtifactKind(str, Enum):
    """Derived view of a source file, valued by its artifact namespace."""

    DISASSEMBLY = "disassembly"
    LLVM_IR = "llvm-ir"
    PREPROCESSED = "preprocessed-source"

    def extension(self, source: Path) -> str:
        """Return the artifact file extension for ``source``."""
        if self is ArtifactKind.DISASSEMBLY:
            return ".s"
        if self is ArtifactKind.LLVM_IR:
            return ".ll"
        return f".E{source.suffix}"


@dataclass(frozen=True)
class CompileCommand:
    """Represent one raw compilation database entry.

    Attributes:
        file: Source file path, possibly relative to ``directory``.
        directory: Working directory of the original compilation.
        command: Raw shell command string, if present.
        arguments: Argument vector, if present.
    """

    file: str
    directory: str
    command: str | None = None
    arguments: list[str] | None = None


@dataclass(frozen=True)
class NormalizedCommand:
    """Represent a compile command ready for artifact synthesis.

    Attributes:
        source: Absolute source file path.
        directory: Compilation working directory.
        compiler: Compiler executable token.
        args: Arguments without output-control flags.
    """

    source: Path
    directory: Path
    compiler: str
    args: list[str]


@dataclass
class BuildRecord:
    """Describe how to build one artifact.

    ``last_extra_args`` changes only after a successful build.
    """

    artifact: Path
    source: Path
    kind: ArtifactKind
    command: str
    compilation_directory: Path
    last_extra_args: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BuildResult:
    """Represent the outcome of one build invocation.

    Attributes:
        success: Whether the build produced the artifact.
        command: Full command line that was run, empty when no build ran.
        stdout: Captured standard output.
        stderr: Captured standard error.
        exit_code: Process exit status, ``None`` if the process never finished.
    """

    success: bool
    command: str = ""
    stdout: str = ""
    stderr: str = ""
    exit_code: int | None = 0

    @classmethod
    def up_to_date(cls) -> "BuildResult":
        return cls(success=True)

    @property
    def message(self) -> str:
        """Renderable description of a failed build."""
        if self.success:
            return ""
        output = "\n".join(part for part in (self.stdout, self.stderr) if part)
        code = "null" if self.exit_code is None else str(self.exit_code)
        return f"{output}  failed with error code {code}"

    def raise_for_status(self) -> None:
        """Raise ``BuildError`` when the build failed."""
        if not self.success:
            raise BuildError(self)
