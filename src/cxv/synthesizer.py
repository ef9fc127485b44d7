# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Build command synthesis for each artifact kind."""

from pathlib import Path

from cxv.model import ArtifactKind, NormalizedCommand

KIND_FLAGS: dict[ArtifactKind, tuple[str, ...]] = {
    ArtifactKind.DISASSEMBLY: (
        "-g1",
        "-S",
        "-masm=intel",
        "-fno-unwind-tables",
        "-fno-asynchronous-unwind-tables",
        "-fno-dwarf2-cfi-asm",
    ),
    ArtifactKind.LLVM_IR: ("-g", "-S", "-emit-llvm"),
    ArtifactKind.PREPROCESSED: ("-E",),
}


def synthesize(command: NormalizedCommand, kind: ArtifactKind, target: Path) -> str:
    """Build the shell command line producing ``target`` for one artifact kind.

    Args:
        command: Normalized compile command.
        kind: Artifact kind to produce.
        target: Artifact output path; always double-quoted.

    Returns:
        Space-joined shell command.
    """
    parts = [
        command.compiler,
        *KIND_FLAGS[kind],
        *command.args,
        "-o",
        f'"{target}"',
    ]
    return " ".join(parts)
