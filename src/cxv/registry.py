# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Registry mapping sources to artifacts and artifacts to build records."""

import logging
import os
from collections.abc import Iterator
from pathlib import Path

from cxv.model import ArtifactKind, BuildRecord, NormalizedCommand
from cxv.synthesizer import synthesize

logger = logging.getLogger(__name__)

_FLATTENED_CHARS = str.maketrans({os.sep: "@", "/": "@", ".": "@"})


class ArtifactRegistry:
    """Cache artifact identifiers and build records for one database load.

    Every artifact reachable from a kind map has a build record.
    """

    def __init__(self, project_root: Path, output_dir: Path) -> None:
        """Initialize an empty registry.

        Args:
            project_root: Root that artifact names are made relative to.
            output_dir: Directory receiving artifact files.
        """
        self._project_root = project_root
        self._output_dir = output_dir
        self._by_kind: dict[ArtifactKind, dict[Path, Path]] = {
            kind: {} for kind in ArtifactKind
        }
        self._records: dict[Path, BuildRecord] = {}

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    def artifact_path(self, source: Path, kind: ArtifactKind) -> Path:
        """Compute the deterministic artifact path for a source and kind.

        Separators and dots of the project-relative source path become ``@``.
        """
        relative = os.path.relpath(source, self._project_root)
        flattened = relative.translate(_FLATTENED_CHARS)
        return self._output_dir / f"{flattened}{kind.extension(source)}"

    def register(self, command: NormalizedCommand) -> bool:
        """Insert the three build records for one normalized command.

        Args:
            command: Normalized compilation database entry.

        Returns:
            ``False`` when the entry was skipped because its artifact names are
            already taken by a different source.
        """
        artifacts = {kind: self.artifact_path(command.source, kind) for kind in ArtifactKind}
        for artifact in artifacts.values():
            owner = self._records.get(artifact)
            if owner is not None and owner.source != command.source:
                logger.warning(
                    f"Skipping compile command with colliding artifact name "
                    f"(source={command.source} owner={owner.source} artifact={artifact})"
                )
                return False

        for kind, artifact in artifacts.items():
            previous = self._by_kind[kind].get(command.source)
            if previous is not None:
                logger.debug(
                    f"Replacing duplicate compile command (source={command.source} kind={kind.value})"
                )
                self._records.pop(previous, None)
            self._by_kind[kind][command.source] = artifact
            self._records[artifact] = BuildRecord(
                artifact=artifact,
                source=command.source,
                kind=kind,
                command=synthesize(command, kind, artifact),
                compilation_directory=command.directory,
            )
        return True

    def artifact_for(self, source: Path, kind: ArtifactKind) -> Path | None:
        return self._by_kind[kind].get(source)

    def record_for(self, artifact: Path) -> BuildRecord | None:
        return self._records.get(artifact)

    def source_for(self, artifact: Path) -> Path | None:
        record = self._records.get(artifact)
        return record.source if record else None

    def records(self) -> Iterator[BuildRecord]:
        return iter(list(self._records.values()))

    def clear(self) -> None:
        """Drop every mapping and build record."""
        for mapping in self._by_kind.values():
            mapping.clear()
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)
