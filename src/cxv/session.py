# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Compile session owning the artifact registry for one host session."""

import logging
import time
from collections.abc import Callable
from pathlib import Path

from cxv.builder import (
    BuildExecutor,
    CommandRunner,
    CxxFiltDemangler,
    Demangler,
    ShellCommandRunner,
)
from cxv.compile_database import load_compile_commands, process
from cxv.config import ExplorerConfig
from cxv.errors import ArtifactIOError, CxvError, NotFoundError
from cxv.model import ArtifactKind, BuildRecord, BuildResult
from cxv.registry import ArtifactRegistry
from cxv.staleness import file_newer, needs_build

logger = logging.getLogger(__name__)


def parse_extra_args(text: str) -> list[str]:
    """Split user-entered extra build arguments on whitespace."""
    return text.split()


class CompileSession:
    """Serve artifact lookups and builds, reloading the database when it changes.

    Every public operation first checks whether the compilation database was
    modified since the last load and reloads it fully if so.
    """

    def __init__(
        self,
        config: ExplorerConfig,
        runner: CommandRunner | None = None,
        demangler: Demangler | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize an unloaded session.

        Args:
            config: Explorer configuration.
            runner: Build command runner; defaults to a shell runner using the
                configured timeout.
            demangler: Post-build demangler; defaults to ``c++filt``.
            clock: Wall clock used to stamp database loads.
        """
        self._config = config
        self._database_path = config.database_path
        self._registry = ArtifactRegistry(
            project_root=config.root, output_dir=config.resolved_output_dir
        )
        self._executor = BuildExecutor(
            runner=runner or ShellCommandRunner(timeout=config.build_timeout),
            demangler=demangler or CxxFiltDemangler(),
        )
        self._clock = clock
        self._loaded_at: float | None = None
        self._extra_args: list[str] = []

    @property
    def database_path(self) -> Path:
        return self._database_path

    @property
    def output_dir(self) -> Path:
        return self._registry.output_dir

    @property
    def extra_args(self) -> list[str]:
        return list(self._extra_args)

    def set_extra_args(self, args: list[str]) -> None:
        self._extra_args = list(args)

    def load(self) -> int:
        """Load the compilation database into an emptied registry.

        Returns:
            Number of registered compile commands.

        Raises:
            ConfigurationError: If the database is missing or unreadable.
            ParseError: If the database is malformed.
            ArtifactIOError: If the output directory cannot be created.
        """
        self._registry.clear()
        self._loaded_at = self._clock()
        commands = [process(entry) for entry in load_compile_commands(self._database_path)]
        for command in commands:
            self._registry.register(command)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ArtifactIOError(
                f"Cannot create output directory {self.output_dir}: {exc}"
            ) from exc
        logger.info(
            f"Compilation database loaded (path={self._database_path} entries={len(commands)})"
        )
        return len(commands)

    def refresh(self) -> None:
        """Reload the database when it changed since the last load."""
        if self._loaded_at is not None and not file_newer(
            self._database_path, self._loaded_at
        ):
            return
        try:
            self.load()
        except CxvError as exc:
            self._registry.clear()
            logger.warning(
                f"Compilation database reload failed; registry left empty "
                f"(path={self._database_path} error={exc})"
            )

    def artifact_for(self, source: Path, kind: ArtifactKind) -> Path | None:
        self.refresh()
        return self._registry.artifact_for(source, kind)

    def source_for(self, artifact: Path) -> Path | None:
        self.refresh()
        return self._registry.source_for(artifact)

    def record_for(self, artifact: Path) -> BuildRecord | None:
        self.refresh()
        return self._registry.record_for(artifact)

    def records(self) -> list[BuildRecord]:
        self.refresh()
        return list(self._registry.records())

    def compile(self, artifact: Path) -> BuildResult:
        """Build ``artifact`` if it is stale.

        Args:
            artifact: Artifact path.

        Returns:
            Build result; an up-to-date artifact succeeds without building.

        Raises:
            NotFoundError: If no build record exists for ``artifact``.
        """
        record = self.record_for(artifact)
        if record is None:
            raise NotFoundError(f"No compile command produces {artifact}")
        if not needs_build(record, self._extra_args, self._database_path):
            logger.debug(f"Artifact is up to date (artifact={artifact})")
            return BuildResult.up_to_date()
        return self._executor.execute(record, self._extra_args)
