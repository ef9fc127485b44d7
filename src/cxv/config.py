# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Explorer configuration and path placeholder resolution."""

import os
from dataclasses import dataclass
from pathlib import Path

WORKSPACE_PLACEHOLDER = "${workspaceFolder}"
COMPILE_COMMANDS_FILE = "compile_commands.json"
DEFAULT_OUTPUT_DIR = f"{WORKSPACE_PLACEHOLDER}/.cxv"
DEFAULT_BUILD_TIMEOUT = 120.0


def resolve_path(value: str, project_root: Path) -> Path:
    """Expand the workspace placeholder and ``~`` in a configured path.

    Args:
        value: Configured path, possibly containing ``${workspaceFolder}``.
        project_root: Directory substituted for the placeholder.

    Returns:
        Absolute path. Relative results are anchored at ``project_root``.
    """
    expanded = Path(value.replace(WORKSPACE_PLACEHOLDER, str(project_root)))
    expanded = expanded.expanduser()
    if not expanded.is_absolute():
        expanded = project_root / expanded
    return Path(os.path.abspath(expanded))


@dataclass(frozen=True)
class ExplorerConfig:
    """Configure one explorer session.

    Attributes:
        project_root: Workspace root; artifact names are relative to it.
        output_dir: Artifact output directory setting.
        compile_commands_dir: Directory holding ``compile_commands.json``.
        build_timeout: Seconds before a build is abandoned; ``None`` waits forever.
    """

    project_root: Path
    output_dir: str = DEFAULT_OUTPUT_DIR
    compile_commands_dir: str = WORKSPACE_PLACEHOLDER
    build_timeout: float | None = DEFAULT_BUILD_TIMEOUT

    @property
    def root(self) -> Path:
        return Path(os.path.abspath(self.project_root.expanduser()))

    @property
    def resolved_output_dir(self) -> Path:
        return resolve_path(self.output_dir, self.root)

    @property
    def database_path(self) -> Path:
        return resolve_path(self.compile_commands_dir, self.root) / COMPILE_COMMANDS_FILE
