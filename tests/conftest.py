import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest


def _add_src_to_path() -> None:
    root = Path(__file__).resolve().parents[1]
    src_path = root / "src"
    if str(src_path) not in sys.path:
        sys.path.insert(0, str(src_path))


_add_src_to_path()

from cxv.builder import ProcessOutcome  # noqa: E402
from cxv.config import ExplorerConfig  # noqa: E402
from cxv.session import CompileSession  # noqa: E402

BASE_MTIME = 1000.0


def set_mtime(path: Path, mtime: float) -> None:
    os.utime(path, (mtime, mtime))


def output_target(command: str) -> Path:
    """Extract the quoted ``-o`` target of a synthesized command."""
    return Path(command.split(' -o "', 1)[1].split('"', 1)[0])


class RecordingRunner:
    """Record build commands and write artifacts with increasing mtimes."""

    def __init__(
        self,
        exit_code: int | None = 0,
        artifact_text: str = "main:\n\tmov eax, 0\n\tret",
        stderr: str = "",
    ) -> None:
        self.exit_code = exit_code
        self.artifact_text = artifact_text
        self.stderr = stderr
        self.calls: list[tuple[str, Path]] = []
        self.next_mtime = 2000.0

    def run(self, command: str, cwd: Path) -> ProcessOutcome:
        self.calls.append((command, cwd))
        if self.exit_code == 0:
            target = output_target(command)
            target.write_text(self.artifact_text, encoding="utf-8")
            set_mtime(target, self.next_mtime)
            self.next_mtime += 1000.0
        return ProcessOutcome(stdout="", stderr=self.stderr, exit_code=self.exit_code)


class RecordingDemangler:
    def __init__(self) -> None:
        self.calls: list[Path] = []

    def demangle_file(self, path: Path) -> None:
        self.calls.append(path)


class FakeClock:
    def __init__(self, now: float = 1500.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@dataclass
class Project:
    root: Path
    config: ExplorerConfig
    runner: RecordingRunner = field(default_factory=RecordingRunner)
    demangler: RecordingDemangler = field(default_factory=RecordingDemangler)
    clock: FakeClock = field(default_factory=FakeClock)

    @property
    def database(self) -> Path:
        return self.config.database_path

    def write_source(self, name: str, text: str = "int main(void) { return 0; }\n") -> Path:
        path = self.root / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        set_mtime(path, BASE_MTIME)
        return path

    def write_database(self, entries: list[dict[str, object]], mtime: float = BASE_MTIME) -> None:
        self.database.write_text(json.dumps(entries), encoding="utf-8")
        set_mtime(self.database, mtime)

    def entry(self, name: str, flags: str = "-O2") -> dict[str, object]:
        return {
            "file": name,
            "directory": str(self.root),
            "command": f"/usr/bin/cc {flags} -c {name} -o {name}.o",
        }

    def session(self) -> CompileSession:
        return CompileSession(
            self.config,
            runner=self.runner,
            demangler=self.demangler,
            clock=self.clock,
        )


@pytest.fixture
def project(tmp_path: Path) -> Project:
    root = tmp_path / "project"
    root.mkdir()
    return Project(root=root, config=ExplorerConfig(project_root=root))
