# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Build execution for artifact records."""

import logging
import os
import signal
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from cxv.model import BuildRecord, BuildResult

logger = logging.getLogger(__name__)

DEMANGLER_COMMAND: tuple[str, ...] = ("c++filt", "-t")


@dataclass(frozen=True)
class ProcessOutcome:
    """Represent a finished (or never started) external process.

    Attributes:
        stdout: Captured standard output.
        stderr: Captured standard error, or the start/timeout failure text.
        exit_code: Exit status, ``None`` when the process did not finish.
    """

    stdout: str
    stderr: str
    exit_code: int | None


class CommandRunner(Protocol):
    """Run one shell command to completion."""

    def run(self, command: str, cwd: Path) -> ProcessOutcome:
        """Run ``command`` in ``cwd`` and capture its output."""


class Demangler(Protocol):
    """Rewrite mangled symbol names of a produced artifact in place."""

    def demangle_file(self, path: Path) -> None:
        """Demangle ``path`` in place; failures are logged, never raised."""


class ShellCommandRunner:
    """Run build commands through the shell, blocking until exit."""

    def __init__(self, timeout: float | None = None) -> None:
        """Initialize runner.

        Args:
            timeout: Seconds before the process is killed; ``None`` waits forever.
        """
        self._timeout = timeout

    def run(self, command: str, cwd: Path) -> ProcessOutcome:
        """Run ``command`` in its own process group.

        On timeout the whole group is killed, so compilers spawned by the
        shell do not outlive the build.
        """
        try:
            process = subprocess.Popen(
                command,
                shell=True,
                cwd=str(cwd),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                start_new_session=True,
            )
        except (OSError, ValueError) as exc:
            logger.warning(f"Build process failed to start (command={command} error={exc})")
            return ProcessOutcome(stdout="", stderr=str(exc), exit_code=None)

        try:
            stdout, stderr = process.communicate(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            logger.warning(f"Build timed out (command={command} timeout={self._timeout})")
            _kill_process_group(process)
            stdout, _ = process.communicate()
            return ProcessOutcome(
                stdout=_as_text(stdout),
                stderr=f"Build timed out after {self._timeout} seconds.",
                exit_code=None,
            )
        return ProcessOutcome(stdout=stdout, stderr=stderr, exit_code=process.returncode)


def _kill_process_group(process: subprocess.Popen[str]) -> None:
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except OSError as exc:
        logger.debug(f"Process group already gone (pid={process.pid} error={exc})")
        process.kill()


class CxxFiltDemangler:
    """Demangle C++ symbols by piping the artifact through ``c++filt``."""

    def __init__(self, command: tuple[str, ...] = DEMANGLER_COMMAND) -> None:
        self._command = command

    def demangle_file(self, path: Path) -> None:
        try:
            original = path.read_text(encoding="utf-8", errors="replace")
            completed = subprocess.run(
                list(self._command),
                input=original,
                capture_output=True,
                text=True,
                check=True,
            )
            path.write_text(completed.stdout, encoding="utf-8")
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning(f"Demangling failed; keeping artifact as is (path={path} error={exc})")


def _as_text(value: str | bytes | None) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


class BuildExecutor:
    """Run synthesized build commands and post-process their artifacts."""

    def __init__(self, runner: CommandRunner, demangler: Demangler) -> None:
        """Initialize executor.

        Args:
            runner: Shell command runner.
            demangler: Post-build demangling pass.
        """
        self._runner = runner
        self._demangler = demangler

    def execute(self, record: BuildRecord, extra_args: list[str]) -> BuildResult:
        """Build one artifact.

        Args:
            record: Record describing the build.
            extra_args: Extra arguments appended to the synthesized command.

        Returns:
            Build result. ``record.last_extra_args`` is updated only on success.
        """
        command = " ".join([record.command, *extra_args])
        logger.info(
            f"Building artifact (artifact={record.artifact} cwd={record.compilation_directory})"
        )
        logger.debug(f"Build command (command={command})")
        outcome = self._runner.run(command, record.compilation_directory)
        if outcome.exit_code != 0:
            logger.warning(
                f"Build failed (artifact={record.artifact} exit_code={outcome.exit_code})"
            )
            return BuildResult(
                success=False,
                command=command,
                stdout=outcome.stdout,
                stderr=outcome.stderr,
                exit_code=outcome.exit_code,
            )

        self._demangler.demangle_file(record.artifact)
        record.last_extra_args = list(extra_args)
        return BuildResult(
            success=True,
            command=command,
            stdout=outcome.stdout,
            stderr=outcome.stderr,
            exit_code=outcome.exit_code,
        )
