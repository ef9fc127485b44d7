# Copyright 2026 Zsolt Kulcsar and Contributors. Licensed under the EUPL-1.2 or later
"""Error taxonomy for artifact builds."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cxv.model import BuildResult


class CxvError(RuntimeError):
    """Represent any failure raised by the artifact pipeline."""


class ConfigurationError(CxvError):
    """Represent a missing or unreadable compilation database."""


class ParseError(CxvError):
    """Represent a malformed compilation database or schema violation."""


class NotFoundError(CxvError):
    """Represent a missing build record for a requested artifact."""


class ArtifactIOError(CxvError):
    """Represent a filesystem access failure around artifacts."""


class BuildError(CxvError):
    """Represent a failed artifact build.

    Attributes:
        result: Captured result of the failed build.
    """

    def __init__(self, result: "BuildResult") -> None:
        super().__init__(result.message)
        self.result = result
