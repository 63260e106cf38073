"""Error taxonomy for the transpile and bundle stages."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List


class ImbaPackError(RuntimeError):
    """Base class for all errors raised by :mod:`imbapack`."""


class ConfigError(ImbaPackError):
    """Raised when the plugin configuration cannot be satisfied."""


class CompileError(ImbaPackError):
    """Raised when the Imba compiler rejects a source file."""


class FilesystemError(ImbaPackError):
    """Raised when a required directory walk or file read fails."""


class SourceMapError(ImbaPackError):
    """Raised inside the stitcher when a debug map cannot be rebuilt."""


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single bundler message, optionally anchored to a source location."""

    text: str
    file: str | None = None
    line: int | None = None
    column: int | None = None

    def format(self, kind: str) -> str:
        location = ""
        if self.file:
            parts = [self.file]
            if self.line is not None:
                parts.append(str(self.line))
                if self.column is not None:
                    parts.append(str(self.column))
            location = ":".join(parts) + " "
        return f"{location}bundler {kind}: {self.text}"


class BundleError(ImbaPackError):
    """Raised by the bundler adapter when bundling fails."""

    def __init__(
        self,
        message: str,
        *,
        errors: List[Diagnostic] | None = None,
        warnings: List[Diagnostic] | None = None,
    ):
        super().__init__(message)
        self.errors = list(errors or [])
        self.warnings = list(warnings or [])


@dataclass(slots=True)
class RelocationWarning:
    """Records a bundler output that could not be moved into place."""

    source: Path
    destination: Path
    reason: str = field(default="")

    def __str__(self) -> str:
        return f"Could not move {self.source} to {self.destination}: {self.reason}"


__all__ = [
    "BundleError",
    "CompileError",
    "ConfigError",
    "Diagnostic",
    "FilesystemError",
    "ImbaPackError",
    "RelocationWarning",
    "SourceMapError",
]
