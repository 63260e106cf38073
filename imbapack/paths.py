"""Directory walking and case-insensitive basename lookup tables."""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Deque, Dict, List
import os

from .errors import FilesystemError


class FileKind(str, Enum):
    SCRIPT = "script"
    MARKUP = "markup"
    OTHER = "other"


@dataclass(frozen=True, slots=True)
class SourceUnit:
    path: Path
    name: str
    stem: str
    kind: FileKind


@dataclass(slots=True)
class WalkResult:
    units: List[SourceUnit] = field(default_factory=list)
    scripts_by_basename: Dict[str, Path] = field(default_factory=dict)
    markup_files: List[Path] = field(default_factory=list)


def lookup_key(name: str) -> str:
    """Return the lookup key for ``name``: lowercase basename without extension.

    Accepts bare names, relative or absolute paths (either separator) and URL
    specifiers.
    """

    base = PurePosixPath(name.replace("\\", "/")).name
    stem, _ = os.path.splitext(base)
    return (stem or base).lower()


class PathCorrelator:
    """Breadth-first directory walker that classifies scripts and markup."""

    def __init__(self, *, script_suffix: str = ".js", markup_suffix: str = ".html"):
        self.script_suffix = script_suffix.lower()
        self.markup_suffix = markup_suffix.lower()

    def classify(self, name: str) -> tuple[FileKind, str]:
        lowered = name.lower()
        if lowered.endswith(self.script_suffix):
            return FileKind.SCRIPT, lowered[: -len(self.script_suffix)]
        if lowered.endswith(self.markup_suffix):
            return FileKind.MARKUP, lowered[: -len(self.markup_suffix)]
        return FileKind.OTHER, os.path.splitext(lowered)[0]

    def walk(self, root: Path) -> WalkResult:
        root = Path(root).absolute()
        result = WalkResult()
        pending: Deque[Path] = deque([root])

        while pending:
            directory = pending.popleft()
            try:
                with os.scandir(directory) as iterator:
                    entries = sorted(iterator, key=lambda entry: entry.name)
                for entry in entries:
                    path = directory / entry.name
                    if entry.is_dir(follow_symlinks=False):
                        pending.append(path)
                        continue
                    if not entry.is_file():
                        continue
                    kind, stem = self.classify(entry.name)
                    unit = SourceUnit(path=path, name=entry.name.lower(), stem=stem, kind=kind)
                    result.units.append(unit)
                    if kind is FileKind.SCRIPT:
                        result.scripts_by_basename[stem] = path
                    elif kind is FileKind.MARKUP:
                        result.markup_files.append(path)
            except OSError as exc:
                raise FilesystemError(f"Cannot read directory '{directory}': {exc}") from exc

        return result


__all__ = ["FileKind", "PathCorrelator", "SourceUnit", "WalkResult", "lookup_key"]
