"""Adapter around the esbuild command line bundler."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, Sequence
import json
import re

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner

from .errors import BundleError, Diagnostic, FilesystemError

_HEADER_PATTERN = re.compile(r"^\S*\s*\[(?P<kind>ERROR|WARNING)\]\s+(?P<text>.+?)\s*$")
_LOCATION_PATTERN = re.compile(r"^\s+(?P<file>\S.*?):(?P<line>\d+):(?P<column>\d+):\s*$")
_LEGACY_PATTERN = re.compile(
    r"^>?\s*(?P<file>\S.*?):(?P<line>\d+):(?P<column>\d+):\s*(?P<kind>error|warning):\s*(?P<text>.+?)\s*$"
)


@dataclass(slots=True)
class BundleRequest:
    entry_points: List[Path]
    outdir: Path
    metafile: Path
    splitting: bool = False
    target: str = "es2017"
    minify: bool = False
    bundle: bool = True
    platform: str = "browser"
    format: str = "esm"
    sourcemap: bool = False
    log_level: str = "warning"


@dataclass(slots=True)
class BundleResult:
    metafile: Path
    warnings: List[Diagnostic] = field(default_factory=list)


@dataclass(slots=True)
class BundleManifest:
    """The bundler's metafile: inputs and outputs keyed by relative path."""

    inputs: Dict[str, Mapping[str, Any]]
    outputs: Dict[str, Mapping[str, Any]]
    working_dir: Path

    @classmethod
    def from_file(cls, path: Path, *, working_dir: Path) -> "BundleManifest":
        try:
            data = json.loads(Path(path).read_text(encoding="utf-8"))
        except OSError as exc:
            raise FilesystemError(f"Cannot read bundler manifest '{path}': {exc}") from exc
        except ValueError as exc:
            raise FilesystemError(f"Bundler manifest '{path}' is not valid JSON: {exc}") from exc
        if not isinstance(data, Mapping):
            raise FilesystemError(f"Bundler manifest '{path}' must contain an object")
        inputs = data.get("inputs", {})
        outputs = data.get("outputs", {})
        if not isinstance(inputs, Mapping) or not isinstance(outputs, Mapping):
            raise FilesystemError(f"Bundler manifest '{path}' has malformed inputs/outputs")
        return cls(inputs=dict(inputs), outputs=dict(outputs), working_dir=Path(working_dir))

    def absolute(self, key: str) -> Path:
        path = Path(key)
        return path if path.is_absolute() else self.working_dir / path


class Bundler(Protocol):
    def build(self, request: BundleRequest) -> BundleResult:
        ...


def parse_diagnostics(stderr: str) -> tuple[List[Diagnostic], List[Diagnostic]]:
    """Split esbuild's human-readable log output into errors and warnings."""

    errors: List[Diagnostic] = []
    warnings: List[Diagnostic] = []
    pending: Dict[str, Any] | None = None

    def flush() -> None:
        if pending is None:
            return
        target = errors if pending["kind"] == "error" else warnings
        target.append(
            Diagnostic(
                text=pending["text"],
                file=pending.get("file"),
                line=pending.get("line"),
                column=pending.get("column"),
            )
        )

    for raw in stderr.splitlines():
        header = _HEADER_PATTERN.match(raw)
        if header:
            flush()
            pending = {"kind": header.group("kind").lower(), "text": header.group("text")}
            continue
        legacy = _LEGACY_PATTERN.match(raw)
        if legacy:
            flush()
            pending = {
                "kind": legacy.group("kind"),
                "text": legacy.group("text"),
                "file": legacy.group("file"),
                "line": int(legacy.group("line")),
                "column": int(legacy.group("column")),
            }
            continue
        if pending is not None and "file" not in pending:
            location = _LOCATION_PATTERN.match(raw)
            if location:
                pending["file"] = location.group("file")
                pending["line"] = int(location.group("line"))
                pending["column"] = int(location.group("column"))
    flush()
    return errors, warnings


class EsbuildBundler:
    """Runs the ``esbuild`` executable and reports its diagnostics."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        executable: Sequence[str] = ("esbuild",),
        cwd: Path | None = None,
    ):
        self.runner = runner or SubprocessCommandRunner()
        self.executable = list(executable)
        self.cwd = cwd

    def command(self, request: BundleRequest) -> List[str]:
        command = [*self.executable, *(str(entry) for entry in request.entry_points)]
        if request.bundle:
            command.append("--bundle")
        command.extend(
            [
                f"--outdir={request.outdir}",
                f"--metafile={request.metafile}",
                f"--platform={request.platform}",
                f"--format={request.format}",
                f"--target={request.target}",
                f"--log-level={request.log_level}",
                "--color=false",
            ]
        )
        if request.splitting:
            command.append("--splitting")
        if request.minify:
            command.append("--minify")
        if request.sourcemap:
            command.append("--sourcemap")
        return command

    def build(self, request: BundleRequest) -> BundleResult:
        try:
            result = self.runner.run(self.command(request), cwd=self.cwd)
        except CommandError as exc:
            errors, warnings = parse_diagnostics(exc.result.stderr)
            if not errors:
                errors = [Diagnostic(text=f"esbuild exited with code {exc.result.returncode}")]
            raise BundleError("esbuild failed", errors=errors, warnings=warnings) from exc
        except OSError as exc:
            raise BundleError(
                "Cannot start esbuild",
                errors=[Diagnostic(text=str(exc))],
            ) from exc

        _, warnings = parse_diagnostics(result.stderr)
        return BundleResult(metafile=request.metafile, warnings=warnings)


__all__ = [
    "BundleManifest",
    "BundleRequest",
    "BundleResult",
    "Bundler",
    "EsbuildBundler",
    "parse_diagnostics",
]
