"""Per-file compilation with runtime helper injection."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Any, Dict
import os
import posixpath
import re

from core.console import Console

from .compiler import Compiler
from .config import HostConfig, PluginOptions, compiler_options
from .errors import FilesystemError
from .sourcemap import SourceMapStitcher

HELPER_MODULE = "imba/dist/imba.js"
SOURCE_SUFFIXES = (".imba", ".imba2")
TARGET_SUFFIX = ".js"

_SOURCE_SUFFIX_PATTERN = re.compile(r"\.imba\d?$", re.IGNORECASE)


@dataclass(frozen=True, slots=True)
class CompiledUnit:
    source_path: Path
    output_path: Path
    code: str
    source_map: Dict[str, Any] | None = None


def output_path_for(source_path: Path) -> Path:
    text = str(source_path)
    replaced = _SOURCE_SUFFIX_PATTERN.sub(TARGET_SUFFIX, text)
    if replaced == text:
        replaced = str(Path(text).with_suffix(TARGET_SUFFIX))
    return Path(replaced)


def helper_import(web_modules_url: str) -> str:
    return f"import '{posixpath.join(web_modules_url, HELPER_MODULE)}';\n"


def _relative_to(path: Path, base: Path) -> Path:
    absolute = path if path.is_absolute() else base / path
    try:
        return Path(os.path.relpath(absolute, base))
    except ValueError:
        # Different drives on Windows.
        return absolute


class TranspileStage:
    """Compiles one source file and prepends the runtime helper import."""

    def __init__(
        self,
        compiler: Compiler,
        host: HostConfig,
        options: PluginOptions,
        *,
        console: Console | None = None,
        working_dir: Path | None = None,
    ):
        self.compiler = compiler
        self.host = host
        self.options = options
        self.console = console or Console()
        self.working_dir = working_dir
        self.stitcher = SourceMapStitcher(self.console)

    def compiler_options(self, source_path: Path, output_path: Path) -> Dict[str, Any]:
        return compiler_options(
            self.host,
            self.options,
            filename=source_path.name,
            source_path=PurePosixPath(*source_path.parts).as_posix(),
            target_path=PurePosixPath(*output_path.parts).as_posix(),
        )

    def transpile(self, source_path: Path) -> CompiledUnit:
        working_dir = self.working_dir or Path.cwd()
        relative = _relative_to(Path(source_path), working_dir)
        output_path = output_path_for(relative)

        try:
            source = (working_dir / relative).read_text(encoding="utf-8")
        except OSError as exc:
            raise FilesystemError(f"Cannot read source file '{relative}': {exc}") from exc

        options = self.compiler_options(relative, output_path)
        self.console.debug(f"Compiling {relative} -> {output_path}")
        result = self.compiler.compile(source, options)

        prefix = helper_import(self.host.web_modules_url)
        source_map = result.source_map
        if options.get("sourceMap") is False or source_map is None:
            self.console.debug(f"No debug map for {relative}, prepending helper import only")
            return CompiledUnit(source_path=relative, output_path=output_path, code=prefix + result.code)

        source_map = {key: value for key, value in source_map.items() if key != "maps"}
        code, stitched = self.stitcher.stitch_with_map(result.code, source_map, prefix, file=output_path.name)
        return CompiledUnit(source_path=relative, output_path=output_path, code=code, source_map=stitched)


__all__ = [
    "CompiledUnit",
    "HELPER_MODULE",
    "SOURCE_SUFFIXES",
    "TARGET_SUFFIX",
    "TranspileStage",
    "helper_import",
    "output_path_for",
]
