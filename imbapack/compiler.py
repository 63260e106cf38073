"""Adapter around the Imba compiler running under Node.js."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Protocol, Sequence
import json

from core.command_runner import CommandError, CommandRunner, SubprocessCommandRunner

from .errors import CompileError
from .sourcemap import read_inline_map

COMPILER_MODULE = "imba/dist/compiler.js"

_NODE_SCRIPT = r"""
const compiler = require(process.env.IMBAPACK_COMPILER);
let input = '';
process.stdin.setEncoding('utf8');
process.stdin.on('data', (chunk) => { input += chunk; });
process.stdin.on('end', () => {
  const request = JSON.parse(input);
  const result = compiler.compile(request.source, request.options);
  const errors = (result.errors || []).map((e) => String((e && e.message) || e));
  process.stdout.write(JSON.stringify({
    code: result.js,
    sourceMap: result.sourcemap || null,
    errors: errors,
  }));
});
"""


@dataclass(frozen=True, slots=True)
class CompileResult:
    code: str
    source_map: Dict[str, Any] | None = None


class Compiler(Protocol):
    def compile(self, source: str, options: Mapping[str, Any]) -> CompileResult:
        ...


class ImbaCompiler:
    """Compiles Imba source by piping a JSON request through ``node``."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        *,
        node: Sequence[str] = ("node",),
        module: str = COMPILER_MODULE,
        cwd: Path | None = None,
    ):
        self.runner = runner or SubprocessCommandRunner()
        self.node = list(node)
        self.module = module
        self.cwd = cwd

    def command(self) -> List[str]:
        return [*self.node, "-e", _NODE_SCRIPT]

    def compile(self, source: str, options: Mapping[str, Any]) -> CompileResult:
        label = options.get("sourcePath") or options.get("filename") or "<source>"
        request = json.dumps({"source": source, "options": dict(options)})
        try:
            result = self.runner.run(
                self.command(),
                cwd=self.cwd,
                env={"IMBAPACK_COMPILER": self.module},
                input_text=request,
            )
        except CommandError as exc:
            raise CompileError(f"Imba compiler failed for {label}: {exc}") from exc
        except OSError as exc:
            raise CompileError(f"Cannot start the Imba compiler: {exc}") from exc

        try:
            payload = json.loads(result.stdout)
        except ValueError as exc:
            raise CompileError(f"Imba compiler returned invalid output for {label}: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("code"), str):
            raise CompileError(f"Imba compiler returned no code for {label}")

        errors = payload.get("errors") or []
        if errors:
            raise CompileError(f"{label}: " + "\n".join(str(error) for error in errors))

        code = payload["code"]
        source_map = payload.get("sourceMap")
        if not isinstance(source_map, dict):
            source_map = read_inline_map(code)
        return CompileResult(code=code, source_map=source_map)


__all__ = ["COMPILER_MODULE", "CompileResult", "Compiler", "ImbaCompiler"]
