"""Discovery of the script files handed to the bundler."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, List

from core.config_loader import normalize_string_list
from core.console import Console

from . import references
from .errors import ConfigError, FilesystemError
from .paths import PathCorrelator, lookup_key

MISSING_ENTRYPOINTS_HINT = (
    "Add one or multiple entrypoints to the plugin configuration, e.g.\n"
    '  "plugins": [ ["imbapack", {"entrypoints": ["main.imba"]}] ]'
)


class EntrypointResolver:
    def __init__(self, correlator: PathCorrelator | None = None, console: Console | None = None):
        self.correlator = correlator or PathCorrelator()
        self.console = console or Console()

    def _scan_markup(self, markup_files: Iterable[Path]) -> List[str]:
        found: List[str] = []
        for markup in markup_files:
            try:
                text = markup.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                raise FilesystemError(f"Cannot read markup file '{markup}': {exc}") from exc
            specifiers = list(references.scan(text))
            self.console.debug(f"{markup}: {len(specifiers)} script reference(s) {specifiers}")
            found.extend(specifiers)
        return found

    def resolve(self, configured: Any, build_root: Path, *, scan_markup: bool = True) -> List[Path]:
        """Return the ordered, deduplicated absolute paths of the entrypoints.

        ``configured`` may be a single name or a sequence of names. Names and
        markup references that match no script under ``build_root`` are
        dropped.
        """

        try:
            names = normalize_string_list(configured, field_name="entrypoints")
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

        walk = self.correlator.walk(Path(build_root))
        candidates = list(names)
        if scan_markup:
            candidates.extend(self._scan_markup(walk.markup_files))

        resolved: List[Path] = []
        seen: set[Path] = set()
        for candidate in candidates:
            path = walk.scripts_by_basename.get(lookup_key(candidate))
            if path is None:
                self.console.debug(f"Entrypoint candidate '{candidate}' matches no script, skipped")
                continue
            if path in seen:
                continue
            seen.add(path)
            resolved.append(path)
            self.console.debug(f"Entrypoint '{candidate}' -> {path}")

        if not resolved and not names:
            raise ConfigError(f"Missing entrypoints.\n{MISSING_ENTRYPOINTS_HINT}")
        return resolved


__all__ = ["EntrypointResolver", "MISSING_ENTRYPOINTS_HINT"]
