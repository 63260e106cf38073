"""Project bundling and reconciliation of bundler output with the build tree."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Sequence
import os
import shutil
import tempfile

from core.console import Console

from .bundler import BundleManifest, BundleRequest, Bundler
from .errors import BundleError, Diagnostic, RelocationWarning


def _is_within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


def unlink_prune_parents(path: Path, root: Path, console: Console | None = None) -> List[Path]:
    """Delete ``path`` then every parent directory it leaves empty.

    Pruning stops at the first non-empty directory and never removes
    ``root`` itself. A missing ``path`` is not an error; any other
    filesystem error is reported on ``console`` and ends pruning. Returns
    the directories that were removed.
    """

    console = console or Console()
    root = Path(root).absolute()
    path = Path(path).absolute()
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        console.warning(f"Cannot remove {path}: {exc}")
        return []

    removed: List[Path] = []
    directory = path.parent
    while directory != root and _is_within(directory, root):
        try:
            if any(directory.iterdir()):
                break
            directory.rmdir()
        except FileNotFoundError:
            pass
        except OSError as exc:
            console.warning(f"Cannot prune {directory}: {exc}")
            break
        removed.append(directory)
        directory = directory.parent
    return removed



@dataclass(slots=True)
class RelocationPlan:
    """Destination for every bundler output, keyed by its temporary path."""

    moves: Dict[Path, Path] = field(default_factory=dict)

    @classmethod
    def from_manifest(cls, manifest: BundleManifest, build_root: Path) -> "RelocationPlan":
        build_root = Path(build_root).absolute()
        lookup: Dict[str, Path] = {}
        for key in manifest.inputs:
            lookup[Path(key).name] = manifest.absolute(key).absolute()

        moves: Dict[Path, Path] = {}
        for key, metadata in manifest.outputs.items():
            output = manifest.absolute(key)
            destination = lookup.get(output.name)
            if destination is None:
                entry_point = metadata.get("entryPoint") if isinstance(metadata, Mapping) else None
                if entry_point:
                    destination = manifest.absolute(entry_point).absolute().parent / output.name
            if destination is None or not _is_within(destination, build_root):
                destination = build_root / output.name
            moves[output] = destination
        return cls(moves=moves)


@dataclass(slots=True)
class ReconcileReport:
    plan: RelocationPlan
    deleted_inputs: List[Path] = field(default_factory=list)
    failures: List[RelocationWarning] = field(default_factory=list)


class BundleStage:
    """Bundles resolved entrypoints and moves the output back into place."""

    def __init__(
        self,
        bundler: Bundler,
        *,
        console: Console | None = None,
        working_dir: Path | None = None,
    ):
        self.bundler = bundler
        self.console = console or Console()
        # Manifest paths are relative to the directory the bundler ran in.
        self.working_dir = working_dir

    def _report(self, kind: str, diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            message = diagnostic.format(kind)
            if kind == "error":
                self.console.error(message)
            else:
                self.console.warning(message)

    def run(
        self,
        entrypoints: Sequence[Path],
        build_root: Path,
        *,
        splitting: bool = False,
        target: str = "es2017",
        minify: bool = False,
        transient: Sequence[Path] = (),
    ) -> ReconcileReport | None:
        """Bundle ``entrypoints`` and reconcile the output onto ``build_root``.

        Returns ``None`` when the bundler fails; the build tree is then left
        untouched.
        """

        build_root = Path(build_root).absolute()
        temp_dir = Path(tempfile.mkdtemp(prefix="esbuild_"))
        try:
            request = BundleRequest(
                entry_points=list(entrypoints),
                outdir=temp_dir,
                metafile=temp_dir / "meta.json",
                splitting=splitting,
                target=target,
                minify=minify,
            )
            self.console.debug(f"Bundling {len(request.entry_points)} entrypoint(s) into {temp_dir}")
            try:
                result = self.bundler.build(request)
            except BundleError as exc:
                self._report("error", exc.errors)
                self._report("warning", exc.warnings)
                return None
            self._report("warning", result.warnings)

            manifest = BundleManifest.from_file(
                result.metafile,
                working_dir=self.working_dir or Path.cwd(),
            )
            return self.reconcile(manifest, build_root, transient=transient)
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    def reconcile(
        self,
        manifest: BundleManifest,
        build_root: Path,
        *,
        transient: Sequence[Path] = (),
    ) -> ReconcileReport:
        build_root = Path(build_root).absolute()
        report = ReconcileReport(plan=RelocationPlan.from_manifest(manifest, build_root))

        for key in manifest.inputs:
            path = manifest.absolute(key).absolute()
            if not _is_within(path, build_root):
                self.console.debug(f"Keeping bundler input outside the build tree: {path}")
                continue
            unlink_prune_parents(path, build_root, self.console)
            if not path.exists():
                report.deleted_inputs.append(path)
        self.console.debug(f"Removed {len(report.deleted_inputs)} bundled input(s)")

        for source, destination in report.plan.moves.items():
            try:
                destination.parent.mkdir(parents=True, exist_ok=True)
                if destination.is_file() or destination.is_symlink():
                    destination.unlink()
                shutil.move(os.fspath(source), os.fspath(destination))
                self.console.debug(f"Moved {source.name} -> {destination}")
            except OSError as exc:
                failure = RelocationWarning(source=source, destination=destination, reason=str(exc))
                report.failures.append(failure)
                self.console.warning(str(failure))

        for artifact in transient:
            artifact = Path(artifact).absolute()
            if _is_within(artifact, build_root):
                unlink_prune_parents(artifact, build_root, self.console)

        return report


__all__ = [
    "BundleStage",
    "ReconcileReport",
    "RelocationPlan",
    "unlink_prune_parents",
]
