"""Host build tool plugin exposing the ``load`` and ``optimize`` hooks."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping

from core.console import Console

from .bundle import BundleStage, ReconcileReport
from .bundler import Bundler, EsbuildBundler
from .compiler import Compiler, ImbaCompiler
from .config import HostConfig, PluginOptions, bundler_settings
from .entrypoints import MISSING_ENTRYPOINTS_HINT, EntrypointResolver
from .paths import lookup_key
from .transpile import HELPER_MODULE, SOURCE_SUFFIXES, TARGET_SUFFIX, TranspileStage

PLUGIN_NAME = "imba-snowpack"


class ImbaPlugin:
    name = PLUGIN_NAME

    def __init__(
        self,
        host: HostConfig,
        options: PluginOptions,
        *,
        compiler: Compiler | None = None,
        bundler: Bundler | None = None,
        console: Console | None = None,
        working_dir: Path | None = None,
    ):
        self.host = host
        self.options = options
        self.console = console or Console.for_debug(options.debug)
        self.working_dir = working_dir

        if not options.entrypoints:
            self.console.warning(f"Missing script entrypoints!\n{MISSING_ENTRYPOINTS_HINT}")
        self.entrypoints: List[str] = [lookup_key(entry) for entry in options.entrypoints]

        self.transpiler = TranspileStage(
            compiler or ImbaCompiler(cwd=working_dir),
            host,
            options,
            console=self.console,
            working_dir=working_dir,
        )
        self.resolver = EntrypointResolver(console=self.console)
        self.bundle_stage = BundleStage(
            bundler or EsbuildBundler(cwd=working_dir),
            console=self.console,
            working_dir=working_dir,
        )

    @property
    def resolve(self) -> Dict[str, List[str]]:
        return {"input": list(SOURCE_SUFFIXES), "output": [TARGET_SUFFIX]}

    @property
    def known_entrypoints(self) -> List[str]:
        return [HELPER_MODULE]

    def load(self, file_path: Path) -> Dict[str, str]:
        unit = self.transpiler.transpile(Path(file_path))
        return {TARGET_SUFFIX: unit.code}

    def optimize(self, build_directory: Path) -> ReconcileReport | None:
        if not self.host.bundle:
            self.console.debug("Bundling disabled in devOptions.bundle, skipping optimize")
            return None

        build_directory = Path(build_directory)
        entrypoints = self.resolver.resolve(
            self.options.entrypoints,
            build_directory,
            scan_markup=self.options.smartscan,
        )
        if not entrypoints:
            self.console.warning("No entrypoint resolved to a script in the build directory, skipping bundling")
            return None

        settings = bundler_settings(self.host, self.options)
        report = self.bundle_stage.run(
            entrypoints,
            build_directory,
            splitting=bool(settings["splitting"]),
            target=str(settings["target"]),
            minify=bool(settings["minify"]),
            transient=self._transient_artifacts(),
        )
        if report is not None:
            self.host.build_minify = False
        return report

    def _transient_artifacts(self) -> List[Path]:
        paths = [self.host.import_map_path(), self.host.env_script_path()]
        if self.working_dir is None:
            return paths
        return [path if path.is_absolute() else self.working_dir / path for path in paths]


def create_plugin(host: Mapping[str, Any] | HostConfig, options: Mapping[str, Any] | PluginOptions, **kwargs: Any) -> ImbaPlugin:
    """Build a plugin from raw host and plugin configuration mappings."""

    if not isinstance(host, HostConfig):
        host = HostConfig.from_mapping(host)
    if not isinstance(options, PluginOptions):
        options = PluginOptions.from_mapping(options)
    return ImbaPlugin(host, options, **kwargs)


__all__ = ["ImbaPlugin", "PLUGIN_NAME", "create_plugin"]
