"""Host and plugin configuration models."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping

import yaml

from core.config_loader import load_config_file, merge_mappings, normalize_string_list, resolve_layers

from .errors import ConfigError

PLUGIN_KEYS = frozenset({"entrypoints", "splitting", "target", "minify", "debug", "smartscan"})
"""Plugin options consumed by the stages; every other key is forwarded to the compiler."""

COMPILER_DEFAULTS: Mapping[str, Any] = {
    "standalone": True,
    "sourceMap": True,
    "evaling": True,
    "target": "web",
    "format": "esm",
    "es6": True,
    "sourceRoot": "",
}

BUNDLER_DEFAULTS: Mapping[str, Any] = {
    "splitting": False,
    "target": "es2017",
    "minify": False,
}


def _section(data: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, Mapping):
        raise ConfigError(f"[{name}] must be a mapping")
    return value


def _optional_bool(value: Any, *, field_name: str) -> bool | None:
    if value is None:
        return None
    if not isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a boolean if specified")
    return value


@dataclass(slots=True)
class HostConfig:
    """Subset of the host build tool configuration the plugin reads.

    ``build_minify`` is mutable: the bundle stage clears it once the bundler
    has minified the output.
    """

    source_map: bool | None = None
    web_modules_url: str = "/web_modules"
    meta_dir: str = "__snowpack__"
    build_minify: bool = False
    out_dir: str = "build"
    bundle: bool = False

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "HostConfig":
        install = _section(data, "installOptions")
        build = _section(data, "buildOptions")
        dev = _section(data, "devOptions")
        return cls(
            source_map=_optional_bool(install.get("sourceMap"), field_name="installOptions.sourceMap"),
            web_modules_url=str(build.get("webModulesUrl", "/web_modules")),
            meta_dir=str(build.get("metaDir", "__snowpack__")),
            build_minify=bool(build.get("minify", False)),
            out_dir=str(dev.get("out", "build")),
            bundle=bool(dev.get("bundle", False)),
        )

    def import_map_path(self) -> Path:
        return Path(self.out_dir) / self.web_modules_url.lstrip("/") / "import-map.json"

    def env_script_path(self) -> Path:
        return Path(self.out_dir) / self.meta_dir.lstrip("/") / "env.js"


@dataclass(slots=True)
class PluginOptions:
    entrypoints: List[str] = field(default_factory=list)
    splitting: bool | None = None
    target: str | None = None
    minify: bool | None = None
    debug: bool = False
    smartscan: bool = True
    compiler_options: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PluginOptions":
        try:
            entrypoints = normalize_string_list(data.get("entrypoints"), field_name="entrypoints")
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc
        target = data.get("target")
        smartscan = _optional_bool(data.get("smartscan"), field_name="smartscan")
        return cls(
            entrypoints=entrypoints,
            splitting=_optional_bool(data.get("splitting"), field_name="splitting"),
            target=str(target) if target is not None else None,
            minify=_optional_bool(data.get("minify"), field_name="minify"),
            debug=bool(data.get("debug", False)),
            smartscan=True if smartscan is None else smartscan,
            compiler_options={str(key): value for key, value in data.items() if key not in PLUGIN_KEYS},
        )


def compiler_options(
    host: HostConfig,
    options: PluginOptions,
    *,
    filename: str,
    source_path: str,
    target_path: str,
) -> Dict[str, Any]:
    """Build the option record handed to the compiler for a single file."""

    defaults = dict(COMPILER_DEFAULTS)
    if host.source_map is not None:
        defaults["sourceMap"] = host.source_map
    path_fields = {
        "filename": filename,
        "sourcePath": source_path,
        "targetPath": target_path,
    }
    record = resolve_layers(defaults, options.compiler_options)
    record.update(path_fields)
    return record


def bundler_settings(host: HostConfig, options: PluginOptions) -> Dict[str, Any]:
    """Resolve the splitting/target/minify trio for the bundler."""

    return resolve_layers(
        BUNDLER_DEFAULTS,
        {"minify": host.build_minify},
        {"splitting": options.splitting, "target": options.target, "minify": options.minify},
    )


def load_project_config(*paths: Path) -> tuple[HostConfig, PluginOptions]:
    """Load host sections and the ``plugin`` section from one or more files.

    Files are deep-merged in order, so later files override earlier ones.
    """

    if not paths:
        raise ConfigError("At least one configuration file is required")

    data: Dict[str, Any] = {}
    for path in paths:
        try:
            loaded = load_config_file(path)
        except OSError as exc:
            raise ConfigError(f"Cannot read configuration file '{path}': {exc}") from exc
        except (TypeError, ValueError, yaml.YAMLError) as exc:
            raise ConfigError(f"Invalid configuration file '{path}': {exc}") from exc
        data = merge_mappings(data, loaded)

    host_data = {key: value for key, value in data.items() if key != "plugin"}
    return HostConfig.from_mapping(host_data), PluginOptions.from_mapping(_section(data, "plugin"))


__all__ = [
    "BUNDLER_DEFAULTS",
    "COMPILER_DEFAULTS",
    "HostConfig",
    "PLUGIN_KEYS",
    "PluginOptions",
    "bundler_settings",
    "compiler_options",
    "load_project_config",
]
