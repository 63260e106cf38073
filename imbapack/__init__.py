"""Imba transpilation and esbuild bundling stages for the snowpack build pipeline."""

from .config import HostConfig, PluginOptions, load_project_config
from .errors import (
    BundleError,
    CompileError,
    ConfigError,
    FilesystemError,
    ImbaPackError,
    RelocationWarning,
    SourceMapError,
)
from .plugin import ImbaPlugin, create_plugin

__all__ = [
    "BundleError",
    "CompileError",
    "ConfigError",
    "FilesystemError",
    "HostConfig",
    "ImbaPackError",
    "ImbaPlugin",
    "PluginOptions",
    "RelocationWarning",
    "SourceMapError",
    "create_plugin",
    "load_project_config",
]
