"""YAML plugin manifests and ``module:attribute`` source resolution."""

from __future__ import annotations

import importlib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml

from bcfield.exceptions import PluginError
from bcfield.plugins.base import PluginDescriptor

logger = structlog.get_logger()


def resolve_import_path(path: str) -> Any:
    """Import ``package.module:attr.sub`` and return the named object."""
    module_name, sep, attr = path.partition(":")
    if not sep or not module_name or not attr:
        raise PluginError(f"Invalid import path {path!r}, expected 'module:attribute'")
    try:
        target: Any = importlib.import_module(module_name)
    except ImportError as e:
        raise PluginError(f"Cannot import {module_name}: {e}") from e
    for part in attr.split("."):
        try:
            target = getattr(target, part)
        except AttributeError as e:
            raise PluginError(f"{module_name} has no attribute {attr}") from e
    return target


def resolve_descriptor_source(source: str) -> PluginDescriptor | dict[str, Any]:
    """Resolve an install source to a descriptor or descriptor mapping.

    The import path may name a descriptor, a mapping, or a zero-argument
    factory returning either. Remote sources are not supported.
    """
    if "://" in source:
        raise PluginError(f"Unsupported plugin source: {source}")
    target = resolve_import_path(source)
    if callable(target) and not isinstance(target, PluginDescriptor):
        target = target()
    if isinstance(target, PluginDescriptor):
        return target
    if isinstance(target, Mapping):
        return dict(target)
    raise PluginError(
        f"Plugin source {source} resolved to {type(target).__name__}, "
        "expected a plugin descriptor"
    )


def load_manifest(path: Path | str) -> dict[str, Any]:
    """Read a YAML manifest into a descriptor mapping with hooks resolved.

    The result is not validated here; it goes through the normal load path.
    """
    path = Path(path)
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise PluginError(f"Cannot read plugin manifest {path}: {e}") from e

    if not isinstance(data, dict):
        raise PluginError(f"Plugin manifest {path} must contain a mapping")

    hooks = data.get("hooks") or {}
    if not isinstance(hooks, dict):
        raise PluginError(f"Plugin manifest {path}: hooks must be a mapping")
    data["hooks"] = {
        name: resolve_import_path(target) if isinstance(target, str) else target
        for name, target in hooks.items()
    }
    logger.debug("plugin_manifest_loaded", path=str(path), plugin_id=data.get("id"))
    return data
