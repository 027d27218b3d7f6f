"""Direct (one-level) dependency check against the loaded set."""

from __future__ import annotations

from collections.abc import Collection, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from bcfield.plugins.base import PluginDescriptor


class DependencyReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    satisfied: bool
    missing: list[str] = []


def check_dependencies(
    descriptor: PluginDescriptor | Mapping[str, Any],
    loaded_ids: Collection[str],
) -> DependencyReport:
    """Report declared dependencies that are not currently loaded.

    Transitive dependencies are not walked and cycles are not detected:
    a dependency counts as satisfied as soon as its id is loaded.
    """
    if isinstance(descriptor, PluginDescriptor):
        declared: Any = descriptor.dependencies
    else:
        declared = descriptor.get("dependencies") or ()

    missing = [dep for dep in declared if dep not in loaded_ids]
    return DependencyReport(satisfied=not missing, missing=missing)
