"""Descriptor validation. Reports every problem at once."""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict

from bcfield.plugins.base import CATEGORIES, HOOK_NAMES, PluginDescriptor

VERSION_PATTERN = re.compile(r"^\d+\.\d+\.\d+$")

_REQUIRED_FIELDS = (
    ("id", "Plugin id is required"),
    ("name", "Plugin name is required"),
    ("version", "Plugin version is required"),
    ("hooks", "Plugin hooks are required"),
    ("metadata", "Plugin metadata is required"),
)


class ValidationResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    errors: list[str] = []


def validate_plugin(
    descriptor: PluginDescriptor | Mapping[str, Any],
) -> ValidationResult:
    if isinstance(descriptor, PluginDescriptor):
        data: Mapping[str, Any] = descriptor.as_mapping()
    elif isinstance(descriptor, Mapping):
        data = descriptor
    else:
        return ValidationResult(
            is_valid=False,
            errors=[
                "Plugin descriptor must be a mapping, "
                f"got {type(descriptor).__name__}"
            ],
        )

    errors: list[str] = []
    for field, message in _REQUIRED_FIELDS:
        # Empty hooks/metadata mappings are valid declarations; empty strings are not.
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value):
            errors.append(message)

    version = data.get("version")
    if version and not (isinstance(version, str) and VERSION_PATTERN.match(version)):
        errors.append("Plugin version must be in format x.y.z")

    hooks = data.get("hooks")
    if hooks is not None:
        if not isinstance(hooks, Mapping):
            errors.append("Plugin hooks must be a mapping of hook name to callable")
        else:
            invalid = [str(name) for name in hooks if name not in HOOK_NAMES]
            if invalid:
                errors.append(f"Invalid hooks: {', '.join(invalid)}")
            uncallable = [
                str(name)
                for name, hook in hooks.items()
                if name in HOOK_NAMES and hook is not None and not callable(hook)
            ]
            if uncallable:
                errors.append(f"Hooks are not callable: {', '.join(uncallable)}")

    metadata = data.get("metadata")
    if metadata and not isinstance(metadata, Mapping):
        errors.append("Plugin metadata must be a mapping")

    category = data.get("category")
    if category is not None and category not in CATEGORIES:
        errors.append(f"Invalid category: {category}")

    dependencies = data.get("dependencies")
    if dependencies is not None and (
        not isinstance(dependencies, (list, tuple))
        or not all(isinstance(d, str) for d in dependencies)
    ):
        errors.append("Plugin dependencies must be a sequence of plugin ids")

    return ValidationResult(is_valid=not errors, errors=errors)
