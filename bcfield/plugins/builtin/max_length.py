"""Built-in plugin: rejects values longer than a configured limit."""

from __future__ import annotations

from typing import Any

from bcfield.plugins.base import (
    FieldCheck,
    PluginDescriptor,
    PluginHooks,
    PluginMetadata,
)


def _validate(value: str, config: dict[str, Any]) -> FieldCheck:
    limit = config.get("max_length")
    if limit is None or len(value) <= limit:
        return FieldCheck(is_valid=True)
    return FieldCheck(is_valid=False, message=f"Must be at most {limit} characters")


MAX_LENGTH = PluginDescriptor(
    id="max-length",
    name="Maximum length",
    version="1.0.0",
    description="Fails validation when the value exceeds config.max_length",
    author="bcfield",
    category="validation",
    hooks=PluginHooks(on_validate=_validate),
    metadata=PluginMetadata(min_version="0.1.0", tags=("validation",), license="MIT"),
    config={"max_length": 255},
)
