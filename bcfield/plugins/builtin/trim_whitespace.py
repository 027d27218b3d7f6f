"""Built-in plugin: trims surrounding whitespace from the field value."""

from __future__ import annotations

import re
from typing import Any

from bcfield.plugins.base import PluginDescriptor, PluginHooks, PluginMetadata

_INNER_WHITESPACE = re.compile(r"\s+")


def _transform(value: str, config: dict[str, Any]) -> str:
    value = value.strip()
    if config.get("collapse_inner"):
        value = _INNER_WHITESPACE.sub(" ", value)
    return value


TRIM_WHITESPACE = PluginDescriptor(
    id="trim-whitespace",
    name="Trim whitespace",
    version="1.0.0",
    description="Strips leading and trailing whitespace, optionally collapsing runs",
    author="bcfield",
    category="input",
    hooks=PluginHooks(on_transform=_transform),
    metadata=PluginMetadata(min_version="0.1.0", tags=("text",), license="MIT"),
    config={"collapse_inner": False},
)
