"""JSON snapshot of the loaded-plugin map.

Hook callables cannot be serialized, so a snapshot records hook *names*
only. On import, hooks are rebound from a descriptor known to the runtime
when its id and version match the entry; otherwise the entry is restored
without hooks.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from bcfield.exceptions import SnapshotError

if TYPE_CHECKING:
    from bcfield.plugins.base import LoadedPlugin, PluginDescriptor

SNAPSHOT_VERSION = 1


def export_snapshot(plugins: Mapping[str, LoadedPlugin]) -> str:
    entries: dict[str, Any] = {}
    for plugin_id, plugin in plugins.items():
        descriptor = plugin.descriptor
        entries[plugin_id] = {
            "id": descriptor.id,
            "name": descriptor.name,
            "version": descriptor.version,
            "description": descriptor.description,
            "author": descriptor.author,
            "category": descriptor.category,
            "dependencies": list(descriptor.dependencies),
            "hooks": descriptor.hooks.present(),
            "metadata": descriptor.metadata.model_dump(mode="json"),
            "config": plugin.config,
            "active": plugin.active,
        }
    return json.dumps({"version": SNAPSHOT_VERSION, "plugins": entries}, default=str)


def parse_snapshot(text: str) -> list[Any]:
    """Return snapshot entries in their recorded (load) order."""
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e
    if not isinstance(data, dict) or not isinstance(data.get("plugins"), dict):
        raise SnapshotError("Snapshot must be an object with a 'plugins' mapping")
    if data.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version: {data.get('version')}")
    return list(data["plugins"].values())


def rebuild_descriptor(
    entry: Mapping[str, Any], known: PluginDescriptor | None
) -> dict[str, Any]:
    """Turn a snapshot entry back into a loadable descriptor mapping."""
    data = {k: v for k, v in entry.items() if k not in ("hooks", "active")}
    hooks: dict[str, Any] = {}
    if known is not None and known.version == entry.get("version"):
        for name in entry.get("hooks") or []:
            hook = known.hooks.get(name)
            if hook is not None:
                hooks[name] = hook
    data["hooks"] = hooks
    return data
