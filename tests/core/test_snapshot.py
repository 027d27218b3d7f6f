"""Tests for snapshot export, parsing and descriptor rebuilding."""

from __future__ import annotations

import json

import pytest

from bcfield.core.snapshot import export_snapshot, parse_snapshot, rebuild_descriptor
from bcfield.exceptions import SnapshotError
from bcfield.plugins.base import (
    LoadedPlugin,
    PluginDescriptor,
    PluginHooks,
    PluginMetadata,
)


def _on_change(value):
    return value


def _descriptor(version="1.0.0"):
    return PluginDescriptor(
        id="p1",
        name="P1",
        version=version,
        hooks=PluginHooks(on_change=_on_change),
        metadata=PluginMetadata(tags=("a",)),
    )


class TestExport:
    def test_records_hook_names_and_state(self):
        plugin = LoadedPlugin(descriptor=_descriptor(), config={"k": 1}, active=False)
        data = json.loads(export_snapshot({"p1": plugin}))
        assert data["version"] == 1
        entry = data["plugins"]["p1"]
        assert entry["hooks"] == ["on_change"]
        assert entry["config"] == {"k": 1}
        assert entry["active"] is False
        assert entry["metadata"]["tags"] == ["a"]

    def test_non_json_config_values_stringified(self):
        plugin = LoadedPlugin(descriptor=_descriptor(), config={"obj": object()})
        data = json.loads(export_snapshot({"p1": plugin}))
        assert isinstance(data["plugins"]["p1"]["config"]["obj"], str)


class TestParse:
    def test_invalid_json(self):
        with pytest.raises(SnapshotError, match="not valid JSON"):
            parse_snapshot("{nope")

    def test_wrong_shape(self):
        with pytest.raises(SnapshotError):
            parse_snapshot("[]")
        with pytest.raises(SnapshotError):
            parse_snapshot('{"version": 1, "plugins": []}')

    def test_wrong_version(self):
        with pytest.raises(SnapshotError, match="version"):
            parse_snapshot('{"version": 2, "plugins": {}}')

    def test_entries_in_order(self):
        plugins = {"b": {"id": "b"}, "a": {"id": "a"}}
        text = json.dumps({"version": 1, "plugins": plugins})
        assert [e["id"] for e in parse_snapshot(text)] == ["b", "a"]


class TestRebuild:
    def test_hooks_rebound_when_version_matches(self):
        entry = {"id": "p1", "version": "1.0.0", "hooks": ["on_change"], "active": True}
        rebuilt = rebuild_descriptor(entry, _descriptor())
        assert rebuilt["hooks"] == {"on_change": _on_change}
        assert "active" not in rebuilt

    def test_hooks_dropped_on_version_mismatch(self):
        entry = {"id": "p1", "version": "2.0.0", "hooks": ["on_change"]}
        assert rebuild_descriptor(entry, _descriptor())["hooks"] == {}

    def test_hooks_dropped_when_unknown(self):
        entry = {"id": "p1", "version": "1.0.0", "hooks": ["on_change"]}
        assert rebuild_descriptor(entry, None)["hooks"] == {}
