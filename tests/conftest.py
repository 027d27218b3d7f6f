"""Shared fixtures and descriptor helpers for testing."""

from __future__ import annotations

import os
from typing import Any

import pytest

from bcfield.core.cache import PluginCache
from bcfield.core.config import RuntimeConfig
from bcfield.core.diagnostics import Diagnostics
from bcfield.core.events import EventBus
from bcfield.core.metrics import MetricsTable
from bcfield.core.runtime import PluginRuntime
from bcfield.core.safety.audit import AuditLogger
from bcfield.core.safety.permissions import PermissionGate
from bcfield.plugins.hooks import HookExecutor
from bcfield.plugins.registry import PluginRegistry


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Prevent .env file and shell env from leaking into tests.

    RuntimeConfig.model_config has env_file=".env" which loads the project
    .env relative to cwd. Nullify it at the source.
    """
    monkeypatch.setitem(RuntimeConfig.model_config, "env_file", None)
    for key in list(os.environ):
        if key.startswith("BCFIELD_"):
            monkeypatch.delenv(key, raising=False)


def make_descriptor(plugin_id: str = "sample", **overrides: Any) -> dict[str, Any]:
    """Minimal valid descriptor mapping; keyword overrides replace fields."""
    descriptor: dict[str, Any] = {
        "id": plugin_id,
        "name": f"{plugin_id} plugin",
        "version": "1.0.0",
        "description": "Test plugin",
        "author": "tests",
        "category": "custom",
        "dependencies": [],
        "hooks": {},
        "metadata": {},
        "config": {},
    }
    descriptor.update(overrides)
    return descriptor


@pytest.fixture
def config():
    return RuntimeConfig(load_retry_delay_seconds=0, tracing_enabled=True)


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def metrics(config):
    return MetricsTable(config)


@pytest.fixture
def diagnostics(config):
    return Diagnostics(config)


@pytest.fixture
def cache(config):
    return PluginCache(config)


@pytest.fixture
def registry(config, metrics, diagnostics, event_bus, cache):
    return PluginRegistry(config, metrics, diagnostics, event_bus, cache)


@pytest.fixture
def gate(config):
    return PermissionGate(config)


@pytest.fixture
def executor(config, registry, metrics, diagnostics, gate):
    return HookExecutor(config, registry, metrics, diagnostics, gate)


@pytest.fixture
def audit_logger(tmp_path):
    return AuditLogger(tmp_path / "audit.jsonl")


@pytest.fixture
def runtime(config):
    return PluginRuntime(config)
