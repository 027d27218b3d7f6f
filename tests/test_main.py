"""Tests for the CLI entry point."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest

from bcfield.main import main

GOOD = """\
id: good
name: Good
version: 1.0.0
metadata: {}
"""

BAD = """\
id: bad
name: Bad
version: one
metadata: {}
category: widgets
"""


@pytest.fixture
def manifests(tmp_path):
    good = tmp_path / "good.yaml"
    good.write_text(GOOD)
    bad = tmp_path / "bad.yaml"
    bad.write_text(BAD)
    return good, bad


class TestValidateCommand:
    @pytest.mark.asyncio
    async def test_valid_manifest(self, manifests, capsys):
        good, _ = manifests
        assert await main(["validate", str(good)]) == 0
        assert "ok (good)" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_invalid_manifest_reports_every_error(self, manifests, capsys):
        good, bad = manifests
        assert await main(["validate", str(good), str(bad)]) == 1
        err = capsys.readouterr().err
        assert "Plugin version must be in format x.y.z" in err
        assert "Invalid category: widgets" in err

    @pytest.mark.asyncio
    async def test_unreadable_manifest(self, tmp_path, capsys):
        assert await main(["validate", str(tmp_path / "missing.yaml")]) == 1
        assert "Cannot read plugin manifest" in capsys.readouterr().err


class TestSnapshotCommand:
    @pytest.mark.asyncio
    async def test_prints_snapshot(self, manifests, capsys, monkeypatch):
        good, _ = manifests
        monkeypatch.setenv("BCFIELD_BUILTIN_PLUGINS", "max-length")
        with patch("bcfield.app._configure_logging"):
            assert await main(["snapshot", str(good)]) == 0
        data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert list(data["plugins"]) == ["max-length", "good"]

    @pytest.mark.asyncio
    async def test_failing_manifest_exits_non_zero(self, manifests, capsys):
        _, bad = manifests
        with patch("bcfield.app._configure_logging"):
            assert await main(["snapshot", str(bad)]) == 1
        assert "Plugin runtime failed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_config_error(self, monkeypatch, capsys):
        monkeypatch.setenv("BCFIELD_LOAD_RETRIES", "-1")
        assert await main(["snapshot"]) == 1
        assert "Configuration error" in capsys.readouterr().err
