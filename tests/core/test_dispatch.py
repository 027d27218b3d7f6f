"""Tests for fan-out hook dispatch across active plugins."""

from __future__ import annotations

import pytest

from bcfield.core.dispatch import HookDispatcher
from bcfield.plugins.base import FieldCheck
from bcfield.plugins.builtin.wordlist_suggest import WORDLIST_SUGGEST
from tests.conftest import make_descriptor


def _boom(*args):
    raise RuntimeError("boom")


@pytest.fixture
def dispatcher(registry, executor, cache):
    return HookDispatcher(registry, executor, cache)


class TestDispatch:
    @pytest.mark.asyncio
    async def test_dispatch_collects_results(self, registry, dispatcher):
        await registry.load(make_descriptor("a", hooks={"on_change": lambda v: 1}))
        await registry.load(make_descriptor("b", hooks={"on_change": lambda v: 2}))
        await registry.load(make_descriptor("c"))
        assert dispatcher.dispatch("on_change", "x") == {"a": 1, "b": 2}

    @pytest.mark.asyncio
    async def test_dispatch_skips_failing_plugin(self, registry, dispatcher, metrics):
        await registry.load(make_descriptor("a", hooks={"on_change": _boom}))
        await registry.load(make_descriptor("b", hooks={"on_change": lambda v: 2}))
        assert dispatcher.dispatch("on_change", "x") == {"b": 2}
        assert metrics.get("a").error_count == 1
        assert metrics.get("b").success_count == 1

    @pytest.mark.asyncio
    async def test_dispatch_skips_inactive(self, registry, dispatcher):
        await registry.load(make_descriptor("a", hooks={"on_focus": lambda: 1}))
        registry.disable("a")
        assert dispatcher.dispatch("on_focus") == {}


class TestTransform:
    @pytest.mark.asyncio
    async def test_chains_in_activation_order(self, registry, dispatcher):
        await registry.load(
            make_descriptor("strip", hooks={"on_transform": lambda v, c: v.strip()})
        )
        await registry.load(
            make_descriptor("upper", hooks={"on_transform": lambda v, c: v.upper()})
        )
        assert dispatcher.transform("  abc ") == "ABC"

    @pytest.mark.asyncio
    async def test_non_string_result_ignored(self, registry, dispatcher):
        await registry.load(
            make_descriptor("bad", hooks={"on_transform": lambda v, c: None})
        )
        await registry.load(make_descriptor("fail", hooks={"on_transform": _boom}))
        assert dispatcher.transform("abc") == "abc"

    @pytest.mark.asyncio
    async def test_receives_plugin_config(self, registry, dispatcher):
        await registry.load(
            make_descriptor(
                "suffix",
                hooks={"on_transform": lambda v, c: v + c["suffix"]},
                config={"suffix": "!"},
            )
        )
        assert dispatcher.transform("hi") == "hi!"


class TestValidate:
    @pytest.mark.asyncio
    async def test_result_shapes(self, registry, dispatcher):
        await registry.load(
            make_descriptor(
                "typed", hooks={"on_validate": lambda v, c: FieldCheck(is_valid=True)}
            )
        )
        await registry.load(
            make_descriptor(
                "mapping",
                hooks={
                    "on_validate": lambda v, c: {"is_valid": False, "message": "no"}
                },
            )
        )
        await registry.load(
            make_descriptor("boolean", hooks={"on_validate": lambda v, c: False})
        )
        await registry.load(
            make_descriptor("junk", hooks={"on_validate": lambda v, c: {"x": 1}})
        )
        checks = dispatcher.validate("value")
        assert checks["typed"].is_valid
        assert checks["mapping"] == FieldCheck(is_valid=False, message="no")
        assert not checks["boolean"].is_valid
        assert checks["junk"].message == "Malformed validation result"

    @pytest.mark.asyncio
    async def test_failing_validator_reported_invalid(self, registry, dispatcher):
        await registry.load(make_descriptor("bad", hooks={"on_validate": _boom}))
        check = dispatcher.validate("value")["bad"]
        assert not check.is_valid
        assert check.message == "Validator failed: boom"


class TestSuggestAndComplete:
    @pytest.mark.asyncio
    async def test_suggestions_merged_without_duplicates(self, registry, dispatcher):
        await registry.load(
            make_descriptor("a", hooks={"on_suggest": lambda v, c: ["x", "y"]})
        )
        await registry.load(
            make_descriptor("b", hooks={"on_suggest": lambda v, c: ["y", "z"]})
        )
        assert dispatcher.suggest("q") == ["x", "y", "z"]

    @pytest.mark.asyncio
    async def test_suggestions_cached_per_value(self, registry, dispatcher):
        calls = []

        def suggest(value, config):
            calls.append(value)
            return [value + "1"]

        await registry.load(make_descriptor("a", hooks={"on_suggest": suggest}))
        assert dispatcher.suggest("q") == ["q1"]
        assert dispatcher.suggest("q") == ["q1"]
        assert dispatcher.suggest("r") == ["r1"]
        assert calls == ["q", "r"]

    @pytest.mark.asyncio
    async def test_config_change_refreshes_suggestions(self, registry, dispatcher):
        await registry.load(WORDLIST_SUGGEST)
        registry.update_config("wordlist-suggest", {"words": ["apple"]})
        assert dispatcher.suggest("ap") == ["apple"]

        registry.update_config("wordlist-suggest", {"words": ["apricot"]})
        assert dispatcher.suggest("ap") == ["apricot"]

    @pytest.mark.asyncio
    async def test_complete_returns_first_non_empty(self, registry, dispatcher):
        await registry.load(make_descriptor("a", hooks={"on_complete": _boom}))
        await registry.load(
            make_descriptor("b", hooks={"on_complete": lambda v, c: ""})
        )
        await registry.load(
            make_descriptor("c", hooks={"on_complete": lambda v, c: v + "lo"})
        )
        assert dispatcher.complete("hel") == "hello"

    def test_complete_with_no_plugins(self, dispatcher):
        assert dispatcher.complete("x") is None
