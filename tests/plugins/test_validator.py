"""Tests for descriptor validation."""

from __future__ import annotations

from bcfield.plugins.base import PluginDescriptor, PluginHooks
from bcfield.plugins.validator import validate_plugin
from tests.conftest import make_descriptor


class TestValidatePlugin:
    def test_valid_descriptor(self):
        result = validate_plugin(make_descriptor())
        assert result.is_valid
        assert result.errors == []

    def test_typed_descriptor_is_valid(self):
        descriptor = PluginDescriptor(
            id="typed", name="Typed", version="2.3.4", hooks=PluginHooks()
        )
        assert validate_plugin(descriptor).is_valid

    def test_empty_hooks_and_metadata_are_valid(self):
        result = validate_plugin(make_descriptor(hooks={}, metadata={}))
        assert result.is_valid

    def test_missing_required_fields_all_reported(self):
        result = validate_plugin({})
        assert not result.is_valid
        assert result.errors == [
            "Plugin id is required",
            "Plugin name is required",
            "Plugin version is required",
            "Plugin hooks are required",
            "Plugin metadata is required",
        ]

    def test_empty_string_id_is_missing(self):
        result = validate_plugin(make_descriptor(plugin_id=""))
        assert "Plugin id is required" in result.errors

    def test_bad_version_format(self):
        result = validate_plugin(make_descriptor(version="1.0"))
        assert result.errors == ["Plugin version must be in format x.y.z"]

    def test_version_with_suffix_rejected(self):
        result = validate_plugin(make_descriptor(version="1.0.0-beta"))
        assert "Plugin version must be in format x.y.z" in result.errors

    def test_unknown_hook_names_listed(self):
        result = validate_plugin(
            make_descriptor(hooks={"on_bogus": print, "on_other": print})
        )
        assert result.errors == ["Invalid hooks: on_bogus, on_other"]

    def test_known_hook_accepted(self):
        result = validate_plugin(make_descriptor(hooks={"on_change": print}))
        assert result.is_valid

    def test_uncallable_hook_rejected(self):
        result = validate_plugin(make_descriptor(hooks={"on_change": "nope"}))
        assert result.errors == ["Hooks are not callable: on_change"]

    def test_hooks_must_be_mapping(self):
        result = validate_plugin(make_descriptor(hooks=["on_change"]))
        assert not result.is_valid
        assert "mapping" in result.errors[0]

    def test_metadata_must_be_mapping(self):
        result = validate_plugin(make_descriptor(metadata="x"))
        assert result.errors == ["Plugin metadata must be a mapping"]

    def test_invalid_category(self):
        result = validate_plugin(make_descriptor(category="widgets"))
        assert result.errors == ["Invalid category: widgets"]

    def test_dependencies_must_be_ids(self):
        result = validate_plugin(make_descriptor(dependencies="other"))
        assert not result.is_valid
        result = validate_plugin(make_descriptor(dependencies=[1, 2]))
        assert not result.is_valid

    def test_collects_multiple_errors(self):
        result = validate_plugin(
            make_descriptor(version="bad", hooks={"on_bogus": print})
        )
        assert len(result.errors) == 2

    def test_non_mapping_descriptor(self):
        result = validate_plugin("not a plugin")  # type: ignore[arg-type]
        assert not result.is_valid
        assert "str" in result.errors[0]
