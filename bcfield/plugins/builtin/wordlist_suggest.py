"""Built-in plugin: prefix suggestions and completion from a word list."""

from __future__ import annotations

from typing import Any

from bcfield.plugins.base import PluginDescriptor, PluginHooks, PluginMetadata


def _matches(value: str, config: dict[str, Any]) -> list[str]:
    prefix = value.strip()
    if len(prefix) < config.get("min_prefix", 1):
        return []
    if not config.get("case_sensitive", False):
        prefix = prefix.lower()
        words = [(w.lower(), w) for w in config.get("words", [])]
    else:
        words = [(w, w) for w in config.get("words", [])]
    found = [word for key, word in words if key.startswith(prefix) and key != prefix]
    return found[: config.get("limit", 5)]


def _suggest(value: str, config: dict[str, Any]) -> list[str]:
    return _matches(value, config)


def _complete(value: str, config: dict[str, Any]) -> str:
    found = _matches(value, config)
    return found[0] if len(found) == 1 else ""


WORDLIST_SUGGEST = PluginDescriptor(
    id="wordlist-suggest",
    name="Word list suggestions",
    version="1.0.0",
    description="Suggests and completes values from config.words by prefix",
    author="bcfield",
    category="input",
    hooks=PluginHooks(on_suggest=_suggest, on_complete=_complete),
    metadata=PluginMetadata(min_version="0.1.0", tags=("suggest",), license="MIT"),
    config={"words": [], "min_prefix": 1, "limit": 5, "case_sensitive": False},
)
