"""Plugin descriptor model: identity, typed hooks, metadata."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from bcfield.exceptions import PluginValidationError

HOOK_NAMES = (
    "on_mount",
    "on_unmount",
    "on_focus",
    "on_blur",
    "on_change",
    "on_key_down",
    "on_key_up",
    "on_mouse_enter",
    "on_mouse_leave",
    "on_render",
    "on_validate",
    "on_transform",
    "on_suggest",
    "on_complete",
)

CATEGORIES = ("input", "validation", "ui", "integration", "custom")

Hook = Callable[..., Any]
PluginCategory = Literal["input", "validation", "ui", "integration", "custom"]


class PluginState(Enum):
    UNREGISTERED = "unregistered"
    LOADING = "loading"
    ACTIVE = "active"
    INACTIVE = "inactive"
    UNLOADED = "unloaded"


class PluginHooks(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    on_mount: Hook | None = None
    on_unmount: Hook | None = None
    on_focus: Hook | None = None
    on_blur: Hook | None = None
    on_change: Hook | None = None
    on_key_down: Hook | None = None
    on_key_up: Hook | None = None
    on_mouse_enter: Hook | None = None
    on_mouse_leave: Hook | None = None
    on_render: Hook | None = None
    on_validate: Hook | None = None
    on_transform: Hook | None = None
    on_suggest: Hook | None = None
    on_complete: Hook | None = None

    def get(self, name: str) -> Hook | None:
        """Return the callable bound to *name*, or None for absent/unknown hooks."""
        if name not in HOOK_NAMES:
            return None
        return getattr(self, name)

    def present(self) -> list[str]:
        return [name for name in HOOK_NAMES if getattr(self, name) is not None]


class PluginMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_version: str = "0.0.0"
    max_version: str | None = None
    tags: tuple[str, ...] = ()
    documentation: str = ""
    repository: str | None = None
    license: str = ""


class PluginDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    version: str
    description: str = ""
    author: str = ""
    category: PluginCategory = "custom"
    dependencies: tuple[str, ...] = ()
    hooks: PluginHooks = Field(default_factory=PluginHooks)
    metadata: PluginMetadata = Field(default_factory=PluginMetadata)
    config: dict[str, Any] = Field(default_factory=dict)

    def as_mapping(self) -> dict[str, Any]:
        """Plain-mapping view with only the hooks that are actually set."""
        data = self.model_dump(exclude={"hooks"})
        data["hooks"] = {name: self.hooks.get(name) for name in self.hooks.present()}
        return data


# Mutable: the registry owns config and the active flag.
class LoadedPlugin(BaseModel):
    descriptor: PluginDescriptor
    config: dict[str, Any] = Field(default_factory=dict)
    active: bool = True
    loaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def id(self) -> str:
        return self.descriptor.id

    @property
    def hooks(self) -> PluginHooks:
        return self.descriptor.hooks


class FieldCheck(BaseModel):
    model_config = ConfigDict(frozen=True)

    is_valid: bool
    message: str | None = None


def descriptor_id(descriptor: PluginDescriptor | Mapping[str, Any]) -> str:
    if isinstance(descriptor, PluginDescriptor):
        return descriptor.id
    value = descriptor.get("id") if isinstance(descriptor, Mapping) else None
    return str(value) if value else ""


def coerce_descriptor(
    descriptor: PluginDescriptor | Mapping[str, Any],
) -> PluginDescriptor:
    """Build a typed descriptor, reporting shape errors as validation errors."""
    if isinstance(descriptor, PluginDescriptor):
        return descriptor
    try:
        return PluginDescriptor.model_validate(dict(descriptor))
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        raise PluginValidationError(errors) from e
    except (TypeError, ValueError) as e:
        raise PluginValidationError([str(e)]) from e
