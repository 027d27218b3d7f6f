"""Shared exception types for bcfield."""


class BcFieldError(Exception):
    """Base exception for all bcfield errors."""


class ConfigError(BcFieldError):
    """Configuration is invalid or missing."""


class PluginError(BcFieldError):
    """Plugin lifecycle error."""


class PluginValidationError(PluginError):
    """A plugin descriptor failed structural or semantic validation."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__(f"Plugin validation failed: {', '.join(self.errors)}")


class PluginDependencyError(PluginError):
    """A declared dependency is not in the loaded set."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(
            f"Plugin dependencies not satisfied: {', '.join(self.missing)}"
        )


class PluginLoadTimeoutError(PluginError):
    """Loading did not finish within the configured timeout and retries."""


class PermissionDeniedError(BcFieldError):
    """A plugin attempted an action outside its granted capabilities."""


class SnapshotError(BcFieldError):
    """A plugin snapshot could not be parsed."""
