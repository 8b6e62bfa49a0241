"""Exception hierarchy for pgsculpt.

Every error carries the context needed to locate the offending catalog
object, capability or plugin without re-running introspection.
"""

from typing import Any, List, Optional, Sequence


class PgSculptError(Exception):
    """Base class for all pgsculpt errors."""

    pass


# ---------------------------------------------------------------------------
# Catalog / IR build
# ---------------------------------------------------------------------------


class CatalogInconsistencyError(PgSculptError):
    """Raised when the catalog snapshot references an object it does not contain."""

    def __init__(self, object_type: str, object_name: str, detail: str):
        self.object_type = object_type
        self.object_name = object_name
        self.detail = detail
        super().__init__(f"{object_type} '{object_name}': {detail}")


class UnknownEntityKindError(PgSculptError):
    """Raised when permission resolution meets a kind outside the closed kind set."""

    def __init__(self, entity: Any):
        self.entity = entity
        super().__init__(f"unknown entity kind {type(entity).__name__!r}")


class TagParseError(PgSculptError):
    """Raised when a smart-tag comment cannot be parsed."""

    def __init__(self, message: str, object_type: str, object_name: str, comment: Optional[str] = None):
        self.object_type = object_type
        self.object_name = object_name
        self.comment = comment
        super().__init__(f"{object_type} '{object_name}': {message}")


class IrInvariantError(PgSculptError):
    """Raised when a freshly built IR violates a structural invariant."""

    def __init__(self, issues: Sequence[Any]):
        self.issues = list(issues)
        lines = [f"{i.code} at {i.location}: {i.message}" for i in self.issues[:5]]
        more = len(self.issues) - len(lines)
        if more > 0:
            lines.append(f"... and {more} more")
        super().__init__("IR invariant violation:\n  " + "\n  ".join(lines))


# ---------------------------------------------------------------------------
# Plugin orchestration
# ---------------------------------------------------------------------------


class CapabilityError(PgSculptError):
    """Base class for declare-phase validation failures."""

    pass


class DuplicateCapabilityError(CapabilityError):
    """Raised when two declarations claim the same capability."""

    def __init__(self, capability: str, plugins: List[str]):
        self.capability = capability
        self.plugins = plugins
        super().__init__(
            f"duplicate capability '{capability}' declared by: {', '.join(plugins)}"
        )


class UnresolvedCapabilityError(CapabilityError):
    """Raised when a declaration depends on a capability nobody declares."""

    def __init__(self, capability: str, plugin: str, symbol: str):
        self.capability = capability
        self.plugin = plugin
        self.symbol = symbol
        super().__init__(
            f"unresolved capability dependency '{capability}' "
            f"(required by symbol '{symbol}' of plugin '{plugin}')"
        )


class CapabilityCycleError(CapabilityError):
    """Raised when capability dependencies form a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle
        super().__init__(f"capability cycle detected: {' -> '.join(cycle)}")


class DuplicatePluginError(PgSculptError):
    """Raised when two registered plugins share a name."""

    def __init__(self, names: List[str]):
        self.names = names
        super().__init__(f"plugin names must be unique, duplicated: {', '.join(names)}")


class PluginDeclareError(PgSculptError):
    """Raised when a plugin's declare step fails."""

    def __init__(self, plugin: str, cause: BaseException):
        self.plugin = plugin
        self.cause = cause
        super().__init__(f"plugin '{plugin}' failed to declare: {cause}")


class PluginRenderError(PgSculptError):
    """Raised when a plugin's render step fails or renders something it did not declare."""

    def __init__(self, plugin: str, message: str, capability: Optional[str] = None):
        self.plugin = plugin
        self.capability = capability
        super().__init__(f"plugin '{plugin}' failed to render: {message}")


class ExportCollisionError(PgSculptError):
    """Raised when two symbols merged into one file export the same name."""

    def __init__(self, file_path: str, export_name: str, capabilities: List[str]):
        self.file_path = file_path
        self.export_name = export_name
        self.capabilities = capabilities
        super().__init__(
            f"export '{export_name}' defined more than once in {file_path} "
            f"(capabilities: {', '.join(capabilities)})"
        )
