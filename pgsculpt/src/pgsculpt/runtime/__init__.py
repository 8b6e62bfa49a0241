"""Plugin runtime: contract, capability validation, ordering, file layout and emit."""

from .types import (
    Capability,
    ExternalImport,
    PlacedSymbol,
    Plugin,
    PriorOutput,
    RenderedSymbol,
    SymbolDeclaration,
)
from .file_assignment import (
    FileNamingContext,
    FileRule,
    assign_files,
    compute_relative_path,
    parse_capability_info,
)
from .validation import validate_declarations
from .ordering import order_plugins
from .emit import EmittedFile, ImportStatement, merge_files
from .orchestrator import Orchestrator, OrchestratorResult

__all__ = [
    "Capability",
    "ExternalImport",
    "PlacedSymbol",
    "Plugin",
    "PriorOutput",
    "RenderedSymbol",
    "SymbolDeclaration",
    "FileNamingContext",
    "FileRule",
    "assign_files",
    "compute_relative_path",
    "parse_capability_info",
    "validate_declarations",
    "order_plugins",
    "EmittedFile",
    "ImportStatement",
    "merge_files",
    "Orchestrator",
    "OrchestratorResult",
]
