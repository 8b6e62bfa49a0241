"""Plugin contract for two-phase (declare/render) generation."""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Mapping, Optional, Sequence, Tuple, Union

from pgsculpt.ir.models import SemanticIR
from .file_assignment import FileRule, compute_relative_path

# Opaque symbol key, e.g. "type:User", "schema:zod:User", "queries:kysely:User:findById"
Capability = str

ExportKind = Union[bool, Literal["named", "default"]]


@dataclass(frozen=True)
class SymbolDeclaration:
    """What a plugin promises to render, and which capabilities it needs."""

    name: str
    capability: Capability
    depends_on: Tuple[Capability, ...] = ()


@dataclass(frozen=True)
class ExternalImport:
    """An import a rendered symbol needs from a package or another module."""

    source: str  # package name or path ("zod", "./db.ts")
    names: Tuple[str, ...] = ()
    types: Tuple[str, ...] = ()  # type-only names
    default: Optional[str] = None
    namespace: Optional[str] = None  # import * as <namespace>


@dataclass(frozen=True)
class RenderedSymbol:
    """Body of one declared symbol.

    ``exports``: False keeps the symbol file-internal, True/"named" adds a
    named export, "default" a default export. An empty ``content`` marks a
    metadata-only symbol that contributes nothing to the emitted file.
    """

    name: str
    capability: Capability
    content: str
    exports: ExportKind = True
    external_imports: Tuple[ExternalImport, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class PlacedSymbol:
    """A rendered symbol together with its output file and producing plugin."""

    symbol: RenderedSymbol
    file_path: str
    plugin: str

    @property
    def capability(self) -> Capability:
        return self.symbol.capability


class PriorOutput:
    """
    Read-only view of everything rendered before the current plugin.

    File locations are known for every declared capability (files are
    assigned before rendering starts), so ``file_of``/``import_path`` work
    even for symbols that have not rendered yet.
    """

    def __init__(self, placed: Mapping[Capability, PlacedSymbol], files: Mapping[Capability, str]):
        self._placed = dict(placed)
        self._files = files

    def get(self, capability: Capability) -> Optional[PlacedSymbol]:
        return self._placed.get(capability)

    def file_of(self, capability: Capability) -> Optional[str]:
        return self._files.get(capability)

    def import_path(self, from_file: str, capability: Capability) -> Optional[str]:
        """Relative module path from ``from_file`` to the file holding ``capability``."""
        target = self.file_of(capability)
        if target is None:
            return None
        return compute_relative_path(from_file, target)

    def metadata(self, capability: Capability) -> Dict[str, Any]:
        placed = self._placed.get(capability)
        return dict(placed.symbol.metadata) if placed else {}

    def __contains__(self, capability: object) -> bool:
        return capability in self._placed

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._placed)

    def __len__(self) -> int:
        return len(self._placed)


class Plugin:
    """
    Base class for generator plugins.

    Subclasses set ``name`` and implement ``declare`` and ``render``. Both
    must treat the IR as read-only; ``render`` receives everything rendered
    so far through ``prior``.
    """

    name: str = "plugin"
    file_rules: Sequence[FileRule] = ()

    def declare(self, ir: SemanticIR) -> List[SymbolDeclaration]:
        """
        Declare the symbols this plugin will render.

        Args:
            ir: Semantic IR

        Returns:
            List of SymbolDeclaration
        """
        raise NotImplementedError(f"Plugin {self.name} must implement declare()")

    def render(self, ir: SemanticIR, prior: PriorOutput) -> List[RenderedSymbol]:
        """
        Render every declared symbol.

        Args:
            ir: Semantic IR
            prior: Output of plugins rendered earlier

        Returns:
            List of RenderedSymbol, one per declared capability
        """
        raise NotImplementedError(f"Plugin {self.name} must implement render()")
