"""Orchestrator for two-phase plugin execution.

Phases:
1. declare: every plugin declares its symbols (optionally in parallel)
2. validate: duplicate, unresolved and cyclic capabilities are fatal
3. order: plugins are grouped into dependency levels
4. assign: every declared capability gets an output file
5. render: level by level, each plugin sees the output rendered before it
6. merge: placed symbols are merged into files
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from pgsculpt.config.logging import bind_logger, get_logger
from pgsculpt.config.settings import get_settings
from pgsculpt.errors import DuplicatePluginError, PluginDeclareError, PluginRenderError
from pgsculpt.ir.models import SemanticIR
from .emit import EmittedFile, merge_files
from .file_assignment import FileRule, assign_files
from .ordering import order_plugins
from .types import Capability, PlacedSymbol, Plugin, PriorOutput, RenderedSymbol, SymbolDeclaration
from .validation import validate_declarations

logger = get_logger(__name__)


@dataclass
class OrchestratorResult:
    """Everything a run produced."""

    declarations: List[SymbolDeclaration] = field(default_factory=list)
    order: List[str] = field(default_factory=list)  # plugin names in render order
    levels: List[List[str]] = field(default_factory=list)
    file_assignments: Dict[Capability, str] = field(default_factory=dict)
    rendered: List[PlacedSymbol] = field(default_factory=list)
    files: List[EmittedFile] = field(default_factory=list)


class Orchestrator:
    """Runs registered plugins through declare, validate, order, render and merge."""

    def __init__(
        self,
        plugins: Sequence[Plugin],
        file_rules: Optional[Sequence[FileRule]] = None,
        default_file: Optional[str] = None,
        header_comment: Optional[str] = None,
        parallel_declare: Optional[bool] = None,
        parallel_render: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize orchestrator with plugins in registration order.

        Unset options fall back to Settings.

        Args:
            plugins: Plugins to run; registration order need not follow dependencies
            file_rules: Rules taking precedence over the plugins' own file_rules
            default_file: File for symbols no rule matches
            header_comment: Comment prepended to every emitted file
            parallel_declare: Run declare steps on a thread pool
            parallel_render: Render plugins of one level on a thread pool
            max_workers: Thread pool size

        Raises:
            DuplicatePluginError: If two plugins share a name
        """
        names = [p.name for p in plugins]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise DuplicatePluginError(duplicates)

        settings = get_settings()
        self.plugins = list(plugins)
        self.file_rules = list(file_rules or [])
        self.default_file = default_file or settings.default_file
        self.header_comment = header_comment if header_comment is not None else settings.header_comment
        self.parallel_declare = settings.parallel_declare if parallel_declare is None else parallel_declare
        self.parallel_render = settings.parallel_render if parallel_render is None else parallel_render
        self.max_workers = max_workers or settings.max_workers
        logger.info(f"Initialized orchestrator with {len(self.plugins)} plugins")

    @property
    def rules(self) -> List[FileRule]:
        """Explicit rules first, then each plugin's defaults in registration order."""
        rules = list(self.file_rules)
        for plugin in self.plugins:
            rules.extend(plugin.file_rules)
        return rules

    # ------------------------------------------------------------------
    # declare
    # ------------------------------------------------------------------

    def _declare_one(self, plugin: Plugin, ir: SemanticIR) -> List[SymbolDeclaration]:
        log = bind_logger(logger, plugin=plugin.name)
        try:
            declarations = list(plugin.declare(ir))
        except Exception as e:
            log.error(f"Failed to declare: {e}", exc_info=True)
            raise PluginDeclareError(plugin.name, e) from e
        log.debug(f"Declared {len(declarations)} symbols")
        return declarations

    def declare(self, ir: SemanticIR) -> Dict[str, List[SymbolDeclaration]]:
        """Plugin name -> declarations, in registration order."""
        logger.info("Declare phase")
        if self.parallel_declare and len(self.plugins) > 1:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                results = list(pool.map(lambda p: self._declare_one(p, ir), self.plugins))
        else:
            results = [self._declare_one(p, ir) for p in self.plugins]

        return {p.name: decls for p, decls in zip(self.plugins, results)}

    # ------------------------------------------------------------------
    # render
    # ------------------------------------------------------------------

    def _render_one(
        self,
        plugin: Plugin,
        ir: SemanticIR,
        prior: PriorOutput,
        declared: Sequence[SymbolDeclaration],
        files: Dict[Capability, str],
    ) -> List[PlacedSymbol]:
        log = bind_logger(logger, plugin=plugin.name)
        log.info(f"Rendering with {len(prior)} prior symbols")
        try:
            rendered = list(plugin.render(ir, prior))
        except PluginRenderError:
            raise
        except Exception as e:
            log.error(f"Failed to render: {e}", exc_info=True)
            raise PluginRenderError(plugin.name, str(e)) from e

        return self._place(plugin.name, rendered, declared, files)

    def _place(
        self,
        plugin: str,
        rendered: List[RenderedSymbol],
        declared: Sequence[SymbolDeclaration],
        files: Dict[Capability, str],
    ) -> List[PlacedSymbol]:
        """Check a plugin rendered exactly what it declared and attach file paths."""
        expected = [d.capability for d in declared]
        seen: List[Capability] = []
        for symbol in rendered:
            if symbol.capability not in expected:
                raise PluginRenderError(
                    plugin, f"rendered undeclared capability '{symbol.capability}'", symbol.capability
                )
            if symbol.capability in seen:
                raise PluginRenderError(
                    plugin, f"rendered capability '{symbol.capability}' twice", symbol.capability
                )
            seen.append(symbol.capability)

        missing = [c for c in expected if c not in seen]
        if missing:
            raise PluginRenderError(
                plugin, f"did not render declared capabilities {missing}", missing[0]
            )

        return [PlacedSymbol(symbol=s, file_path=files[s.capability], plugin=plugin) for s in rendered]

    def render(
        self,
        ir: SemanticIR,
        declarations: Dict[str, List[SymbolDeclaration]],
        levels: List[List[str]],
        files: Dict[Capability, str],
    ) -> List[PlacedSymbol]:
        """
        Render plugins level by level.

        Sequentially each plugin sees everything rendered before it; with
        parallel_render the plugins of one level all see the previous levels.
        """
        logger.info("Render phase")
        by_name = {p.name: p for p in self.plugins}
        placed: Dict[Capability, PlacedSymbol] = {}
        output: List[PlacedSymbol] = []

        for level in levels:
            if self.parallel_render and len(level) > 1:
                prior = PriorOutput(placed, files)
                with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                    results = list(pool.map(
                        lambda name: self._render_one(by_name[name], ir, prior, declarations[name], files),
                        level,
                    ))
                for result in results:
                    placed.update((p.capability, p) for p in result)
                    output.extend(result)
            else:
                for name in level:
                    result = self._render_one(
                        by_name[name], ir, PriorOutput(placed, files), declarations[name], files
                    )
                    placed.update((p.capability, p) for p in result)
                    output.extend(result)

        return output

    # ------------------------------------------------------------------
    # full run
    # ------------------------------------------------------------------

    def run(self, ir: SemanticIR) -> OrchestratorResult:
        """
        Execute all phases.

        Raises:
            PluginDeclareError: If a declare step fails
            CapabilityError: On duplicate, unresolved or cyclic capabilities
                (raised before any render)
            PluginRenderError: If a render step fails or renders something
                other than what it declared
            ExportCollisionError: If two symbols in one file export the same name
        """
        logger.info("Starting orchestrator run")
        declarations = self.declare(ir)

        owners = validate_declarations(declarations)
        levels = order_plugins([p.name for p in self.plugins], declarations, owners)
        order = [name for level in levels for name in level]
        logger.info(f"Render order: {order}")

        flat = [d for name in declarations for d in declarations[name]]
        files = assign_files(flat, self.rules, self.default_file)

        placed = self.render(ir, declarations, levels, files)
        emitted = merge_files(placed, self.header_comment)

        logger.info("Orchestrator run completed")
        return OrchestratorResult(
            declarations=flat,
            order=order,
            levels=levels,
            file_assignments=files,
            rendered=placed,
            files=emitted,
        )
