"""Declare-phase validation of the capability graph.

Checks run in a fixed order (duplicates, unresolved dependencies, cycles)
and the first failure is raised, always before any render happens.
"""

from typing import Dict, List, Mapping, Sequence

import networkx as nx

from pgsculpt.config.logging import get_logger
from pgsculpt.errors import (
    CapabilityCycleError,
    DuplicateCapabilityError,
    UnresolvedCapabilityError,
)
from .types import Capability, SymbolDeclaration

logger = get_logger(__name__)


def check_duplicates(declarations: Mapping[str, Sequence[SymbolDeclaration]]) -> Dict[Capability, str]:
    """
    Map every capability to the plugin declaring it.

    Raises:
        DuplicateCapabilityError: If a capability is declared more than once,
            by two plugins or twice by the same plugin
    """
    declared_by: Dict[Capability, List[str]] = {}
    for plugin, decls in declarations.items():
        for decl in decls:
            declared_by.setdefault(decl.capability, []).append(plugin)

    for capability, plugins in declared_by.items():
        if len(plugins) > 1:
            raise DuplicateCapabilityError(capability, plugins)

    return {capability: plugins[0] for capability, plugins in declared_by.items()}


def check_dependencies(
    declarations: Mapping[str, Sequence[SymbolDeclaration]],
    owners: Mapping[Capability, str],
) -> None:
    """
    Raises:
        UnresolvedCapabilityError: For the first dependency no plugin declares
    """
    for plugin, decls in declarations.items():
        for decl in decls:
            for dep in decl.depends_on:
                if dep not in owners:
                    raise UnresolvedCapabilityError(dep, plugin, decl.name)


def capability_graph(declarations: Mapping[str, Sequence[SymbolDeclaration]]) -> nx.DiGraph:
    """Directed graph with an edge from each capability to every capability it depends on."""
    G = nx.DiGraph()
    for decls in declarations.values():
        for decl in decls:
            G.add_node(decl.capability, symbol=decl.name)
    for decls in declarations.values():
        for decl in decls:
            G.add_edges_from((decl.capability, dep) for dep in decl.depends_on)
    return G


def find_capability_cycle(declarations: Mapping[str, Sequence[SymbolDeclaration]]) -> List[Capability]:
    """First dependency cycle among capabilities, as a closed path (``[a, b, a]``), or []."""
    try:
        cycle = nx.find_cycle(capability_graph(declarations))
    except nx.NetworkXNoCycle:
        return []
    return [u for u, _ in cycle] + [cycle[-1][1]]


def validate_declarations(declarations: Mapping[str, Sequence[SymbolDeclaration]]) -> Dict[Capability, str]:
    """
    Validate the full declaration set.

    Args:
        declarations: Plugin name -> its declarations, in registration order

    Returns:
        Capability -> owning plugin name

    Raises:
        DuplicateCapabilityError, UnresolvedCapabilityError, CapabilityCycleError
    """
    owners = check_duplicates(declarations)
    check_dependencies(declarations, owners)

    cycle = find_capability_cycle(declarations)
    if cycle:
        raise CapabilityCycleError(cycle)

    logger.debug(f"Validated {len(owners)} capabilities")
    return owners
