"""Render ordering of plugins from their capability dependencies."""

from typing import Dict, List, Mapping, Sequence

import networkx as nx

from pgsculpt.errors import CapabilityCycleError
from .types import Capability, SymbolDeclaration


def plugin_dependencies(
    declarations: Mapping[str, Sequence[SymbolDeclaration]],
    owners: Mapping[Capability, str],
) -> Dict[str, List[str]]:
    """
    Plugin -> plugins it must render after.

    A dependency on a capability the plugin declares itself adds no edge.
    """
    deps: Dict[str, List[str]] = {}
    for plugin, decls in declarations.items():
        needed: List[str] = []
        for decl in decls:
            for capability in decl.depends_on:
                owner = owners[capability]
                if owner != plugin and owner not in needed:
                    needed.append(owner)
        deps[plugin] = needed
    return deps


def plugin_graph(plugins: Sequence[str], deps: Mapping[str, Sequence[str]]) -> nx.DiGraph:
    """Directed graph with an edge from each plugin to every plugin it waits on."""
    G = nx.DiGraph()
    G.add_nodes_from(plugins)
    for plugin in plugins:
        for needed in deps.get(plugin, ()):
            G.add_edge(plugin, needed)
    return G


def render_levels(plugins: Sequence[str], deps: Mapping[str, Sequence[str]]) -> List[List[str]]:
    """
    Group plugins into topological generations.

    Every plugin comes after all plugins it depends on; within a level
    plugins keep registration order. Plugins in one level have no
    dependency on each other.

    Raises:
        CapabilityCycleError: If the plugin graph has a cycle
    """
    G = plugin_graph(plugins, deps)
    position = {name: i for i, name in enumerate(plugins)}

    try:
        generations = list(nx.topological_generations(G.reverse()))
    except nx.NetworkXUnfeasible:
        cycle = nx.find_cycle(G)
        raise CapabilityCycleError([u for u, _ in cycle] + [cycle[-1][1]])

    return [sorted(level, key=position.__getitem__) for level in generations]


def order_plugins(
    plugins: Sequence[str],
    declarations: Mapping[str, Sequence[SymbolDeclaration]],
    owners: Mapping[Capability, str],
) -> List[List[str]]:
    """Render levels for validated declarations."""
    return render_levels(plugins, plugin_dependencies(declarations, owners))
