"""Bidirectional foreign-key navigation over the IR's tables and views.

Every forward relation becomes a many-to-one edge and every reverse
relation a one-to-many (or one-to-one) edge, so a path can be walked in
either direction. Edges are computed lazily per entity and memoized.
"""

from collections import deque
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Set, Tuple

import networkx as nx

from pgsculpt.config.logging import get_logger
from pgsculpt.ir.models import (
    ColumnPair,
    RelationalEntity,
    Relation,
    ReverseRelation,
    SemanticIR,
)
from .inference import ForeignKeySuggestion, suggest_foreign_keys

logger = get_logger(__name__)

JoinDirection = Literal["forward", "reverse"]
Cardinality = Literal["many-to-one", "one-to-many", "one-to-one"]

GENERIC_ALIAS_TOKENS = frozenset({"id", "idx", "key"})
CONSTRAINT_SUFFIXES = ("_fkey", "_fk")
LOOKUP_METHODS = ("btree", "hash")


@dataclass(frozen=True)
class JoinEdge:
    """One way to join from an entity to a neighbour."""

    target_entity: str
    direction: JoinDirection  # forward = this entity holds the FK
    cardinality: Cardinality
    constraint_name: str
    columns: Tuple[ColumnPair, ...]
    suggested_alias: str


@dataclass(frozen=True)
class JoinPath:
    """Edges from ``from_entity`` to a destination, with one alias per step (start included)."""

    from_entity: str
    edges: Tuple[JoinEdge, ...] = ()
    aliases: Tuple[str, ...] = ()

    @property
    def to_entity(self) -> str:
        return self.edges[-1].target_entity if self.edges else self.from_entity


@dataclass(frozen=True)
class FilterableIndex:
    """Index metadata reshaped for filter planning."""

    entity_name: str
    index_name: str
    columns: Tuple[str, ...]
    is_unique: bool
    is_partial: bool
    method: str


@dataclass(frozen=True)
class LookupCandidate:
    """A single column that can drive a by-key lookup or cursor."""

    entity_name: str
    field_name: str
    column_name: str
    index_name: str
    is_unique: bool
    method: str


def suggested_alias(constraint_name: str, target_entity: str, exclude: Tuple[str, ...] = ()) -> str:
    """
    Derive a join alias from a constraint name.

    The trailing constraint suffix is stripped and the name split on
    underscores; the first token that is not the leading token, not the
    lowercased target entity name and not a generic word wins. Otherwise
    the target entity name with a lowercased first letter is used.

    Examples:
        >>> suggested_alias("comments_parent_id_fkey", "Comment")
        'parent'
        >>> suggested_alias("posts_user_id_fkey", "User")
        'user'
    """
    base = constraint_name
    for suffix in CONSTRAINT_SUFFIXES:
        if base.endswith(suffix):
            base = base[: -len(suffix)]
            break

    skip = {target_entity.lower(), *(e.lower() for e in exclude)}
    tokens = base.split("_")
    for token in tokens[1:]:
        if token and token not in skip and token not in GENERIC_ALIAS_TOKENS:
            return token
    return target_entity[:1].lower() + target_entity[1:]


def _forward_edge(rel: Relation) -> JoinEdge:
    return JoinEdge(
        target_entity=rel.target_entity,
        direction="forward",
        cardinality="many-to-one",
        constraint_name=rel.constraint_name,
        columns=tuple(rel.columns),
        suggested_alias=suggested_alias(rel.constraint_name, rel.target_entity),
    )


def _reverse_edge(entity_name: str, rel: ReverseRelation) -> JoinEdge:
    # Hint tokens name the referenced side, i.e. this entity
    return JoinEdge(
        target_entity=rel.source_entity,
        direction="reverse",
        cardinality="one-to-one" if rel.kind == "hasOne" else "one-to-many",
        constraint_name=rel.constraint_name,
        columns=tuple(rel.columns),
        suggested_alias=suggested_alias(
            rel.constraint_name, rel.source_entity, exclude=(entity_name,)
        ),
    )


class JoinGraph:
    """Read-only navigation over the relations of an IR."""

    def __init__(self, ir: SemanticIR):
        self.ir = ir
        self.entities: Dict[str, RelationalEntity] = {e.name: e for e in ir.table_entities()}
        self._edge_cache: Dict[str, List[JoinEdge]] = {}
        self._graph: Optional[nx.DiGraph] = None

    def get_entity(self, name: str) -> Optional[RelationalEntity]:
        return self.entities.get(name)

    def get_edges(self, entity_name: str) -> List[JoinEdge]:
        """Forward edges first, then reverse edges, in relation order."""
        cached = self._edge_cache.get(entity_name)
        if cached is not None:
            return cached

        relations = self.ir.get_all_relations(entity_name)
        if relations is None:
            return []
        belongs_to, has_many = relations

        edges = [
            _forward_edge(rel)
            for rel in belongs_to
            if rel.target_entity in self.entities
        ] + [
            _reverse_edge(entity_name, rel)
            for rel in has_many
            if rel.source_entity in self.entities
        ]
        # Concurrent first calls compute identical lists; the first stored wins
        return self._edge_cache.setdefault(entity_name, edges)

    def find_path(self, from_entity: str, to_entity: str) -> Optional[JoinPath]:
        """
        Shortest path between two entities (BFS).

        Among paths of equal length the first explored wins: edges are
        visited in ``get_edges`` order.

        Returns:
            JoinPath, a zero-edge path when from and to are equal, or None when
            either entity is unknown or the two are not connected
        """
        if from_entity == to_entity:
            return JoinPath(from_entity=from_entity, edges=(), aliases=(from_entity,))

        if from_entity not in self.entities or to_entity not in self.entities:
            return None

        visited: Set[str] = {from_entity}
        queue = deque([(from_entity, (), (from_entity.lower(),))])

        while queue:
            current, path, aliases = queue.popleft()
            for edge in self.get_edges(current):
                if edge.target_entity in visited:
                    continue

                new_path = path + (edge,)
                new_aliases = aliases + (_unique_alias(edge.suggested_alias, aliases),)
                if edge.target_entity == to_entity:
                    return JoinPath(from_entity=from_entity, edges=new_path, aliases=new_aliases)

                visited.add(edge.target_entity)
                queue.append((edge.target_entity, new_path, new_aliases))

        return None

    def relation_graph(self) -> nx.DiGraph:
        """Entities as nodes, one directed edge per join edge (FK constraint name kept on the edge)."""
        if self._graph is None:
            G = nx.DiGraph()
            G.add_nodes_from(self.entities)
            for name in self.entities:
                for edge in self.get_edges(name):
                    G.add_edge(name, edge.target_entity, constraint=edge.constraint_name)
            self._graph = G
        return self._graph

    def get_reachable(self, from_entity: str, max_depth: Optional[int] = None) -> Set[str]:
        """Entities within ``max_depth`` hops (unbounded by default), always including the start."""
        G = self.relation_graph()
        if from_entity not in G:
            return {from_entity}
        return set(nx.single_source_shortest_path_length(G, from_entity, cutoff=max_depth))

    def get_filterable_indexes(self, entity_name: str) -> List[FilterableIndex]:
        entity = self.entities.get(entity_name)
        if entity is None:
            return []
        return [
            FilterableIndex(
                entity_name=entity_name,
                index_name=idx.name,
                columns=tuple(idx.columns),
                is_unique=idx.is_unique,
                is_partial=idx.is_partial,
                method=idx.method,
            )
            for idx in entity.indexes
        ]

    def get_lookup_candidates(self, entity_name: str) -> List[LookupCandidate]:
        """
        Single-column indexes usable for by-key lookups and cursors.

        Only btree/hash indexes without predicate or expression keys qualify.
        Multi-column indexes are not supported here and are skipped. One
        candidate per column; a unique index wins over a non-unique one.
        """
        entity = self.entities.get(entity_name)
        if entity is None:
            return []

        by_column: Dict[str, LookupCandidate] = {}
        for idx in entity.indexes:
            if len(idx.sort_options) > 1:
                logger.debug(f"Skipping multi-column index {idx.name} on {entity_name}")
                continue
            if idx.is_partial or idx.has_expressions or idx.method not in LOOKUP_METHODS:
                continue

            column_name = idx.column_names[0]
            candidate = LookupCandidate(
                entity_name=entity_name,
                field_name=idx.columns[0],
                column_name=column_name,
                index_name=idx.name,
                is_unique=idx.is_unique,
                method=idx.method,
            )
            existing = by_column.get(column_name)
            if existing is None or (candidate.is_unique and not existing.is_unique):
                by_column[column_name] = candidate

        order = {f.column_name: f.attnum for f in entity.fields}
        return sorted(by_column.values(), key=lambda c: order.get(c.column_name, 0))

    def table_name(self, entity_name: str) -> str:
        """Catalog name of an entity, schema-qualified when the IR spans several schemas."""
        entity = self.entities.get(entity_name)
        if entity is None:
            return entity_name
        if self.ir.is_multi_schema():
            return entity.qualified_pg_name
        return entity.pg_name

    def to_join_clause(self, path: JoinPath) -> str:
        """
        Render a ``FROM ... JOIN ...`` clause for a path.

        Forward edges render ``prev.local = alias.foreign`` with JOIN; reverse
        edges render ``alias.foreign = prev.local`` with LEFT JOIN so parent
        rows without children are kept.
        """
        clauses = [f"FROM {self.table_name(path.from_entity)} AS {path.aliases[0]}"]

        for i, edge in enumerate(path.edges):
            alias = path.aliases[i + 1]
            prev_alias = path.aliases[i]
            if edge.direction == "forward":
                conditions = [f"{prev_alias}.{c.local} = {alias}.{c.foreign}" for c in edge.columns]
                join_type = "JOIN"
            else:
                conditions = [f"{alias}.{c.foreign} = {prev_alias}.{c.local}" for c in edge.columns]
                join_type = "LEFT JOIN"
            clauses.append(
                f"{join_type} {self.table_name(edge.target_entity)} AS {alias} ON {' AND '.join(conditions)}"
            )

        return "\n  ".join(clauses)

    def suggest_foreign_keys(self, entity_name: str) -> List[ForeignKeySuggestion]:
        """Ranked FK suggestions for columns without a declared relation."""
        return suggest_foreign_keys(self, entity_name)

    def to_mermaid(self) -> str:
        """Relation graph as a Mermaid ``graph LR`` diagram, one arrow per foreign key."""
        lines = ["graph LR"]
        for name, entity in self.entities.items():
            lines.append(f"  {name}")
            for rel in entity.relations:
                if rel.target_entity in self.entities:
                    lines.append(f"  {name} -->|{rel.constraint_name}| {rel.target_entity}")
        return "\n".join(lines)


def _unique_alias(alias: str, taken: Tuple[str, ...]) -> str:
    if alias not in taken:
        return alias
    n = 2
    while f"{alias}{n}" in taken:
        n += 1
    return f"{alias}{n}"


def format_edge(edge: JoinEdge) -> str:
    """Short display form, e.g. ``-> User [1]``."""
    arrow = "->" if edge.direction == "forward" else "<-"
    cardinality = "[*]" if edge.cardinality == "one-to-many" else "[1]"
    return f"{arrow} {edge.target_entity} {cardinality}"


def format_edge_detail(edge: JoinEdge) -> str:
    cols = ", ".join(f"{c.local} = {c.foreign}" for c in edge.columns)
    return f"via {edge.constraint_name} ({cols})"
