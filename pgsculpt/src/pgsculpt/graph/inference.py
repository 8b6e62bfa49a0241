"""Heuristic foreign-key inference.

Foreign keys are sometimes left unenforced while the relationship still
follows a naming convention (``customer_id`` -> ``customers.id``). These
helpers rank such candidate relationships; they are advisory and never
change the IR.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Literal, Optional, Set, Tuple

from pgsculpt.config.logging import get_logger
from pgsculpt.ir.inflection import pluralize, singularize
from pgsculpt.ir.models import Field, RelationalEntity, TypeRef

if TYPE_CHECKING:
    from .join_graph import JoinGraph

logger = get_logger(__name__)

Confidence = Literal["high", "medium", "low"]

CONFIDENCE_RANK: Dict[str, int] = {"high": 0, "medium": 1, "low": 2}

# Column-name patterns; {t} is a form of the target table name
NAME_PATTERNS = ("{t}_id", "{t}id", "{t}_ids", "{t}_by", "{t}_at", "ref_{t}")
EXACT_PATTERN = "{t}_id"

TYPE_FAMILIES: Dict[str, str] = {
    "int2": "integer",
    "int4": "integer",
    "int8": "integer",
    "smallint": "integer",
    "integer": "integer",
    "bigint": "integer",
    "uuid": "uuid",
    "bpchar": "uuid",
    "char": "uuid",
    "text": "text",
    "varchar": "text",
    "citext": "text",
    "name": "text",
}


@dataclass(frozen=True)
class ForeignKeySuggestion:
    """A possible relationship missing its foreign-key constraint."""

    entity_name: str
    column_name: str
    target_entity: str
    target_column: str
    confidence: Confidence
    matched_pattern: str
    type_match: bool
    reason: str


def type_family(type_ref: TypeRef) -> Optional[str]:
    """Compatibility bucket of a type, looking through arrays and domains."""
    return TYPE_FAMILIES.get(type_ref.resolved().name)


def name_forms(pg_name: str) -> List[str]:
    """Raw, singular and plural forms of a table name, deduplicated in that order."""
    raw = pg_name.lower()
    forms = [raw, singularize(raw), pluralize(singularize(raw))]
    return list(dict.fromkeys(forms))


def match_name(column_name: str, pg_name: str) -> Optional[Tuple[str, bool]]:
    """
    First naming pattern a column matches for a target table.

    A pattern matches when it equals the column name, ends it after an
    underscore (``legacy_customer_id``) or starts it before one
    (``ref_customer_old``).

    Returns:
        (pattern, exact) where exact means the column is literally
        ``<raw>_id`` or ``<singular>_id``; None when nothing matches
    """
    column = column_name.lower()
    raw = pg_name.lower()
    exact_names = {EXACT_PATTERN.format(t=raw), EXACT_PATTERN.format(t=singularize(raw))}

    for form in name_forms(pg_name):
        for template in NAME_PATTERNS:
            pattern = template.format(t=form)
            if column == pattern or column.endswith("_" + pattern) or column.startswith(pattern + "_"):
                return pattern, column in exact_names
    return None


def _classify(exact: bool, type_match: bool, pk_not_null: bool) -> Confidence:
    if exact and type_match and pk_not_null:
        return "high"
    if type_match or exact:
        return "medium"
    return "low"


def _covered_columns(entity: RelationalEntity) -> Set[str]:
    return {pair.local for rel in entity.relations for pair in rel.columns}


def _single_pk_field(entity: RelationalEntity) -> Optional[Field]:
    if entity.primary_key is None or len(entity.primary_key.columns) != 1:
        return None
    return entity.get_field(entity.primary_key.columns[0])


def suggest_foreign_keys(graph: "JoinGraph", entity_name: str) -> List[ForeignKeySuggestion]:
    """
    Rank candidate foreign keys for the columns of an entity.

    Columns already covered by a declared relation are never suggested. Every
    other table/view with a single-column primary key is a possible target.
    Confidence is high when the column is exactly ``<target>_id`` (raw or
    singular), the types share a family and the target key is NOT NULL;
    medium when only part of that holds; low when just a looser naming
    pattern matches.

    Args:
        graph: JoinGraph over the IR
        entity_name: Entity whose columns are examined

    Returns:
        Suggestions sorted high -> low, then by column position
    """
    entity = graph.get_entity(entity_name)
    if entity is None:
        return []

    covered = _covered_columns(entity)
    targets = [
        (target, pk)
        for target in graph.entities.values()
        if target.name != entity_name
        for pk in [_single_pk_field(target)]
        if pk is not None
    ]

    best: Dict[Tuple[str, str], Tuple[int, ForeignKeySuggestion]] = {}
    for position, field in enumerate(entity.fields):
        if field.column_name in covered:
            continue
        family = type_family(field.type)

        for target, pk in targets:
            matched = match_name(field.column_name, target.pg_name)
            if matched is None:
                continue
            pattern, exact = matched
            type_match = family is not None and family == type_family(pk.type)
            confidence = _classify(exact, type_match, not pk.nullable)

            suggestion = ForeignKeySuggestion(
                entity_name=entity_name,
                column_name=field.column_name,
                target_entity=target.name,
                target_column=pk.column_name,
                confidence=confidence,
                matched_pattern=pattern,
                type_match=type_match,
                reason=(
                    f"column '{field.column_name}' matches '{pattern}'"
                    + (", types compatible" if type_match else ", types differ")
                ),
            )
            key = (field.column_name, target.name)
            current = best.get(key)
            if current is None or CONFIDENCE_RANK[confidence] < CONFIDENCE_RANK[current[1].confidence]:
                best[key] = (position, suggestion)

    ranked = sorted(
        best.values(),
        key=lambda item: (CONFIDENCE_RANK[item[1].confidence], item[0], item[1].target_entity),
    )
    logger.debug(f"Found {len(ranked)} foreign key suggestion(s) for {entity_name}")
    return [suggestion for _, suggestion in ranked]
