"""Structural invariant checks for a built SemanticIR."""

from dataclasses import dataclass, field
from typing import Dict, List, Literal, Set, Tuple

from pgsculpt.config.logging import get_logger
from .models import ColumnPair, RelationalEntity, SemanticIR, Shape

logger = get_logger(__name__)


@dataclass
class IrIssue:
    """Invariant violation found in an IR."""

    stage: Literal["SemanticIR"]
    code: str  # e.g., "DUPLICATE_COLUMN", "RELATION_UNPAIRED"
    location: str  # e.g., "Entity" or "Entity.column"
    message: str
    details: dict = field(default_factory=dict)


def _mirror(columns: List[ColumnPair]) -> List[Tuple[str, str]]:
    return [(c.foreign, c.local) for c in columns]


def _pairs(columns: List[ColumnPair]) -> List[Tuple[str, str]]:
    return [(c.local, c.foreign) for c in columns]


def _check_subset(entity: RelationalEntity, shape: Shape, superset: Set[str], of: str) -> List[IrIssue]:
    extra = [c for c in shape.column_names if c not in superset]
    if not extra:
        return []
    return [
        IrIssue(
            stage="SemanticIR",
            code="SHAPE_NOT_SUBSET",
            location=entity.name,
            message=f"{entity.name}: {shape.kind} shape has columns outside {of}: {extra}",
            details={"entity": entity.name, "shape": shape.kind, "columns": extra},
        )
    ]


def validate_entity_fields(entity: RelationalEntity) -> List[IrIssue]:
    """Unique column names and shape containment (update/insert within row within fields)."""
    issues: List[IrIssue] = []

    seen: Set[str] = set()
    for f in entity.fields:
        if f.column_name in seen:
            issues.append(
                IrIssue(
                    stage="SemanticIR",
                    code="DUPLICATE_COLUMN",
                    location=f"{entity.name}.{f.column_name}",
                    message=f"{entity.name}: column '{f.column_name}' appears more than once",
                    details={"entity": entity.name, "column": f.column_name},
                )
            )
        seen.add(f.column_name)

    row_columns = set(entity.shapes.row.column_names)
    issues.extend(_check_subset(entity, entity.shapes.row, seen, "fields"))
    if entity.shapes.insert is not None:
        issues.extend(_check_subset(entity, entity.shapes.insert, row_columns, "row shape"))
    if entity.shapes.update is not None:
        issues.extend(_check_subset(entity, entity.shapes.update, row_columns, "row shape"))
    return issues


def validate_relation_pairs(ir: SemanticIR) -> List[IrIssue]:
    """Every forward relation has a mirrored reverse relation on its target, and vice versa."""
    issues: List[IrIssue] = []
    entities: Dict[str, RelationalEntity] = {e.name: e for e in ir.table_entities()}

    for entity in entities.values():
        for rel in entity.relations:
            target = entities.get(rel.target_entity)
            if target is None:
                issues.append(
                    IrIssue(
                        stage="SemanticIR",
                        code="RELATION_TARGET_MISSING",
                        location=entity.name,
                        message=f"{entity.name}: relation '{rel.constraint_name}' targets "
                        f"missing entity '{rel.target_entity}'",
                        details={"entity": entity.name, "constraint": rel.constraint_name},
                    )
                )
                continue
            matches = [
                r for r in target.reverse_relations
                if r.constraint_name == rel.constraint_name
                and r.source_entity == entity.name
                and _pairs(r.columns) == _mirror(rel.columns)
            ]
            if len(matches) != 1:
                issues.append(
                    IrIssue(
                        stage="SemanticIR",
                        code="RELATION_UNPAIRED",
                        location=entity.name,
                        message=f"{entity.name}: relation '{rel.constraint_name}' has "
                        f"{len(matches)} mirrored reverse relations on '{target.name}'",
                        details={"entity": entity.name, "constraint": rel.constraint_name},
                    )
                )

        for rev in entity.reverse_relations:
            source = entities.get(rev.source_entity)
            paired = source is not None and any(
                r.constraint_name == rev.constraint_name
                and r.target_entity == entity.name
                and _pairs(r.columns) == _mirror(rev.columns)
                for r in source.relations
            )
            if not paired:
                issues.append(
                    IrIssue(
                        stage="SemanticIR",
                        code="REVERSE_UNPAIRED",
                        location=entity.name,
                        message=f"{entity.name}: reverse relation '{rev.constraint_name}' "
                        f"has no forward relation on '{rev.source_entity}'",
                        details={"entity": entity.name, "constraint": rev.constraint_name},
                    )
                )
    return issues


def validate_ir(ir: SemanticIR) -> List[IrIssue]:
    """
    Check the structural invariants of an IR.

    Args:
        ir: SemanticIR to validate

    Returns:
        List of IrIssue objects (empty if validation passes)
    """
    issues: List[IrIssue] = []
    for entity in ir.table_entities():
        issues.extend(validate_entity_fields(entity))
    issues.extend(validate_relation_pairs(ir))

    if issues:
        logger.warning(f"IR validation found {len(issues)} issue(s)")
    return issues
