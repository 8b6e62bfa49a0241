"""Semantic IR models.

The IR is the permission-aware entity graph generators consume. It is
built once per run from a catalog snapshot and never mutated afterwards,
hence every model is frozen.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
from pydantic import BaseModel, ConfigDict, Discriminator, Field as PydanticField

from .tags import EMPTY_TAGS, ShapeKind, SmartTags

Volatility = Literal["immutable", "stable", "volatile"]


class IRModel(BaseModel):
    """Base for all IR models."""

    model_config = ConfigDict(frozen=True)


class TypeRef(IRModel):
    """Reference to a catalog type, with array element and domain base resolved."""

    oid: str
    name: str
    schema_name: str
    category: str
    kind: str = "b"  # typtype
    element: Optional[TypeRef] = None
    domain_base: Optional[TypeRef] = None

    @property
    def qualified_name(self) -> str:
        return f"{self.schema_name}.{self.name}"

    def resolved(self) -> TypeRef:
        """Innermost scalar type: array element first, then domain base."""
        current = self
        if current.element is not None:
            current = current.element
        if current.domain_base is not None:
            current = current.domain_base
        return current


class FieldPermissions(IRModel):
    """Column permissions for the acting role."""

    can_select: bool = False
    can_insert: bool = False
    can_update: bool = False


class EntityPermissions(IRModel):
    """Table/view permissions for the acting role."""

    can_select: bool = False
    can_insert: bool = False
    can_update: bool = False
    can_delete: bool = False


class Field(IRModel):
    """A column with its semantic properties."""

    name: str  # inflected
    column_name: str  # catalog name
    attnum: int
    type: TypeRef
    is_array: bool = False
    nullable: bool = True
    has_default: bool = False
    is_identity: bool = False
    identity_kind: Optional[Literal["always", "by_default"]] = None
    is_generated: bool = False
    # None for composite type members, which are never queried directly
    permissions: Optional[FieldPermissions] = None
    tags: SmartTags = EMPTY_TAGS
    description: Optional[str] = None

    @property
    def element_type_name(self) -> Optional[str]:
        return self.type.element.name if self.type.element is not None else None


class Shape(IRModel):
    """Permission-filtered field subset for one operation."""

    name: str
    kind: ShapeKind
    fields: List[Field] = PydanticField(default_factory=list)

    @property
    def column_names(self) -> List[str]:
        return [f.column_name for f in self.fields]


class Shapes(IRModel):
    row: Shape
    insert: Optional[Shape] = None  # tables only
    update: Optional[Shape] = None


class SortOption(IRModel):
    """Per-key ordering of an index."""

    column: Optional[str]  # None for expression keys
    descending: bool = False
    nulls_first: bool = False


class IndexDef(IRModel):
    """An index on a table."""

    name: str
    columns: List[str]  # inflected field names, in key order
    column_names: List[str]  # catalog column names, in key order
    is_unique: bool = False
    is_primary: bool = False
    is_partial: bool = False
    predicate: Optional[str] = None
    has_expressions: bool = False
    method: str = "btree"
    sort_options: List[SortOption] = PydanticField(default_factory=list)


class ColumnPair(IRModel):
    """One column mapping of a foreign key, seen from the owning entity."""

    local: str
    foreign: str


class Relation(IRModel):
    """Forward ("belongsTo") side of a foreign key; held by the referencing entity."""

    kind: Literal["belongsTo"] = "belongsTo"
    target_entity: str
    constraint_name: str
    columns: List[ColumnPair]
    tags: SmartTags = EMPTY_TAGS


class ReverseRelation(IRModel):
    """Referenced side of a foreign key; held by the referenced entity."""

    kind: Literal["hasMany", "hasOne"] = "hasMany"
    source_entity: str
    constraint_name: str
    columns: List[ColumnPair]
    tags: SmartTags = EMPTY_TAGS


class PrimaryKey(IRModel):
    columns: List[str]
    is_virtual: bool = False  # declared through a primaryKey smart tag


class EntityBase(IRModel):
    """Fields common to every entity kind."""

    name: str
    pg_name: str
    schema_name: str
    tags: SmartTags = EMPTY_TAGS
    description: Optional[str] = None

    @property
    def qualified_pg_name(self) -> str:
        return f"{self.schema_name}.{self.pg_name}"


class RelationalEntity(EntityBase):
    """Shared structure of tables and views."""

    fields: List[Field] = PydanticField(default_factory=list)
    primary_key: Optional[PrimaryKey] = None
    indexes: List[IndexDef] = PydanticField(default_factory=list)
    relations: List[Relation] = PydanticField(default_factory=list)
    reverse_relations: List[ReverseRelation] = PydanticField(default_factory=list)
    permissions: EntityPermissions = EntityPermissions()
    shapes: Shapes

    def get_field(self, column_name: str) -> Optional[Field]:
        for f in self.fields:
            if f.column_name == column_name:
                return f
        return None


class TableEntity(RelationalEntity):
    kind: Literal["table"] = "table"


class ViewEntity(RelationalEntity):
    kind: Literal["view"] = "view"


class EnumEntity(EntityBase):
    kind: Literal["enum"] = "enum"
    values: List[str] = PydanticField(default_factory=list)


class DomainEntity(EntityBase):
    kind: Literal["domain"] = "domain"
    base_type: TypeRef


class CompositeEntity(EntityBase):
    kind: Literal["composite"] = "composite"
    fields: List[Field] = PydanticField(default_factory=list)


class FunctionArg(IRModel):
    name: Optional[str] = None  # not every argument is named
    type: TypeRef
    has_default: bool = False


class FunctionEntity(EntityBase):
    kind: Literal["function"] = "function"
    args: List[FunctionArg] = PydanticField(default_factory=list)
    return_type_name: str
    return_type: TypeRef
    returns_set: bool = False
    volatility: Volatility = "volatile"
    can_execute: bool = False
    is_from_extension: bool = False
    # Entity name of the table whose row this function computes a value for
    computed_for: Optional[str] = None

    @property
    def is_computed_field(self) -> bool:
        return self.computed_for is not None


Entity = Annotated[
    Union[
        TableEntity,
        ViewEntity,
        EnumEntity,
        DomainEntity,
        CompositeEntity,
        FunctionEntity,
    ],
    Discriminator("kind"),
]


class ExtensionInfo(IRModel):
    name: str
    schema_name: Optional[str] = None
    version: Optional[str] = None


class SemanticIR(IRModel):
    """The complete IR: entities by public name plus run metadata."""

    entities: Dict[str, Entity] = PydanticField(default_factory=dict)
    schemas: List[str] = PydanticField(default_factory=list)
    extensions: List[ExtensionInfo] = PydanticField(default_factory=list)
    introspected_at: datetime = PydanticField(default_factory=lambda: datetime.now(timezone.utc))

    def get(self, name: str) -> Optional[Any]:
        return self.entities.get(name)

    def table_entities(self) -> List[RelationalEntity]:
        """Tables and views, in build order."""
        return [e for e in self.entities.values() if isinstance(e, RelationalEntity)]

    def tables(self) -> List[TableEntity]:
        return [e for e in self.entities.values() if isinstance(e, TableEntity)]

    def views(self) -> List[ViewEntity]:
        return [e for e in self.entities.values() if isinstance(e, ViewEntity)]

    def enums(self) -> List[EnumEntity]:
        return [e for e in self.entities.values() if isinstance(e, EnumEntity)]

    def functions(self) -> List[FunctionEntity]:
        return [e for e in self.entities.values() if isinstance(e, FunctionEntity)]

    def get_all_relations(
        self, name: str
    ) -> Optional[Tuple[List[Relation], List[ReverseRelation]]]:
        """(belongsTo, hasMany/hasOne) relations of a table or view, or None."""
        entity = self.entities.get(name)
        if not isinstance(entity, RelationalEntity):
            return None
        return list(entity.relations), list(entity.reverse_relations)

    def is_multi_schema(self) -> bool:
        return len(self.schemas) > 1
