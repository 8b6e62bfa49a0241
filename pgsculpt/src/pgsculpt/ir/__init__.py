"""Semantic IR: models, smart tags, inflection, permissions and the builder."""

from .models import (
    ColumnPair,
    CompositeEntity,
    DomainEntity,
    Entity,
    EntityPermissions,
    EnumEntity,
    ExtensionInfo,
    Field,
    FieldPermissions,
    FunctionArg,
    FunctionEntity,
    IndexDef,
    PrimaryKey,
    Relation,
    RelationalEntity,
    ReverseRelation,
    SemanticIR,
    Shape,
    Shapes,
    SortOption,
    TableEntity,
    TypeRef,
    ViewEntity,
)
from .tags import SmartTags, parse_smart_tags
from .inflection import Inflection, InflectionConfig
from .permissions import PermissionResolver, resolve_permissions
from .builder import IRBuilder, build_ir
from .validators import IrIssue, validate_ir

__all__ = [
    "ColumnPair",
    "CompositeEntity",
    "DomainEntity",
    "Entity",
    "EntityPermissions",
    "EnumEntity",
    "ExtensionInfo",
    "Field",
    "FieldPermissions",
    "FunctionArg",
    "FunctionEntity",
    "IndexDef",
    "PrimaryKey",
    "Relation",
    "RelationalEntity",
    "ReverseRelation",
    "SemanticIR",
    "Shape",
    "Shapes",
    "SortOption",
    "TableEntity",
    "TypeRef",
    "ViewEntity",
    "SmartTags",
    "parse_smart_tags",
    "Inflection",
    "InflectionConfig",
    "PermissionResolver",
    "resolve_permissions",
    "IRBuilder",
    "build_ir",
    "IrIssue",
    "validate_ir",
]
