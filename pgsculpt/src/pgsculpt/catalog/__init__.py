"""Catalog fact models consumed by the IR builder."""

from .facts import (
    AclItem,
    CatalogFacts,
    PgAccessMethod,
    PgAttribute,
    PgClass,
    PgConstraint,
    PgEnumLabel,
    PgExtension,
    PgIndex,
    PgNamespace,
    PgProc,
    PgType,
    TABLE_RELKINDS,
    VIEW_RELKINDS,
)

__all__ = [
    "AclItem",
    "CatalogFacts",
    "PgAccessMethod",
    "PgAttribute",
    "PgClass",
    "PgConstraint",
    "PgEnumLabel",
    "PgExtension",
    "PgIndex",
    "PgNamespace",
    "PgProc",
    "PgType",
    "TABLE_RELKINDS",
    "VIEW_RELKINDS",
]
