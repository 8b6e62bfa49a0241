"""Catalog fact models.

These mirror the subset of the PostgreSQL system catalogs the IR builder
reads. The introspection adapter that fills them is an external
collaborator; here they are plain pydantic models so a snapshot can be
loaded from JSON and indexed by oid.
"""

from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field, PrivateAttr


# relkind values
RELKIND_TABLE = "r"
RELKIND_PARTITIONED_TABLE = "p"
RELKIND_VIEW = "v"
RELKIND_MATERIALIZED_VIEW = "m"
RELKIND_COMPOSITE = "c"
RELKIND_INDEX = "i"

TABLE_RELKINDS = frozenset({RELKIND_TABLE, RELKIND_PARTITIONED_TABLE})
VIEW_RELKINDS = frozenset({RELKIND_VIEW, RELKIND_MATERIALIZED_VIEW})

# pg_index.indoption bits
INDOPTION_DESC = 0x0001
INDOPTION_NULLS_FIRST = 0x0002

PUBLIC_GRANTEE = ""


class AclItem(BaseModel):
    """One grant entry of an object's access control list.

    An empty grantee (or "public") stands for PUBLIC.
    """

    grantee: str = PUBLIC_GRANTEE
    select: bool = False
    insert: bool = False
    update: bool = False
    delete: bool = False
    execute: bool = False
    usage: bool = False

    @property
    def is_public(self) -> bool:
        return self.grantee in ("", "public", "PUBLIC")


class PgNamespace(BaseModel):
    """A schema (pg_namespace row)."""

    oid: str
    nspname: str
    owner: Optional[str] = None
    acl: Optional[List[AclItem]] = None
    description: Optional[str] = None


class PgClass(BaseModel):
    """A relation-like object (pg_class row): table, view, composite type or index."""

    oid: str
    relname: str
    relnamespace: str
    relkind: str = RELKIND_TABLE
    relam: Optional[str] = None  # access method oid, set for index classes
    owner: Optional[str] = None
    acl: Optional[List[AclItem]] = None
    description: Optional[str] = None


class PgAttribute(BaseModel):
    """A column (pg_attribute row)."""

    attrelid: str
    attname: str
    attnum: int
    atttypid: str
    attnotnull: bool = False
    atthasdef: bool = False
    attidentity: str = ""  # "a" = ALWAYS, "d" = BY DEFAULT
    attgenerated: str = ""  # "s" = STORED
    attndims: int = 0
    attisdropped: bool = False
    acl: Optional[List[AclItem]] = None
    description: Optional[str] = None


class PgIndex(BaseModel):
    """An index (pg_index row). The index's own pg_class row carries its name."""

    indexrelid: str
    indrelid: str
    indkey: List[int]  # 0 marks an expression key
    indisunique: bool = False
    indisprimary: bool = False
    indoption: List[int] = Field(default_factory=list)
    predicate: Optional[str] = None


class PgConstraint(BaseModel):
    """A table constraint (pg_constraint row)."""

    oid: str
    conname: str
    contype: Literal["p", "u", "f", "c", "x", "t", "n"]
    conrelid: str
    confrelid: Optional[str] = None
    conkey: List[int] = Field(default_factory=list)
    confkey: List[int] = Field(default_factory=list)
    description: Optional[str] = None


class PgProc(BaseModel):
    """A function (pg_proc row)."""

    oid: str
    proname: str
    pronamespace: str
    proargtypes: List[str] = Field(default_factory=list)  # input argument types
    proargnames: Optional[List[str]] = None
    proargmodes: Optional[List[str]] = None  # i, o, b, v, t
    pronargdefaults: int = 0
    prorettype: str
    proretset: bool = False
    provolatile: Literal["i", "s", "v"] = "v"
    owner: Optional[str] = None
    acl: Optional[List[AclItem]] = None
    description: Optional[str] = None


class PgType(BaseModel):
    """A type (pg_type row)."""

    oid: str
    typname: str
    typnamespace: str
    typtype: str = "b"  # b base, c composite, d domain, e enum, p pseudo, r range, m multirange
    typcategory: str = "U"
    typelem: Optional[str] = None
    typbasetype: Optional[str] = None
    typrelid: Optional[str] = None
    description: Optional[str] = None


class PgEnumLabel(BaseModel):
    """An enum label (pg_enum row)."""

    enumtypid: str
    enumlabel: str
    enumsortorder: float = 0.0


class PgAccessMethod(BaseModel):
    """An index access method (pg_am row)."""

    oid: str
    amname: str


class PgExtension(BaseModel):
    """An installed extension together with the oids of the objects it owns."""

    oid: str
    extname: str
    extnamespace: Optional[str] = None
    extversion: Optional[str] = None
    objects: List[str] = Field(default_factory=list)


class CatalogFacts(BaseModel):
    """A point-in-time snapshot of the catalog, indexed by oid on construction."""

    database: str = ""
    current_role: str
    role_memberships: Dict[str, List[str]] = Field(default_factory=dict)

    namespaces: List[PgNamespace] = Field(default_factory=list)
    classes: List[PgClass] = Field(default_factory=list)
    attributes: List[PgAttribute] = Field(default_factory=list)
    indexes: List[PgIndex] = Field(default_factory=list)
    constraints: List[PgConstraint] = Field(default_factory=list)
    procs: List[PgProc] = Field(default_factory=list)
    types: List[PgType] = Field(default_factory=list)
    enum_labels: List[PgEnumLabel] = Field(default_factory=list)
    access_methods: List[PgAccessMethod] = Field(default_factory=list)
    extensions: List[PgExtension] = Field(default_factory=list)

    _namespaces: Dict[str, PgNamespace] = PrivateAttr(default_factory=dict)
    _namespaces_by_name: Dict[str, PgNamespace] = PrivateAttr(default_factory=dict)
    _classes: Dict[str, PgClass] = PrivateAttr(default_factory=dict)
    _types: Dict[str, PgType] = PrivateAttr(default_factory=dict)
    _access_methods: Dict[str, PgAccessMethod] = PrivateAttr(default_factory=dict)
    _attributes: Dict[str, List[PgAttribute]] = PrivateAttr(default_factory=dict)
    _indexes: Dict[str, List[PgIndex]] = PrivateAttr(default_factory=dict)
    _constraints: Dict[str, List[PgConstraint]] = PrivateAttr(default_factory=dict)
    _enum_labels: Dict[str, List[PgEnumLabel]] = PrivateAttr(default_factory=dict)
    _extension_objects: Dict[str, str] = PrivateAttr(default_factory=dict)

    def model_post_init(self, __context) -> None:
        self._namespaces = {n.oid: n for n in self.namespaces}
        self._namespaces_by_name = {n.nspname: n for n in self.namespaces}
        self._classes = {c.oid: c for c in self.classes}
        self._types = {t.oid: t for t in self.types}
        self._access_methods = {am.oid: am for am in self.access_methods}

        attributes: Dict[str, List[PgAttribute]] = {}
        for attr in self.attributes:
            attributes.setdefault(attr.attrelid, []).append(attr)
        for attrs in attributes.values():
            attrs.sort(key=lambda a: a.attnum)
        self._attributes = attributes

        indexes: Dict[str, List[PgIndex]] = {}
        for index in self.indexes:
            indexes.setdefault(index.indrelid, []).append(index)
        self._indexes = indexes

        constraints: Dict[str, List[PgConstraint]] = {}
        for con in self.constraints:
            constraints.setdefault(con.conrelid, []).append(con)
        for cons in constraints.values():
            cons.sort(key=lambda c: c.conname)
        self._constraints = constraints

        labels: Dict[str, List[PgEnumLabel]] = {}
        for label in self.enum_labels:
            labels.setdefault(label.enumtypid, []).append(label)
        for values in labels.values():
            values.sort(key=lambda v: v.enumsortorder)
        self._enum_labels = labels

        self._extension_objects = {
            oid: ext.extname for ext in self.extensions for oid in ext.objects
        }

    # -- lookups ------------------------------------------------------------

    def get_namespace(self, oid: Optional[str]) -> Optional[PgNamespace]:
        return self._namespaces.get(oid) if oid is not None else None

    def get_namespace_by_name(self, name: str) -> Optional[PgNamespace]:
        return self._namespaces_by_name.get(name)

    def get_class(self, oid: Optional[str]) -> Optional[PgClass]:
        return self._classes.get(oid) if oid is not None else None

    def get_type(self, oid: Optional[str]) -> Optional[PgType]:
        return self._types.get(oid) if oid is not None else None

    def access_method(self, oid: Optional[str]) -> Optional[PgAccessMethod]:
        return self._access_methods.get(oid) if oid is not None else None

    def attributes_of(self, class_oid: str, include_system: bool = False) -> List[PgAttribute]:
        """Columns of a class in attnum order; system and dropped columns excluded by default."""
        attrs = self._attributes.get(class_oid, [])
        if include_system:
            return list(attrs)
        return [a for a in attrs if a.attnum > 0 and not a.attisdropped]

    def indexes_of(self, class_oid: str) -> List[PgIndex]:
        return list(self._indexes.get(class_oid, []))

    def constraints_of(self, class_oid: str, contype: Optional[str] = None) -> List[PgConstraint]:
        cons = self._constraints.get(class_oid, [])
        if contype is None:
            return list(cons)
        return [c for c in cons if c.contype == contype]

    def enum_values(self, type_oid: str) -> List[str]:
        return [label.enumlabel for label in self._enum_labels.get(type_oid, [])]

    def is_extension_object(self, oid: str) -> bool:
        return oid in self._extension_objects
