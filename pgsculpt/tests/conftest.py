"""Shared fixtures: a small builder for in-memory catalog snapshots."""

import pytest

from pgsculpt.catalog.facts import (
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
)
from pgsculpt.config.settings import reset_settings

PG_CATALOG = "11"
PUBLIC = "2200"

BUILTIN_TYPES = [
    PgType(oid="16", typname="bool", typnamespace=PG_CATALOG, typcategory="B"),
    PgType(oid="20", typname="int8", typnamespace=PG_CATALOG, typcategory="N"),
    PgType(oid="23", typname="int4", typnamespace=PG_CATALOG, typcategory="N"),
    PgType(oid="25", typname="text", typnamespace=PG_CATALOG, typcategory="S"),
    PgType(oid="1043", typname="varchar", typnamespace=PG_CATALOG, typcategory="S"),
    PgType(oid="2950", typname="uuid", typnamespace=PG_CATALOG, typcategory="U"),
    PgType(oid="1184", typname="timestamptz", typnamespace=PG_CATALOG, typcategory="D"),
    PgType(oid="2278", typname="void", typnamespace=PG_CATALOG, typtype="p", typcategory="P"),
    PgType(oid="1007", typname="_int4", typnamespace=PG_CATALOG, typcategory="A", typelem="23"),
    PgType(oid="1009", typname="_text", typnamespace=PG_CATALOG, typcategory="A", typelem="25"),
]

ACCESS_METHODS = [
    PgAccessMethod(oid="403", amname="btree"),
    PgAccessMethod(oid="405", amname="hash"),
    PgAccessMethod(oid="783", amname="gist"),
]


def col(name, type="int4", **attrs):
    """Column spec for CatalogBuilder.table()."""
    return dict(attname=name, type=type, **attrs)


class CatalogBuilder:
    """Assembles CatalogFacts table by table; every object gets a fresh oid."""

    def __init__(self, current_role="app"):
        self.current_role = current_role
        self.role_memberships = {}
        self._next_oid = 16384
        self.namespaces = [
            PgNamespace(oid=PG_CATALOG, nspname="pg_catalog", owner="postgres"),
            PgNamespace(
                oid=PUBLIC, nspname="public", owner="postgres",
                acl=[AclItem(grantee="", usage=True)],
            ),
        ]
        self.types = list(BUILTIN_TYPES)
        self.classes = []
        self.attributes = []
        self.indexes = []
        self.constraints = []
        self.procs = []
        self.enum_labels = []
        self.extensions = []
        self._type_oids = {t.typname: t.oid for t in self.types}
        self._tables = {}  # relname -> (oid, {attname: attnum})

    def oid(self):
        self._next_oid += 1
        return str(self._next_oid)

    def type_oid(self, name):
        return self._type_oids.get(name, name)

    def schema(self, name, usage=True):
        oid = self.oid()
        self.namespaces.append(
            PgNamespace(
                oid=oid, nspname=name, owner="postgres",
                acl=[AclItem(grantee="", usage=usage)],
            )
        )
        return oid

    def _namespace_oid(self, schema):
        for ns in self.namespaces:
            if ns.nspname == schema:
                return ns.oid
        raise KeyError(schema)

    def table(self, name, *columns, schema="public", relkind="r", owner="app", acl=None, description=None):
        """Add a table (or view with relkind="v") plus its row type."""
        oid = self.oid()
        namespace = self._namespace_oid(schema)
        self.classes.append(
            PgClass(
                oid=oid, relname=name, relnamespace=namespace, relkind=relkind,
                owner=owner, acl=acl, description=description,
            )
        )
        attnums = {}
        for attnum, spec in enumerate(columns, start=1):
            spec = dict(spec)
            type_name = spec.pop("type")
            self.attributes.append(
                PgAttribute(attrelid=oid, attnum=attnum, atttypid=self.type_oid(type_name), **spec)
            )
            attnums[spec["attname"]] = attnum

        row_type = self.oid()
        self.types.append(
            PgType(oid=row_type, typname=name, typnamespace=namespace, typtype="c",
                   typcategory="C", typrelid=oid)
        )
        self._type_oids[name] = row_type
        self._tables[name] = (oid, attnums)
        return oid

    def view(self, name, *columns, **kwargs):
        return self.table(name, *columns, relkind="v", **kwargs)

    def class_oid(self, table):
        return self._tables[table][0]

    def attnums(self, table, columns):
        lookup = self._tables[table][1]
        return [lookup[c] for c in columns]

    def index(self, table, columns, name=None, unique=False, primary=False, method="btree",
              predicate=None, indoption=None, indkey=None):
        method_oid = next(am.oid for am in ACCESS_METHODS if am.amname == method)
        index_oid = self.oid()
        name = name or f"{table}_{'_'.join(columns)}_idx"
        self.classes.append(
            PgClass(oid=index_oid, relname=name, relnamespace=PUBLIC,
                    relkind="i", relam=method_oid)
        )
        self.indexes.append(
            PgIndex(
                indexrelid=index_oid,
                indrelid=self.class_oid(table),
                indkey=indkey if indkey is not None else self.attnums(table, columns),
                indisunique=unique or primary,
                indisprimary=primary,
                indoption=indoption or [],
                predicate=predicate,
            )
        )
        return name

    def primary_key(self, table, *columns):
        name = f"{table}_pkey"
        self.constraints.append(
            PgConstraint(oid=self.oid(), conname=name, contype="p",
                         conrelid=self.class_oid(table), conkey=self.attnums(table, columns))
        )
        self.index(table, list(columns), name=name, primary=True)
        return name

    def unique(self, table, *columns):
        name = f"{table}_{'_'.join(columns)}_key"
        self.constraints.append(
            PgConstraint(oid=self.oid(), conname=name, contype="u",
                         conrelid=self.class_oid(table), conkey=self.attnums(table, columns))
        )
        self.index(table, list(columns), name=name, unique=True)
        return name

    def foreign_key(self, table, columns, target, target_columns, name=None, description=None):
        name = name or f"{table}_{'_'.join(columns)}_fkey"
        self.constraints.append(
            PgConstraint(
                oid=self.oid(), conname=name, contype="f",
                conrelid=self.class_oid(table), confrelid=self.class_oid(target),
                conkey=self.attnums(table, columns), confkey=self.attnums(target, target_columns),
                description=description,
            )
        )
        return name

    def enum(self, name, labels, schema="public", description=None):
        oid = self.oid()
        self.types.append(
            PgType(oid=oid, typname=name, typnamespace=self._namespace_oid(schema),
                   typtype="e", typcategory="E", description=description)
        )
        self._type_oids[name] = oid
        for position, label in enumerate(labels, start=1):
            self.enum_labels.append(PgEnumLabel(enumtypid=oid, enumlabel=label, enumsortorder=position))
        return oid

    def domain(self, name, base, schema="public"):
        oid = self.oid()
        self.types.append(
            PgType(oid=oid, typname=name, typnamespace=self._namespace_oid(schema),
                   typtype="d", typcategory=self._category_of(base), typbasetype=self.type_oid(base))
        )
        self._type_oids[name] = oid
        return oid

    def _category_of(self, type_name):
        oid = self.type_oid(type_name)
        return next(t.typcategory for t in self.types if t.oid == oid)

    def composite(self, name, *columns, schema="public"):
        class_oid = self.oid()
        namespace = self._namespace_oid(schema)
        self.classes.append(PgClass(oid=class_oid, relname=name, relnamespace=namespace, relkind="c"))
        for attnum, spec in enumerate(columns, start=1):
            spec = dict(spec)
            type_name = spec.pop("type")
            self.attributes.append(
                PgAttribute(attrelid=class_oid, attnum=attnum, atttypid=self.type_oid(type_name), **spec)
            )
        oid = self.oid()
        self.types.append(
            PgType(oid=oid, typname=name, typnamespace=namespace, typtype="c",
                   typcategory="C", typrelid=class_oid)
        )
        self._type_oids[name] = oid
        return oid

    def function(self, name, arg_types=(), returns="void", volatility="v", schema="public", **attrs):
        oid = self.oid()
        self.procs.append(
            PgProc(
                oid=oid, proname=name, pronamespace=self._namespace_oid(schema),
                proargtypes=[self.type_oid(t) for t in arg_types],
                prorettype=self.type_oid(returns), provolatile=volatility, **attrs,
            )
        )
        return oid

    def extension(self, name, objects, version="1.0"):
        self.extensions.append(
            PgExtension(oid=self.oid(), extname=name, extnamespace=PUBLIC,
                        extversion=version, objects=list(objects))
        )

    def build(self) -> CatalogFacts:
        return CatalogFacts(
            database="test",
            current_role=self.current_role,
            role_memberships=self.role_memberships,
            namespaces=self.namespaces,
            classes=self.classes,
            attributes=self.attributes,
            indexes=self.indexes,
            constraints=self.constraints,
            procs=self.procs,
            types=self.types,
            enum_labels=self.enum_labels,
            access_methods=ACCESS_METHODS,
            extensions=self.extensions,
        )


@pytest.fixture
def catalog():
    """Empty catalog builder with pg_catalog and public namespaces."""
    return CatalogBuilder()


@pytest.fixture
def accounts_catalog(catalog):
    """accounts(id pk, email unique, owner_id -> accounts.id nullable)."""
    catalog.table(
        "accounts",
        col("id", "int4", attnotnull=True),
        col("email", "text", attnotnull=True),
        col("owner_id", "int4"),
    )
    catalog.primary_key("accounts", "id")
    catalog.unique("accounts", "email")
    catalog.foreign_key("accounts", ["owner_id"], "accounts", ["id"])
    return catalog


@pytest.fixture
def blog_catalog(catalog):
    """users <- posts <- comments, plus a profiles table one-to-one with users."""
    catalog.table(
        "users",
        col("id", "int4", attnotnull=True),
        col("username", "text", attnotnull=True),
    )
    catalog.primary_key("users", "id")
    catalog.table(
        "posts",
        col("id", "int4", attnotnull=True),
        col("user_id", "int4", attnotnull=True),
        col("title", "text"),
    )
    catalog.primary_key("posts", "id")
    catalog.foreign_key("posts", ["user_id"], "users", ["id"])
    catalog.table(
        "comments",
        col("id", "int4", attnotnull=True),
        col("post_id", "int4", attnotnull=True),
        col("body", "text"),
    )
    catalog.primary_key("comments", "id")
    catalog.foreign_key("comments", ["post_id"], "posts", ["id"])
    catalog.table(
        "profiles",
        col("id", "int4", attnotnull=True),
        col("user_id", "int4", attnotnull=True),
    )
    catalog.primary_key("profiles", "id")
    catalog.unique("profiles", "user_id")
    catalog.foreign_key("profiles", ["user_id"], "users", ["id"])
    catalog.table("audit_log", col("id", "int4", attnotnull=True))
    catalog.primary_key("audit_log", "id")
    return catalog


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Each test reads settings from a clean environment."""
    for var in ("PGSCULPT_SCHEMAS", "PGSCULPT_ACTING_ROLE", "PGSCULPT_DEFAULT_FILE",
                "PGSCULPT_HEADER_COMMENT", "PGSCULPT_PARALLEL_DECLARE", "PGSCULPT_PARALLEL_RENDER"):
        monkeypatch.delenv(var, raising=False)
    reset_settings()
    yield
    reset_settings()
