"""Tests for permission resolution."""

import pytest

from pgsculpt.catalog.facts import AclItem, PgClass
from pgsculpt.errors import UnknownEntityKindError
from pgsculpt.ir.models import EntityPermissions, FieldPermissions
from pgsculpt.ir.permissions import (
    FunctionPermissions,
    NamespacePermissions,
    PermissionResolver,
    resolve_permissions,
)
from conftest import col


def _grant(grantee="app", **privileges):
    return AclItem(grantee=grantee, **privileges)


def test_table_grants_flow_to_columns(catalog):
    """A table-level grant applies to every column."""
    catalog.table(
        "notes",
        col("id"),
        col("body", "text"),
        owner="postgres",
        acl=[_grant(select=True, update=True)],
    )
    facts = catalog.build()
    resolver = PermissionResolver(facts, "app")

    for attr in facts.attributes_of(catalog.class_oid("notes")):
        perms = resolver.resolve(attr)
        assert perms == FieldPermissions(can_select=True, can_insert=False, can_update=True)


def test_column_grant_widens_table_but_not_delete(catalog):
    """Column-only select widens the table's select; delete is never widened."""
    catalog.table(
        "salaries",
        col("id"),
        col("amount", "int4", acl=[_grant(select=True, delete=True)]),
        owner="postgres",
        acl=[],
    )
    facts = catalog.build()
    pg_class = facts.get_class(catalog.class_oid("salaries"))

    perms = resolve_permissions(facts, pg_class, "app")

    assert perms == EntityPermissions(
        can_select=True, can_insert=False, can_update=False, can_delete=False
    )
    id_attr, amount_attr = facts.attributes_of(pg_class.oid)
    assert resolve_permissions(facts, id_attr, "app").can_select is False
    assert resolve_permissions(facts, amount_attr, "app").can_select is True


def test_owner_has_all_privileges_without_acl(catalog):
    catalog.table("mine", col("id"), owner="app", acl=None)
    facts = catalog.build()
    perms = resolve_permissions(facts, facts.get_class(catalog.class_oid("mine")), "app")
    assert perms == EntityPermissions(
        can_select=True, can_insert=True, can_update=True, can_delete=True
    )


def test_public_and_inherited_grants(catalog):
    """PUBLIC grants and grants to a role the actor belongs to both count."""
    catalog.role_memberships = {"app": ["readers"]}
    catalog.table(
        "articles",
        col("id"),
        owner="postgres",
        acl=[_grant("readers", select=True), _grant("", insert=True)],
    )
    facts = catalog.build()
    perms = resolve_permissions(facts, facts.get_class(catalog.class_oid("articles")), "app")
    assert perms.can_select is True
    assert perms.can_insert is True
    assert perms.can_update is False


def test_other_role_grant_is_ignored(catalog):
    catalog.table("secrets", col("id"), owner="postgres", acl=[_grant("admin", select=True)])
    facts = catalog.build()
    perms = resolve_permissions(facts, facts.get_class(catalog.class_oid("secrets")), "app")
    assert perms.can_select is False


def test_function_execute_defaults_to_public(catalog):
    open_fn = catalog.function("open_fn")
    locked_fn = catalog.function("locked_fn", owner="postgres", acl=[_grant("admin", execute=True)])
    facts = catalog.build()
    procs = {p.oid: p for p in facts.procs}

    assert resolve_permissions(facts, procs[open_fn], "app") == FunctionPermissions(can_execute=True)
    assert resolve_permissions(facts, procs[locked_fn], "app") == FunctionPermissions(can_execute=False)


def test_namespace_usage(catalog):
    catalog.schema("private", usage=False)
    facts = catalog.build()
    resolver = PermissionResolver(facts, "app")

    assert resolver.resolve(facts.get_namespace_by_name("public")) == NamespacePermissions(can_usage=True)
    assert resolver.resolve(facts.get_namespace_by_name("private")).can_usage is False


def test_unknown_kind_raises(catalog):
    facts = catalog.build()
    index_class = PgClass(oid="1", relname="some_idx", relnamespace="2200", relkind="i")

    with pytest.raises(UnknownEntityKindError):
        resolve_permissions(facts, index_class, "app")

    with pytest.raises(UnknownEntityKindError):
        resolve_permissions(facts, "not a catalog object", "app")
