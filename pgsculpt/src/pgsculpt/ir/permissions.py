"""Permission resolution for the acting role.

Aggregates grant booleans only; row-level security policies and their
predicates are not evaluated. The rules:

- Column: ``can_X = column grant X OR table grant X``.
- Table/view: start from the table grants; when select, insert or update
  is missing at table level, any real column granting it widens the table
  permission to true. Delete is never widened.
- Function: ``can_execute`` is the raw EXECUTE grant.
- Namespace: ``can_usage`` is the raw USAGE grant.
"""

from dataclasses import dataclass
from typing import List, Optional, Set, Union

from pgsculpt.catalog.facts import (
    AclItem,
    CatalogFacts,
    PgAttribute,
    PgClass,
    PgNamespace,
    PgProc,
    TABLE_RELKINDS,
    VIEW_RELKINDS,
)
from pgsculpt.errors import CatalogInconsistencyError, UnknownEntityKindError
from .models import EntityPermissions, FieldPermissions

PRIVILEGES = ("select", "insert", "update", "delete", "execute", "usage")


@dataclass(frozen=True)
class Privileges:
    """Raw privileges held on one object."""

    select: bool = False
    insert: bool = False
    update: bool = False
    delete: bool = False
    execute: bool = False
    usage: bool = False

    def union(self, other: "Privileges") -> "Privileges":
        return Privileges(**{p: getattr(self, p) or getattr(other, p) for p in PRIVILEGES})


ALL_PRIVILEGES = Privileges(**{p: True for p in PRIVILEGES})
NO_PRIVILEGES = Privileges()


@dataclass(frozen=True)
class FunctionPermissions:
    can_execute: bool = False


@dataclass(frozen=True)
class NamespacePermissions:
    can_usage: bool = False


PermissionSet = Union[FieldPermissions, EntityPermissions, FunctionPermissions, NamespacePermissions]
Resolvable = Union[PgAttribute, PgClass, PgProc, PgNamespace]


def effective_roles(facts: CatalogFacts, role: str) -> Set[str]:
    """The role plus every role it is (transitively) a member of."""
    seen = {role}
    stack = [role]
    while stack:
        current = stack.pop()
        for granted in facts.role_memberships.get(current, []):
            if granted not in seen:
                seen.add(granted)
                stack.append(granted)
    return seen


def acl_privileges(
    acl: Optional[List[AclItem]],
    roles: Set[str],
    owner: Optional[str] = None,
    public_default: Privileges = NO_PRIVILEGES,
    owner_default: bool = True,
) -> Privileges:
    """
    Privileges a set of roles holds through an ACL.

    A missing ACL (None) means the object carries default privileges: the
    owner holds everything and PUBLIC holds ``public_default``. Column ACLs
    pass ``owner_default=False`` since a column without an ACL has no
    privileges of its own.
    """
    if acl is None:
        if owner_default and owner is not None and owner in roles:
            return ALL_PRIVILEGES
        return public_default

    held = NO_PRIVILEGES
    for item in acl:
        if item.is_public or item.grantee in roles:
            held = held.union(
                Privileges(**{p: getattr(item, p) for p in PRIVILEGES})
            )
    return held


class PermissionResolver:
    """Resolves effective permissions of one acting role against a catalog snapshot."""

    def __init__(self, facts: CatalogFacts, role: str):
        self.facts = facts
        self.role = role
        self.roles = effective_roles(facts, role)

    # -- raw grants ---------------------------------------------------------

    def class_privileges(self, pg_class: PgClass) -> Privileges:
        return acl_privileges(pg_class.acl, self.roles, owner=pg_class.owner)

    def column_privileges(self, attr: PgAttribute) -> Privileges:
        return acl_privileges(attr.acl, self.roles, owner_default=False)

    def proc_privileges(self, proc: PgProc) -> Privileges:
        # Functions are executable by PUBLIC unless revoked
        return acl_privileges(
            proc.acl, self.roles, owner=proc.owner,
            public_default=Privileges(execute=True),
        )

    def namespace_privileges(self, namespace: PgNamespace) -> Privileges:
        return acl_privileges(namespace.acl, self.roles, owner=namespace.owner)

    # -- resolution ---------------------------------------------------------

    def resolve(self, entity: Resolvable) -> PermissionSet:
        """
        Effective permission set of an entity.

        Raises:
            UnknownEntityKindError: For anything outside table, view, column,
                function and namespace
        """
        if isinstance(entity, PgAttribute):
            return self.resolve_column(entity)
        if isinstance(entity, PgClass):
            if entity.relkind in TABLE_RELKINDS or entity.relkind in VIEW_RELKINDS:
                return self.resolve_class(entity)
            raise UnknownEntityKindError(entity)
        if isinstance(entity, PgProc):
            return FunctionPermissions(can_execute=self.proc_privileges(entity).execute)
        if isinstance(entity, PgNamespace):
            return NamespacePermissions(can_usage=self.namespace_privileges(entity).usage)
        raise UnknownEntityKindError(entity)

    def resolve_column(self, attr: PgAttribute) -> FieldPermissions:
        table = self.facts.get_class(attr.attrelid)
        if table is None:
            raise CatalogInconsistencyError(
                "column", attr.attname, f"missing owning class {attr.attrelid}"
            )
        column = self.column_privileges(attr)
        table_grants = self.class_privileges(table)
        return FieldPermissions(
            can_select=column.select or table_grants.select,
            can_insert=column.insert or table_grants.insert,
            can_update=column.update or table_grants.update,
        )

    def resolve_class(self, pg_class: PgClass) -> EntityPermissions:
        grants = self.class_privileges(pg_class)
        can_select = grants.select
        can_insert = grants.insert
        can_update = grants.update

        # Partial column access still lets the operation exist
        if not (can_select and can_insert and can_update):
            for attr in self.facts.attributes_of(pg_class.oid):
                column = self.column_privileges(attr)
                can_select = can_select or column.select
                can_insert = can_insert or column.insert
                can_update = can_update or column.update

        return EntityPermissions(
            can_select=can_select,
            can_insert=can_insert,
            can_update=can_update,
            can_delete=grants.delete,
        )


def resolve_permissions(facts: CatalogFacts, entity: Resolvable, role: str) -> PermissionSet:
    """Convenience wrapper around PermissionResolver.resolve."""
    return PermissionResolver(facts, role).resolve(entity)
