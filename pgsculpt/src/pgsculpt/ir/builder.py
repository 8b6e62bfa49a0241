"""Semantic IR builder: catalog facts -> SemanticIR.

The build runs in a fixed order because later phases read earlier output:

1. resolve included schemas, collect tables/views and claim entity names
2. fields (with column permissions) per table/view
3. primary keys and indexes
4. relation pairs from foreign keys
5. shapes and entity assembly
6. enums, domains and composite types
7. functions (computed-field detection, overload naming)
8. structural validation

Any reference to an object missing from the snapshot aborts the build with
CatalogInconsistencyError; no partially populated IR is ever returned.
"""

from typing import Dict, List, Optional, Sequence, Set, Tuple

from pgsculpt.catalog.facts import (
    CatalogFacts,
    PgAttribute,
    PgClass,
    PgConstraint,
    PgIndex,
    PgNamespace,
    PgProc,
    PgType,
    INDOPTION_DESC,
    INDOPTION_NULLS_FIRST,
    RELKIND_COMPOSITE,
    TABLE_RELKINDS,
    VIEW_RELKINDS,
)
from pgsculpt.config.logging import get_logger
from pgsculpt.errors import CatalogInconsistencyError, IrInvariantError
from .inflection import Inflection, pascal_case
from .models import (
    ColumnPair,
    CompositeEntity,
    DomainEntity,
    EntityPermissions,
    EnumEntity,
    ExtensionInfo,
    Field,
    FunctionArg,
    FunctionEntity,
    IndexDef,
    PrimaryKey,
    Relation,
    ReverseRelation,
    SemanticIR,
    Shape,
    Shapes,
    SortOption,
    TableEntity,
    TypeRef,
    ViewEntity,
)
from .permissions import PermissionResolver
from .tags import ParsedComment, parse_smart_tags
from .validators import validate_ir

logger = get_logger(__name__)

VOLATILITY = {"i": "immutable", "s": "stable", "v": "volatile"}
INPUT_ARG_MODES = ("i", "b", "v")
ARRAY_CATEGORY = "A"


class _RelationalDraft:
    """Mutable working state for one table/view while the build is running."""

    def __init__(self, pg_class: PgClass, schema_name: str, name: str, comment: ParsedComment):
        self.pg_class = pg_class
        self.schema_name = schema_name
        self.name = name
        self.tags = comment.tags
        self.description = comment.description
        self.fields: List[Field] = []
        self.fields_by_attnum: Dict[int, Field] = {}
        self.primary_key: Optional[PrimaryKey] = None
        self.indexes: List[IndexDef] = []
        self.relations: List[Relation] = []
        self.reverse_relations: List[ReverseRelation] = []
        self.permissions = EntityPermissions()

    @property
    def is_view(self) -> bool:
        return self.pg_class.relkind in VIEW_RELKINDS

    @property
    def label(self) -> str:
        return f"{self.schema_name}.{self.pg_class.relname}"


class IRBuilder:
    """Builds a SemanticIR from a catalog snapshot for one acting role."""

    def __init__(
        self,
        facts: CatalogFacts,
        schemas: Optional[Sequence[str]] = None,
        acting_role: Optional[str] = None,
        inflection: Optional[Inflection] = None,
    ):
        """
        Initialize the builder.

        Args:
            facts: Catalog snapshot
            schemas: Schema names to include (default: ["public"])
            acting_role: Role whose permissions are resolved (default: facts.current_role)
            inflection: Naming rules (default: Inflection())
        """
        self.facts = facts
        self.schemas = list(schemas) if schemas else ["public"]
        self.acting_role = acting_role or facts.current_role
        self.inflection = inflection or Inflection()
        self.resolver = PermissionResolver(facts, self.acting_role)

        self._namespaces: Dict[str, PgNamespace] = {}  # oid -> included namespace
        self._schema_order: Dict[str, int] = {}
        self._names: Dict[str, str] = {}  # public name -> catalog label
        self._drafts: Dict[str, _RelationalDraft] = {}  # class oid -> draft
        self._type_refs: Dict[str, TypeRef] = {}

    # ------------------------------------------------------------------
    # entry point
    # ------------------------------------------------------------------

    def build(self) -> SemanticIR:
        """
        Run every build phase and return the validated IR.

        Raises:
            CatalogInconsistencyError: If the snapshot references missing objects
                or two objects inflect to the same entity name
            TagParseError: If a smart-tag comment is malformed
            IrInvariantError: If the assembled IR violates a structural invariant
        """
        logger.info(f"Building IR for schemas {self.schemas} as role '{self.acting_role}'")

        self._resolve_namespaces()
        self._collect_relational_classes()
        for draft in self._drafts.values():
            self._build_fields(draft)
            self._build_primary_key(draft)
            self._build_indexes(draft)
        self._build_relations()

        entities: Dict[str, object] = {}
        for draft in self._drafts.values():
            entities[draft.name] = self._assemble(draft)
        logger.info(f"Built {len(self._drafts)} table/view entities")

        for entity in self._build_types():
            entities[entity.name] = entity
        functions = self._build_functions()
        for fn in functions:
            entities[fn.name] = fn
        logger.info(f"Built {len(functions)} function entities")

        ir = SemanticIR(
            entities=entities,
            schemas=self.schemas,
            extensions=self._build_extensions(),
        )

        issues = validate_ir(ir)
        if issues:
            raise IrInvariantError(issues)

        logger.info(f"IR build completed: {len(ir.entities)} entities")
        return ir

    # ------------------------------------------------------------------
    # schemas and names
    # ------------------------------------------------------------------

    def _resolve_namespaces(self) -> None:
        for position, schema in enumerate(self.schemas):
            namespace = self.facts.get_namespace_by_name(schema)
            if namespace is None:
                logger.warning(f"Schema '{schema}' not found in catalog snapshot")
                continue
            self._namespaces[namespace.oid] = namespace
            self._schema_order[namespace.oid] = position

            if not self.resolver.resolve(namespace).can_usage:
                logger.warning(
                    f"Role '{self.acting_role}' lacks USAGE on schema '{schema}'; "
                    f"generated code may fail at runtime"
                )

    def _schema_name(self, namespace_oid: str, object_type: str, object_name: str) -> str:
        namespace = self.facts.get_namespace(namespace_oid)
        if namespace is None:
            raise CatalogInconsistencyError(
                object_type, object_name, f"missing namespace {namespace_oid}"
            )
        return namespace.nspname

    def _claim_name(self, name: str, object_type: str, label: str) -> None:
        existing = self._names.get(name)
        if existing is not None:
            raise CatalogInconsistencyError(
                object_type, label, f"duplicate entity name '{name}' (already used by {existing})"
            )
        self._names[name] = label

    def _sort_key(self, namespace_oid: str, name: str) -> Tuple[int, str]:
        return self._schema_order.get(namespace_oid, len(self._schema_order)), name

    # ------------------------------------------------------------------
    # tables and views
    # ------------------------------------------------------------------

    def _collect_relational_classes(self) -> None:
        classes = [
            c for c in self.facts.classes
            if c.relnamespace in self._namespaces
            and (c.relkind in TABLE_RELKINDS or c.relkind in VIEW_RELKINDS)
        ]
        classes.sort(key=lambda c: self._sort_key(c.relnamespace, c.relname))

        for pg_class in classes:
            schema_name = self._namespaces[pg_class.relnamespace].nspname
            object_type = "view" if pg_class.relkind in VIEW_RELKINDS else "table"
            label = f"{schema_name}.{pg_class.relname}"

            comment = parse_smart_tags(pg_class.description, object_type, label)
            if comment.tags.is_omitted():
                logger.debug(f"Skipping omitted {object_type} {label}")
                continue

            name = self.inflection.entity_name(pg_class.relname, comment.tags)
            self._claim_name(name, object_type, label)
            self._drafts[pg_class.oid] = _RelationalDraft(pg_class, schema_name, name, comment)

    def _build_fields(self, draft: _RelationalDraft) -> None:
        for attr in self.facts.attributes_of(draft.pg_class.oid):
            field = self._field(attr, f"{draft.label}.{attr.attname}", with_permissions=True)
            draft.fields.append(field)
            draft.fields_by_attnum[attr.attnum] = field

        permissions = self.resolver.resolve(draft.pg_class)
        if draft.is_view:
            # Views expose no insert/delete surface
            permissions = permissions.model_copy(update={"can_insert": False, "can_delete": False})
        draft.permissions = permissions

    def _field(self, attr: PgAttribute, label: str, with_permissions: bool) -> Field:
        comment = parse_smart_tags(attr.description, "column", label)
        type_ref = self._type_ref(attr.atttypid, "column", label)
        identity_kind = {"a": "always", "d": "by_default"}.get(attr.attidentity)
        return Field(
            name=self.inflection.field_name(attr.attname, comment.tags),
            column_name=attr.attname,
            attnum=attr.attnum,
            type=type_ref,
            is_array=type_ref.element is not None or attr.attndims > 0,
            nullable=not attr.attnotnull,
            has_default=attr.atthasdef or identity_kind is not None,
            is_identity=identity_kind is not None,
            identity_kind=identity_kind,
            is_generated=attr.attgenerated == "s",
            permissions=self.resolver.resolve_column(attr) if with_permissions else None,
            tags=comment.tags,
            description=comment.description,
        )

    def _type_ref(self, type_oid: Optional[str], object_type: str, object_name: str) -> TypeRef:
        """Resolve a type oid to a TypeRef, following array elements and nested domains."""
        if type_oid in self._type_refs:
            return self._type_refs[type_oid]

        pg_type = self.facts.get_type(type_oid)
        if pg_type is None:
            raise CatalogInconsistencyError(object_type, object_name, f"missing type {type_oid}")

        element = None
        if pg_type.typcategory == ARRAY_CATEGORY and pg_type.typelem:
            element = self._type_ref(pg_type.typelem, object_type, object_name)
        domain_base = None
        if pg_type.typtype == "d" and pg_type.typbasetype:
            domain_base = self._type_ref(pg_type.typbasetype, object_type, object_name)

        ref = TypeRef(
            oid=pg_type.oid,
            name=pg_type.typname,
            schema_name=self._schema_name(pg_type.typnamespace, "type", pg_type.typname),
            category=pg_type.typcategory,
            kind=pg_type.typtype,
            element=element,
            domain_base=domain_base,
        )
        self._type_refs[type_oid] = ref
        return ref

    def _column(self, draft: _RelationalDraft, attnum: int, object_type: str, object_name: str) -> Field:
        field = draft.fields_by_attnum.get(attnum)
        if field is None:
            raise CatalogInconsistencyError(
                object_type, object_name, f"missing attribute {attnum} of {draft.label}"
            )
        return field

    # ------------------------------------------------------------------
    # keys and indexes
    # ------------------------------------------------------------------

    def _build_primary_key(self, draft: _RelationalDraft) -> None:
        if draft.tags.primary_key:
            known = {f.column_name for f in draft.fields}
            unknown = [c for c in draft.tags.primary_key if c not in known]
            if unknown:
                raise CatalogInconsistencyError(
                    "table", draft.label, f"primaryKey tag names unknown columns {unknown}"
                )
            draft.primary_key = PrimaryKey(columns=list(draft.tags.primary_key), is_virtual=True)
            return

        for con in self.facts.constraints_of(draft.pg_class.oid, "p"):
            columns = [
                self._column(draft, attnum, "constraint", con.conname).column_name
                for attnum in con.conkey
            ]
            draft.primary_key = PrimaryKey(columns=columns)
            return

    def _build_indexes(self, draft: _RelationalDraft) -> None:
        for index in self.facts.indexes_of(draft.pg_class.oid):
            draft.indexes.append(self._index(draft, index))
        draft.indexes.sort(key=lambda i: i.name)

    def _index(self, draft: _RelationalDraft, index: PgIndex) -> IndexDef:
        index_class = self.facts.get_class(index.indexrelid)
        if index_class is None:
            raise CatalogInconsistencyError(
                "index", index.indexrelid, f"missing index class on {draft.label}"
            )
        name = index_class.relname
        if not index.indkey:
            raise CatalogInconsistencyError("index", name, "missing index keys")
        method = self.facts.access_method(index_class.relam)
        if method is None:
            raise CatalogInconsistencyError(
                "index", name, f"missing access method {index_class.relam}"
            )

        columns: List[str] = []
        column_names: List[str] = []
        sort_options: List[SortOption] = []
        for position, attnum in enumerate(index.indkey):
            option = index.indoption[position] if position < len(index.indoption) else 0
            column = None
            if attnum != 0:
                field = self._column(draft, attnum, "index", name)
                column = field.column_name
                column_names.append(field.column_name)
                columns.append(field.name)
            sort_options.append(
                SortOption(
                    column=column,
                    descending=bool(option & INDOPTION_DESC),
                    nulls_first=bool(option & INDOPTION_NULLS_FIRST),
                )
            )

        return IndexDef(
            name=name,
            columns=columns,
            column_names=column_names,
            is_unique=index.indisunique,
            is_primary=index.indisprimary,
            is_partial=index.predicate is not None,
            predicate=index.predicate,
            has_expressions=0 in index.indkey,
            method=method.amname,
            sort_options=sort_options,
        )

    # ------------------------------------------------------------------
    # relations
    # ------------------------------------------------------------------

    def _build_relations(self) -> None:
        count = 0
        for draft in self._drafts.values():
            for con in self.facts.constraints_of(draft.pg_class.oid, "f"):
                if self._add_relation_pair(draft, con):
                    count += 1
        logger.info(f"Built {count} relation pairs")

    def _add_relation_pair(self, source: _RelationalDraft, con: PgConstraint) -> bool:
        target_class = self.facts.get_class(con.confrelid)
        if target_class is None:
            raise CatalogInconsistencyError(
                "constraint", con.conname, f"missing foreign key target {con.confrelid}"
            )
        target = self._drafts.get(target_class.oid)
        if target is None:
            logger.debug(
                f"Skipping foreign key {con.conname}: target {target_class.relname} is not in the IR"
            )
            return False
        if not con.conkey or len(con.conkey) != len(con.confkey):
            raise CatalogInconsistencyError(
                "constraint", con.conname, "foreign key column lists do not line up"
            )

        comment = parse_smart_tags(con.description, "constraint", con.conname)
        if comment.tags.is_omitted():
            logger.debug(f"Skipping omitted foreign key {con.conname}")
            return False

        pairs = [
            (
                self._column(source, local, "constraint", con.conname).column_name,
                self._column(target, foreign, "constraint", con.conname).column_name,
            )
            for local, foreign in zip(con.conkey, con.confkey)
        ]

        source.relations.append(
            Relation(
                target_entity=target.name,
                constraint_name=con.conname,
                columns=[ColumnPair(local=local, foreign=foreign) for local, foreign in pairs],
                tags=comment.tags,
            )
        )
        target.reverse_relations.append(
            ReverseRelation(
                kind="hasOne" if self._is_unique_key(source, con.conkey) else "hasMany",
                source_entity=source.name,
                constraint_name=con.conname,
                columns=[ColumnPair(local=foreign, foreign=local) for local, foreign in pairs],
                tags=comment.tags,
            )
        )
        return True

    def _is_unique_key(self, draft: _RelationalDraft, attnums: List[int]) -> bool:
        """True when the columns exactly match a unique/primary constraint or unique index."""
        wanted = set(attnums)
        for con in self.facts.constraints_of(draft.pg_class.oid):
            if con.contype in ("p", "u") and set(con.conkey) == wanted:
                return True
        for index in self.facts.indexes_of(draft.pg_class.oid):
            if index.indisunique and index.predicate is None and set(index.indkey) == wanted:
                return True
        return False

    # ------------------------------------------------------------------
    # shapes and assembly
    # ------------------------------------------------------------------

    def _shapes(self, draft: _RelationalDraft) -> Shapes:
        row = [
            f for f in draft.fields
            if f.permissions.can_select and not f.tags.is_omitted_for("row")
        ]
        update = [
            f for f in row
            if f.permissions.can_update
            and not f.tags.is_omitted_for("update")
            and not f.is_generated
            and f.identity_kind != "always"
        ]
        insert = None
        if not draft.is_view:
            insert = Shape(
                name=self.inflection.shape_name(draft.name, "insert"),
                kind="insert",
                fields=[
                    f for f in row
                    if f.permissions.can_insert
                    and not f.tags.is_omitted_for("insert")
                    and not f.is_generated
                ],
            )
        return Shapes(
            row=Shape(name=self.inflection.shape_name(draft.name, "row"), kind="row", fields=row),
            insert=insert,
            update=Shape(
                name=self.inflection.shape_name(draft.name, "update"), kind="update", fields=update
            ),
        )

    def _assemble(self, draft: _RelationalDraft):
        entity_cls = ViewEntity if draft.is_view else TableEntity
        return entity_cls(
            name=draft.name,
            pg_name=draft.pg_class.relname,
            schema_name=draft.schema_name,
            tags=draft.tags,
            description=draft.description,
            fields=draft.fields,
            primary_key=draft.primary_key,
            indexes=draft.indexes,
            relations=draft.relations,
            reverse_relations=draft.reverse_relations,
            permissions=draft.permissions,
            shapes=self._shapes(draft),
        )

    # ------------------------------------------------------------------
    # enums, domains, composites
    # ------------------------------------------------------------------

    def _build_types(self) -> list:
        types = [
            t for t in self.facts.types
            if t.typnamespace in self._namespaces and t.typtype in ("e", "d", "c")
        ]
        types.sort(key=lambda t: self._sort_key(t.typnamespace, t.typname))

        entities = []
        for pg_type in types:
            schema_name = self._namespaces[pg_type.typnamespace].nspname
            label = f"{schema_name}.{pg_type.typname}"

            if pg_type.typtype == "c":
                composite_class = self.facts.get_class(pg_type.typrelid)
                if composite_class is None:
                    raise CatalogInconsistencyError(
                        "type", label, f"missing composite class {pg_type.typrelid}"
                    )
                if composite_class.relkind != RELKIND_COMPOSITE:
                    continue  # row type of a table or view

            comment = parse_smart_tags(pg_type.description, "type", label)
            if comment.tags.is_omitted():
                logger.debug(f"Skipping omitted type {label}")
                continue

            entity = self._type_entity(pg_type, schema_name, label, comment)
            self._claim_name(entity.name, "type", label)
            entities.append(entity)

        logger.info(f"Built {len(entities)} type entities")
        return entities

    def _type_entity(self, pg_type: PgType, schema_name: str, label: str, comment: ParsedComment):
        common = dict(
            pg_name=pg_type.typname,
            schema_name=schema_name,
            tags=comment.tags,
            description=comment.description,
        )
        if pg_type.typtype == "e":
            return EnumEntity(
                name=self.inflection.enum_name(pg_type.typname, comment.tags),
                values=self.facts.enum_values(pg_type.oid),
                **common,
            )
        name = self.inflection.type_name(pg_type.typname, comment.tags)
        if pg_type.typtype == "d":
            if not pg_type.typbasetype:
                raise CatalogInconsistencyError("type", label, "domain without base type")
            return DomainEntity(
                name=name,
                base_type=self._type_ref(pg_type.typbasetype, "type", label),
                **common,
            )
        # Composite members carry no permissions
        fields = [
            self._field(attr, f"{label}.{attr.attname}", with_permissions=False)
            for attr in self.facts.attributes_of(pg_type.typrelid)
        ]
        return CompositeEntity(name=name, fields=fields, **common)

    # ------------------------------------------------------------------
    # functions
    # ------------------------------------------------------------------

    def _build_functions(self) -> List[FunctionEntity]:
        procs = [p for p in self.facts.procs if p.pronamespace in self._namespaces]
        procs.sort(key=lambda p: (*self._sort_key(p.pronamespace, p.proname), p.oid))

        functions: List[FunctionEntity] = []
        used: Set[str] = set()
        for proc in procs:
            schema_name = self._namespaces[proc.pronamespace].nspname
            label = f"{schema_name}.{proc.proname}"
            comment = parse_smart_tags(proc.description, "function", label)
            if comment.tags.is_omitted():
                logger.debug(f"Skipping omitted function {label}")
                continue

            args = self._function_args(proc, label)
            name = self._overload_name(
                self.inflection.function_name(proc.proname, comment.tags), args, used
            )
            used.add(name)
            self._claim_name(name, "function", label)

            return_type = self._type_ref(proc.prorettype, "function", label)
            volatility = VOLATILITY[proc.provolatile]
            functions.append(
                FunctionEntity(
                    name=name,
                    pg_name=proc.proname,
                    schema_name=schema_name,
                    tags=comment.tags,
                    description=comment.description,
                    args=args,
                    return_type_name=return_type.name,
                    return_type=return_type,
                    returns_set=proc.proretset,
                    volatility=volatility,
                    can_execute=self.resolver.resolve(proc).can_execute,
                    is_from_extension=self.facts.is_extension_object(proc.oid),
                    computed_for=self._computed_for(proc),
                )
            )
        return functions

    def _function_args(self, proc: PgProc, label: str) -> List[FunctionArg]:
        names: List[Optional[str]] = list(proc.proargnames or [])
        if proc.proargmodes:
            # proargnames covers every argument, including OUT/TABLE ones
            names = [
                names[i] if i < len(names) else None
                for i, mode in enumerate(proc.proargmodes)
                if mode in INPUT_ARG_MODES
            ]

        first_default = len(proc.proargtypes) - proc.pronargdefaults
        args = []
        for position, type_oid in enumerate(proc.proargtypes):
            name = names[position] if position < len(names) else None
            args.append(
                FunctionArg(
                    name=name or None,
                    type=self._type_ref(type_oid, "function", label),
                    has_default=position >= first_default,
                )
            )
        return args

    def _overload_name(self, base: str, args: List[FunctionArg], used: Set[str]) -> str:
        if base not in used:
            return base
        suffix = "And".join(pascal_case(a.type.name) for a in args)
        candidate = f"{base}By{suffix}" if suffix else base
        n = 2
        name = candidate
        while name in used:
            name = f"{candidate}{n}"
            n += 1
        return name

    def _computed_for(self, proc: PgProc) -> Optional[str]:
        """Entity name when proc is a per-row computed field of an included table."""
        if len(proc.proargtypes) != 1:
            return None
        arg_type = self.facts.get_type(proc.proargtypes[0])
        if arg_type is None or not arg_type.typrelid:
            return None
        draft = self._drafts.get(arg_type.typrelid)
        if draft is None or draft.is_view:
            return None
        return draft.name

    # ------------------------------------------------------------------
    # extensions
    # ------------------------------------------------------------------

    def _build_extensions(self) -> List[ExtensionInfo]:
        extensions = []
        for ext in self.facts.extensions:
            namespace = self.facts.get_namespace(ext.extnamespace)
            extensions.append(
                ExtensionInfo(
                    name=ext.extname,
                    schema_name=namespace.nspname if namespace else None,
                    version=ext.extversion,
                )
            )
        return extensions


def build_ir(
    facts: CatalogFacts,
    schemas: Optional[Sequence[str]] = None,
    acting_role: Optional[str] = None,
    inflection: Optional[Inflection] = None,
) -> SemanticIR:
    """
    Build a SemanticIR from catalog facts.

    Args:
        facts: Catalog snapshot
        schemas: Schema names to include (default: ["public"])
        acting_role: Role whose permissions are resolved (default: facts.current_role)
        inflection: Naming rules

    Returns:
        Validated, immutable SemanticIR
    """
    return IRBuilder(facts, schemas, acting_role, inflection).build()
