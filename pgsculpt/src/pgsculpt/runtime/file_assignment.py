"""Assignment of declared symbols to output files.

Layout is decided here, not by plugins: plugins only declare capabilities
and the first ``FileRule`` whose pattern prefixes a capability picks the
file. Symbols no rule matches land in the default file.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Sequence, Union

from pgsculpt.ir.inflection import uncapitalize

if TYPE_CHECKING:
    from .types import SymbolDeclaration

DEFAULT_SCHEMA = "public"

# Leading capability parts that name a category or a provider, never an entity
KNOWN_CATEGORIES = frozenset({
    "type", "types", "schema", "schemas", "query", "queries",
    "http-routes", "http-router", "http",
})
KNOWN_PROVIDERS = frozenset({
    "kysely", "drizzle", "effect-sql", "sql", "prisma",
    "zod", "arktype", "effect", "valibot", "yup", "typebox",
    "elysia", "hono", "fastify", "express", "trpc",
})


@dataclass(frozen=True)
class CapabilityInfo:
    entity_name: str
    schema: str = DEFAULT_SCHEMA


@dataclass(frozen=True)
class FileNamingContext:
    """What a file-naming callable gets to decide a path."""

    name: str  # symbol name
    entity_name: str
    schema: str
    capability: str
    folder_name: str  # uncapitalized entity name


FileNaming = Callable[[FileNamingContext], str]


@dataclass(frozen=True)
class FileRule:
    """Maps capabilities starting with ``pattern`` to a file (static or computed)."""

    pattern: str
    file: Union[str, FileNaming]
    output_dir: Optional[str] = None

    def matches(self, capability: str) -> bool:
        return capability.startswith(self.pattern)

    def path_for(self, context: FileNamingContext) -> str:
        file_name = self.file if isinstance(self.file, str) else self.file(context)
        if self.output_dir:
            return f"{self.output_dir.rstrip('/')}/{file_name}"
        return file_name


def parse_capability_info(capability: str) -> CapabilityInfo:
    """
    Extract the entity (and schema) a capability is about.

    The entity is the first ``:``-separated part that is not a known
    category or provider; ``schema.Entity`` carries a schema.

    Examples:
        >>> parse_capability_info("queries:kysely:User:findById")
        CapabilityInfo(entity_name='User', schema='public')
        >>> parse_capability_info("type:auth.Account")
        CapabilityInfo(entity_name='Account', schema='auth')
    """
    parts = capability.split(":")
    for part in parts:
        lowered = part.lower()
        if lowered in KNOWN_CATEGORIES or lowered in KNOWN_PROVIDERS:
            continue
        if "." in part:
            schema, _, entity = part.partition(".")
            return CapabilityInfo(entity_name=entity or part, schema=schema or DEFAULT_SCHEMA)
        return CapabilityInfo(entity_name=part)
    return CapabilityInfo(entity_name=parts[-1] or capability)


def naming_context(declaration: "SymbolDeclaration") -> FileNamingContext:
    info = parse_capability_info(declaration.capability)
    return FileNamingContext(
        name=declaration.name,
        entity_name=info.entity_name,
        schema=info.schema,
        capability=declaration.capability,
        folder_name=uncapitalize(info.entity_name),
    )


def assign_file(declaration: "SymbolDeclaration", rules: Sequence[FileRule], default_file: str) -> str:
    """Output path of one declaration: first matching rule, else ``default_file``."""
    for rule in rules:
        if rule.matches(declaration.capability):
            return rule.path_for(naming_context(declaration))
    return default_file


def assign_files(
    declarations: Sequence["SymbolDeclaration"],
    rules: Sequence[FileRule],
    default_file: str,
) -> Dict[str, str]:
    """Map each declared capability to its output path, in declaration order."""
    return {d.capability: assign_file(d, rules, default_file) for d in declarations}


def group_by_file(assignments: Dict[str, str]) -> Dict[str, List[str]]:
    """Invert capability -> path into path -> capabilities, keeping first-seen order."""
    groups: Dict[str, List[str]] = {}
    for capability, path in assignments.items():
        groups.setdefault(path, []).append(capability)
    return groups


def compute_relative_path(from_file: str, to_file: str) -> str:
    """
    Relative import path between two output files (both relative to the output dir).

    The target's ``.ts`` extension becomes ``.js`` and same-directory paths
    get a ``./`` prefix.

    Examples:
        >>> compute_relative_path("User/queries.ts", "types.ts")
        '../types.js'
        >>> compute_relative_path("index.ts", "User/types.ts")
        './User/types.js'
    """
    from_parts = from_file.split("/")[:-1]
    to_parts = to_file.split("/")
    to_name = to_parts.pop()

    common = 0
    while (
        common < len(from_parts)
        and common < len(to_parts)
        and from_parts[common] == to_parts[common]
    ):
        common += 1

    parts = [".."] * (len(from_parts) - common) + to_parts[common:]
    parts.append(to_name[:-3] + ".js" if to_name.endswith(".ts") else to_name)
    if parts[0] != "..":
        parts.insert(0, ".")
    return "/".join(parts)
