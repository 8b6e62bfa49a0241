"""Merging of placed symbols into output files.

Symbols sharing a file are concatenated in render order. Their external
imports are grouped by source and deduplicated: type-only names get their
own ``import type`` statement, default and namespace imports are kept
distinct from named ones. Internal sources (``./x``, ``../x``, ``*.ts``,
``*.js``) are paths relative to the output directory and are rewritten
relative to the importing file.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from pgsculpt.config.logging import get_logger
from pgsculpt.errors import ExportCollisionError
from .file_assignment import compute_relative_path
from .types import PlacedSymbol, RenderedSymbol

logger = get_logger(__name__)

_INTERNAL_SOURCE = re.compile(r"^\.\.?/|\.(ts|js)$")


@dataclass
class ImportStatement:
    """One ES import statement."""

    source: str
    names: List[str] = field(default_factory=list)
    type_only: bool = False
    default: Optional[str] = None
    namespace: Optional[str] = None

    def render(self) -> str:
        """
        Examples:
            >>> ImportStatement("zod", names=["z"]).render()
            'import { z } from "zod";'
            >>> ImportStatement("pg", default="pg", names=["Pool"]).render()
            'import pg, { Pool } from "pg";'
        """
        clauses = []
        if self.default:
            clauses.append(self.default)
        if self.namespace:
            clauses.append(f"* as {self.namespace}")
        if self.names:
            clauses.append("{ " + ", ".join(self.names) + " }")
        keyword = "import type" if self.type_only else "import"
        return f'{keyword} {", ".join(clauses)} from "{self.source}";'


@dataclass
class EmittedFile:
    path: str
    content: str
    imports: List[ImportStatement] = field(default_factory=list)
    capabilities: List[str] = field(default_factory=list)


def is_internal_source(source: str) -> bool:
    return bool(_INTERNAL_SOURCE.search(source))


def internal_target(source: str) -> str:
    """Output-dir path of an internal source (``./types.js`` -> ``types.ts``)."""
    normalized = source[2:] if source.startswith("./") else source
    if normalized.endswith(".js"):
        normalized = normalized[:-3] + ".ts"
    return normalized


def resolve_import_source(for_file: str, source: str) -> str:
    """Package sources pass through; internal paths become relative to ``for_file``."""
    if not is_internal_source(source):
        return source
    return compute_relative_path(for_file, internal_target(source))


def collect_imports(file_path: str, symbols: Sequence[RenderedSymbol]) -> List[ImportStatement]:
    """
    Grouped, deduplicated import statements; type-only statements first.

    Internal sources pointing at ``file_path`` itself are dropped.
    """
    type_names: Dict[str, List[str]] = {}
    value_names: Dict[str, List[str]] = {}
    defaults: Dict[str, List[str]] = {}
    namespaces: Dict[str, List[str]] = {}

    def add(bucket: Dict[str, List[str]], source: str, name: str) -> None:
        names = bucket.setdefault(source, [])
        if name not in names:
            names.append(name)

    for symbol in symbols:
        for ext in symbol.external_imports:
            # Symbols in the same file need no import
            if is_internal_source(ext.source) and internal_target(ext.source) == file_path:
                continue
            source = resolve_import_source(file_path, ext.source)
            for name in ext.types:
                add(type_names, source, name)
            for name in ext.names:
                add(value_names, source, name)
            if ext.default:
                add(defaults, source, ext.default)
            if ext.namespace:
                add(namespaces, source, ext.namespace)

    statements = [
        ImportStatement(source, names=names, type_only=True)
        for source, names in type_names.items()
    ]

    sources = list(dict.fromkeys([*namespaces, *defaults, *value_names]))
    for source in sources:
        for namespace in namespaces.get(source, []):
            statements.append(ImportStatement(source, namespace=namespace))
        source_defaults = defaults.get(source, [])
        names = value_names.get(source, [])
        if source_defaults:
            # Only one default binding fits in a statement
            statements.append(ImportStatement(source, names=names, default=source_defaults[0]))
            statements.extend(ImportStatement(source, default=d) for d in source_defaults[1:])
        elif names:
            statements.append(ImportStatement(source, names=names))

    return statements


def export_content(symbol: RenderedSymbol) -> str:
    """Symbol content with the export keyword its ``exports`` setting asks for."""
    content = symbol.content.strip("\n")
    if symbol.exports is False or content.startswith("export "):
        return content
    if symbol.exports == "default":
        return f"export default {content}"
    return f"export {content}"


def _check_exports(file_path: str, placed: Sequence[PlacedSymbol]) -> None:
    seen: Dict[str, str] = {}
    for item in placed:
        symbol = item.symbol
        if symbol.exports is False:
            continue
        export_name = "default" if symbol.exports == "default" else symbol.name
        if export_name in seen:
            raise ExportCollisionError(file_path, export_name, [seen[export_name], symbol.capability])
        seen[export_name] = symbol.capability


def merge_files(placed: Sequence[PlacedSymbol], header_comment: Optional[str] = None) -> List[EmittedFile]:
    """
    Merge placed symbols into files.

    Args:
        placed: Symbols in render order
        header_comment: Optional comment prepended to every file

    Returns:
        EmittedFile per path, in order of first appearance; files whose
        symbols are all metadata-only are omitted

    Raises:
        ExportCollisionError: If two symbols in one file export the same name
    """
    by_file: Dict[str, List[PlacedSymbol]] = {}
    for item in placed:
        by_file.setdefault(item.file_path, []).append(item)

    files: List[EmittedFile] = []
    for path, items in by_file.items():
        with_content = [i for i in items if i.symbol.content.strip()]
        if not with_content:
            logger.debug(f"Skipping {path}: no symbol content")
            continue
        _check_exports(path, with_content)

        imports = collect_imports(path, [i.symbol for i in with_content])
        sections = []
        if header_comment:
            sections.append(header_comment.rstrip("\n"))
        if imports:
            sections.append("\n".join(s.render() for s in imports))
        sections.extend(export_content(i.symbol) for i in with_content)

        files.append(
            EmittedFile(
                path=path,
                content="\n\n".join(sections) + "\n",
                imports=imports,
                capabilities=[i.capability for i in with_content],
            )
        )

    logger.info(f"Merged {len(placed)} symbols into {len(files)} files")
    return files
