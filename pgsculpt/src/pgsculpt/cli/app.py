"""Typer CLI application."""

from pathlib import Path
from typing import List, Optional

import typer

from pgsculpt.config.settings import get_settings
from pgsculpt.config.logging import setup_logging
from pgsculpt.errors import PgSculptError
from pgsculpt.graph.join_graph import JoinGraph, format_edge, format_edge_detail
from pgsculpt.ir.builder import build_ir
from pgsculpt.ir.models import SemanticIR
from pgsculpt.utils.ir_io import load_catalog_from_json, save_ir_to_json

app = typer.Typer(help="pgsculpt: permission-aware IR and join graph from a PostgreSQL catalog snapshot")


def _build(facts_json: Path, schemas: Optional[List[str]], role: Optional[str]) -> SemanticIR:
    settings = get_settings()
    try:
        facts = load_catalog_from_json(Path(facts_json))
        return build_ir(
            facts,
            schemas=schemas or settings.schemas,
            acting_role=role or settings.acting_role,
        )
    except (FileNotFoundError, ValueError, PgSculptError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


@app.command()
def build(
    facts_json: Path,
    out_ir: Path,
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """
    Build the semantic IR from a catalog snapshot and write it as JSON.

    Args:
        facts_json: Path to the catalog snapshot JSON
        out_ir: Output path for SemanticIR JSON
    """
    setup_logging()

    typer.echo(f"Loading catalog snapshot from {facts_json}")
    ir = _build(facts_json, schema, role)

    typer.echo(f"Writing IR to {out_ir}")
    save_ir_to_json(ir, Path(out_ir))

    typer.echo(f"✓ Complete! {len(ir.entities)} entities written to {out_ir}")


@app.command()
def summary(
    facts_json: Path,
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """Print entity counts and the tables/views with their permissions."""
    setup_logging()
    ir = _build(facts_json, schema, role)

    counts = {}
    for entity in ir.entities.values():
        counts[entity.kind] = counts.get(entity.kind, 0) + 1
    typer.echo(f"Schemas: {', '.join(ir.schemas)}")
    for kind, count in sorted(counts.items()):
        typer.echo(f"  {kind}: {count}")

    for entity in ir.table_entities():
        perms = entity.permissions
        flags = "".join(
            letter if allowed else "-"
            for letter, allowed in (
                ("S", perms.can_select),
                ("I", perms.can_insert),
                ("U", perms.can_update),
                ("D", perms.can_delete),
            )
        )
        typer.echo(
            f"{entity.name} ({entity.kind} {entity.qualified_pg_name}) [{flags}] "
            f"fields={len(entity.fields)} relations={len(entity.relations)} "
            f"reverse={len(entity.reverse_relations)}"
        )


@app.command()
def path(
    facts_json: Path,
    from_entity: str,
    to_entity: str,
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """Print the shortest join path between two entities as a FROM/JOIN clause."""
    setup_logging()
    graph = JoinGraph(_build(facts_json, schema, role))

    join_path = graph.find_path(from_entity, to_entity)
    if join_path is None:
        typer.echo(f"No path from {from_entity} to {to_entity}", err=True)
        raise typer.Exit(1)

    for edge in join_path.edges:
        typer.echo(f"# {format_edge(edge)} {format_edge_detail(edge)}")
    typer.echo(graph.to_join_clause(join_path))


@app.command()
def reachable(
    facts_json: Path,
    from_entity: str,
    depth: Optional[int] = typer.Option(None, "--depth", "-d", help="Maximum number of hops"),
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """List entities reachable from an entity."""
    setup_logging()
    graph = JoinGraph(_build(facts_json, schema, role))

    for name in sorted(graph.get_reachable(from_entity, depth)):
        typer.echo(name)


@app.command("suggest-fks")
def suggest_fks(
    facts_json: Path,
    entity: str,
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """Suggest foreign keys missing their constraint, ranked by confidence."""
    setup_logging()
    graph = JoinGraph(_build(facts_json, schema, role))

    if graph.get_entity(entity) is None:
        typer.echo(f"Error: unknown table or view '{entity}'", err=True)
        raise typer.Exit(1)

    suggestions = graph.suggest_foreign_keys(entity)
    if not suggestions:
        typer.echo(f"No foreign key suggestions for {entity}")
        return
    for s in suggestions:
        typer.echo(
            f"[{s.confidence}] {entity}.{s.column_name} -> {s.target_entity}.{s.target_column} ({s.reason})"
        )


@app.command()
def mermaid(
    facts_json: Path,
    schema: Optional[List[str]] = typer.Option(None, "--schema", "-s", help="Schema to include (repeatable)"),
    role: Optional[str] = typer.Option(None, "--role", "-r", help="Acting role (default: snapshot's current role)"),
):
    """Print the relation graph as a Mermaid diagram."""
    setup_logging()
    typer.echo(JoinGraph(_build(facts_json, schema, role)).to_mermaid())


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
