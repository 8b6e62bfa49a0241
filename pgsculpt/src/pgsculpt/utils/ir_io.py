"""Utilities for loading catalog snapshots and loading/saving IR JSON files."""

from pathlib import Path
from pydantic import TypeAdapter
from pgsculpt.catalog.facts import CatalogFacts
from pgsculpt.ir.models import SemanticIR


def _read_json_text(path: Path, kind: str) -> str:
    if not path.exists():
        raise FileNotFoundError(f"{kind} file not found: {path}")

    file_content = path.read_text(encoding="utf-8").strip()
    if not file_content:
        raise ValueError(
            f"{kind} file is empty or corrupted: {path}. "
            f"The file exists but contains no valid JSON data."
        )
    return file_content


def load_catalog_from_json(facts_path: Path) -> CatalogFacts:
    """
    Load a catalog snapshot from a JSON file.

    Args:
        facts_path: Path to the JSON file

    Returns:
        CatalogFacts with its lookup indexes built

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty, corrupted or fails validation
    """
    facts_path = Path(facts_path)
    file_content = _read_json_text(facts_path, "Catalog snapshot")
    try:
        return TypeAdapter(CatalogFacts).validate_json(file_content)
    except Exception as e:
        raise ValueError(
            f"Failed to load catalog snapshot from {facts_path}: {e}. "
            f"Please re-run introspection to produce a fresh snapshot."
        ) from e


def load_ir_from_json(ir_path: Path) -> SemanticIR:
    """
    Load SemanticIR from a JSON file.

    Args:
        ir_path: Path to the JSON file

    Returns:
        Loaded SemanticIR instance

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or corrupted
    """
    ir_path = Path(ir_path)
    file_content = _read_json_text(ir_path, "IR")
    try:
        return TypeAdapter(SemanticIR).validate_json(file_content)
    except Exception as e:
        raise ValueError(
            f"Failed to load IR from {ir_path}: {e}. "
            f"The file may be corrupted. Please rebuild the IR from a catalog snapshot."
        ) from e


def save_ir_to_json(ir: SemanticIR, ir_path: Path) -> None:
    """
    Save SemanticIR to a JSON file.

    Args:
        ir: SemanticIR instance to save
        ir_path: Path where to save the JSON file

    Note:
        Creates parent directories if they don't exist.
    """
    ir_path = Path(ir_path)
    ir_path.parent.mkdir(parents=True, exist_ok=True)
    ir_path.write_text(ir.model_dump_json(indent=2), encoding="utf-8")
