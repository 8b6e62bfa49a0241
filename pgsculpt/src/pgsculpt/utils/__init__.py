"""Utility functions for common operations."""

from .ir_io import load_catalog_from_json, load_ir_from_json, save_ir_to_json

__all__ = [
    "load_catalog_from_json",
    "load_ir_from_json",
    "save_ir_to_json",
]
