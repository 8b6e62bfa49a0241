"""Naming transformations from catalog identifiers to public identifiers.

Each public name is produced by a configurable chain of transforms, e.g.
``["singularize", "pascalCase"]`` turns ``user_accounts`` into
``UserAccount``. An empty chain keeps the catalog name as-is. Smart tag
overrides (``name``, ``fieldName``) always win over the chain.
"""

import re
from typing import Callable, Dict, List, Literal, Optional
from pydantic import BaseModel, Field

from .tags import ShapeKind, SmartTags

TransformName = Literal[
    "camelCase",
    "pascalCase",
    "snakeCase",
    "singularize",
    "pluralize",
    "capitalize",
    "uncapitalize",
    "lowercase",
    "uppercase",
]


# ============================================================================
# Naive English number handling (covers common table names)
# ============================================================================

_SIBILANT_ENDINGS = ("s", "x", "z", "ch", "sh")


def pluralize(word: str) -> str:
    """
    Pluralize a word.

    Examples:
        >>> pluralize("user")
        'users'
        >>> pluralize("category")
        'categories'
        >>> pluralize("box")
        'boxes'
    """
    if not word:
        return word
    if word.endswith(_SIBILANT_ENDINGS):
        return word + "es"
    if word.endswith("y") and not re.search(r"[aeiou]y$", word, re.IGNORECASE):
        return word[:-1] + "ies"
    return word + "s"


def singularize(word: str) -> str:
    """
    Singularize a word.

    Examples:
        >>> singularize("users")
        'user'
        >>> singularize("categories")
        'category'
        >>> singularize("addresses")
        'address'
        >>> singularize("status")
        'status'
    """
    if word.endswith("ies") and len(word) > 3:
        return word[:-3] + "y"
    if word.endswith(("sses", "uses", "xes", "zes", "ches", "shes")):
        return word[:-2]
    if word.endswith(("ss", "us", "is")):
        return word
    if word.endswith("s") and len(word) > 1:
        return word[:-1]
    return word


def _words(text: str) -> List[str]:
    # Split on underscores/dashes/spaces and on camelCase boundaries
    spaced = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", text)
    return [w for w in re.split(r"[^A-Za-z0-9]+", spaced) if w]


def camel_case(text: str) -> str:
    words = _words(text)
    if not words:
        return text
    return words[0].lower() + "".join(w[:1].upper() + w[1:].lower() for w in words[1:])


def pascal_case(text: str) -> str:
    words = _words(text)
    if not words:
        return text
    return "".join(w[:1].upper() + w[1:].lower() for w in words)


def snake_case(text: str) -> str:
    return "_".join(w.lower() for w in _words(text))


def capitalize(text: str) -> str:
    return text[:1].upper() + text[1:]


def uncapitalize(text: str) -> str:
    return text[:1].lower() + text[1:]


TRANSFORMS: Dict[str, Callable[[str], str]] = {
    "camelCase": camel_case,
    "pascalCase": pascal_case,
    "snakeCase": snake_case,
    "singularize": singularize,
    "pluralize": pluralize,
    "capitalize": capitalize,
    "uncapitalize": uncapitalize,
    "lowercase": str.lower,
    "uppercase": str.upper,
}


def apply_transform_chain(text: str, chain: List[str]) -> str:
    """Apply transforms in order; an empty chain is the identity."""
    for name in chain:
        text = TRANSFORMS[name](text)
    return text


class InflectionConfig(BaseModel):
    """Transform chains per kind of name."""

    entity_name: List[TransformName] = Field(default_factory=lambda: ["singularize", "pascalCase"])
    field_name: List[TransformName] = Field(default_factory=lambda: ["camelCase"])
    enum_name: List[TransformName] = Field(default_factory=lambda: ["pascalCase"])
    function_name: List[TransformName] = Field(default_factory=lambda: ["camelCase"])
    shape_suffix: List[TransformName] = Field(default_factory=lambda: ["capitalize"])


class Inflection:
    """Applies an InflectionConfig, honouring smart-tag overrides."""

    def __init__(self, config: Optional[InflectionConfig] = None):
        self.config = config or InflectionConfig()

    def entity_name(self, relname: str, tags: SmartTags) -> str:
        if tags.name:
            return tags.name
        return apply_transform_chain(relname, self.config.entity_name)

    def field_name(self, attname: str, tags: SmartTags) -> str:
        if tags.field_name:
            return tags.field_name
        if tags.name:
            return tags.name
        return apply_transform_chain(attname, self.config.field_name)

    def enum_name(self, typname: str, tags: SmartTags) -> str:
        if tags.name:
            return tags.name
        return apply_transform_chain(typname, self.config.enum_name)

    def type_name(self, typname: str, tags: SmartTags) -> str:
        """Name for domains and composite types."""
        return self.enum_name(typname, tags)

    def function_name(self, proname: str, tags: SmartTags) -> str:
        if tags.name:
            return tags.name
        return apply_transform_chain(proname, self.config.function_name)

    def shape_name(self, entity_name: str, kind: ShapeKind) -> str:
        if kind == "row":
            return entity_name
        return entity_name + apply_transform_chain(kind, self.config.shape_suffix)
