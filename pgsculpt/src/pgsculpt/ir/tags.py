"""Smart tags parsed from catalog comments.

A comment may start with a JSON object whose ``pgsculpt`` key holds the
tags; everything after the first newline is the human description:

    {"pgsculpt": {"name": "Person", "omit": ["insert"]}}
    People known to the system.

Comments that do not start with ``{`` are plain descriptions.
"""

import json
from dataclasses import dataclass
from typing import List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pgsculpt.errors import TagParseError

TAG_NAMESPACE = "pgsculpt"

ShapeKind = Literal["row", "insert", "update"]


class SmartTags(BaseModel):
    """Known tag keys; unknown keys are kept as extras for generators."""

    model_config = ConfigDict(frozen=True, extra="allow", populate_by_name=True)

    name: Optional[str] = None
    omit: Union[bool, List[ShapeKind], None] = None
    type: Optional[str] = None
    deprecated: Union[bool, str, None] = None
    primary_key: Optional[List[str]] = Field(default=None, alias="primaryKey")
    field_name: Optional[str] = Field(default=None, alias="fieldName")
    foreign_field_name: Optional[str] = Field(default=None, alias="foreignFieldName")

    def is_omitted(self) -> bool:
        """True when the whole object is omitted."""
        return self.omit is True

    def is_omitted_for(self, kind: ShapeKind) -> bool:
        if self.omit is True:
            return True
        if isinstance(self.omit, list):
            return kind in self.omit
        return False


EMPTY_TAGS = SmartTags()


@dataclass(frozen=True)
class ParsedComment:
    """Tags and description extracted from one comment."""

    tags: SmartTags
    description: Optional[str]


def parse_smart_tags(
    comment: Optional[str],
    object_type: str,
    object_name: str,
) -> ParsedComment:
    """
    Parse smart tags from a catalog comment.

    Args:
        comment: Raw comment text (may be None)
        object_type: "table", "column", "constraint", "type" or "function"
        object_name: Name used in error messages

    Returns:
        ParsedComment with tags (empty when absent) and description

    Raises:
        TagParseError: On malformed JSON or invalid tag values
    """
    if not comment or not comment.strip():
        return ParsedComment(tags=EMPTY_TAGS, description=None)

    trimmed = comment.strip()
    if not trimmed.startswith("{"):
        return ParsedComment(tags=EMPTY_TAGS, description=trimmed)

    newline = trimmed.find("\n")
    json_part = trimmed if newline == -1 else trimmed[:newline]
    description = None if newline == -1 else (trimmed[newline + 1:].strip() or None)

    try:
        parsed = json.loads(json_part)
    except json.JSONDecodeError as e:
        raise TagParseError(
            f"invalid JSON in comment: {e}", object_type, object_name, comment
        ) from e

    if not isinstance(parsed, dict):
        raise TagParseError(
            "comment JSON must be an object", object_type, object_name, comment
        )

    raw_tags = parsed.get(TAG_NAMESPACE)
    if raw_tags is None:
        # Valid JSON owned by some other tool
        return ParsedComment(tags=EMPTY_TAGS, description=description)

    if not isinstance(raw_tags, dict):
        raise TagParseError(
            f"'{TAG_NAMESPACE}' tags must be an object", object_type, object_name, comment
        )

    try:
        tags = SmartTags.model_validate(raw_tags)
    except ValidationError as e:
        raise TagParseError(
            f"invalid tags: {e}", object_type, object_name, comment
        ) from e

    return ParsedComment(tags=tags, description=description)
