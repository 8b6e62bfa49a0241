"""Tests for capability -> file assignment."""

import pytest

from pgsculpt.runtime.file_assignment import (
    CapabilityInfo,
    FileRule,
    assign_files,
    compute_relative_path,
    group_by_file,
    parse_capability_info,
)
from pgsculpt.runtime.types import SymbolDeclaration


@pytest.mark.parametrize(
    "capability,expected",
    [
        ("type:User", CapabilityInfo("User")),
        ("schema:zod:User", CapabilityInfo("User")),
        ("queries:kysely:User:findById", CapabilityInfo("User")),
        ("type:auth.Account", CapabilityInfo("Account", "auth")),
        ("http-routes:hono:Post:list", CapabilityInfo("Post")),
    ],
)
def test_parse_capability_info(capability, expected):
    assert parse_capability_info(capability) == expected


def test_first_matching_rule_wins():
    declarations = [
        SymbolDeclaration("User", "type:User"),
        SymbolDeclaration("findUser", "queries:kysely:User:findById"),
        SymbolDeclaration("Session", "type:auth.Session"),
        SymbolDeclaration("misc", "misc:thing"),
    ]
    rules = [
        FileRule("type:", "types.ts"),
        FileRule("queries:", lambda ctx: f"{ctx.folder_name}/queries.ts", output_dir="db/"),
        FileRule("type:User", "user.ts"),
    ]

    assert assign_files(declarations, rules, "index.ts") == {
        "type:User": "types.ts",
        "queries:kysely:User:findById": "db/user/queries.ts",
        "type:auth.Session": "types.ts",
        "misc:thing": "index.ts",
    }


def test_naming_callable_sees_schema():
    rule = FileRule("type:", lambda ctx: f"{ctx.schema}/{ctx.entity_name}.ts")
    assert assign_files([SymbolDeclaration("Session", "type:auth.Session")], [rule], "index.ts") == {
        "type:auth.Session": "auth/Session.ts"
    }


def test_group_by_file():
    assert group_by_file({"a": "x.ts", "b": "y.ts", "c": "x.ts"}) == {"x.ts": ["a", "c"], "y.ts": ["b"]}


@pytest.mark.parametrize(
    "from_file,to_file,expected",
    [
        ("User/queries.ts", "types.ts", "../types.js"),
        ("index.ts", "User/types.ts", "./User/types.js"),
        ("User/a.ts", "User/b.ts", "./b.js"),
        ("a/b/c.ts", "a/d/e.ts", "../d/e.js"),
        ("index.ts", "data.json", "./data.json"),
    ],
)
def test_compute_relative_path(from_file, to_file, expected):
    assert compute_relative_path(from_file, to_file) == expected
