"""Tests for JoinGraph navigation."""

import pytest

from pgsculpt.graph.join_graph import (
    JoinGraph,
    format_edge,
    format_edge_detail,
    suggested_alias,
)
from pgsculpt.ir.builder import build_ir
from conftest import col


@pytest.fixture
def blog_graph(blog_catalog):
    return JoinGraph(build_ir(blog_catalog.build()))


@pytest.mark.parametrize(
    "constraint,target,exclude,expected",
    [
        ("comments_parent_id_fkey", "Comment", (), "parent"),
        ("posts_user_id_fkey", "User", (), "user"),
        ("posts_author_fk", "User", (), "author"),
        ("posts_user_id_fkey", "Post", ("User",), "post"),
        ("accounts_owner_id_fkey", "Account", (), "owner"),
    ],
)
def test_suggested_alias(constraint, target, exclude, expected):
    assert suggested_alias(constraint, target, exclude) == expected


def test_self_reference_edges(accounts_catalog):
    """A self-FK exposes one forward and one reverse edge for the same constraint."""
    graph = JoinGraph(build_ir(accounts_catalog.build()))

    same = graph.find_path("Account", "Account")
    assert same.edges == ()
    assert same.to_entity == "Account"

    edges = graph.get_edges("Account")
    assert [e.direction for e in edges] == ["forward", "reverse"]
    assert {e.constraint_name for e in edges} == {"accounts_owner_id_fkey"}
    assert all(e.target_entity == "Account" for e in edges)
    forward, reverse = edges
    assert forward.cardinality == "many-to-one"
    assert reverse.cardinality == "one-to-many"
    assert forward.suggested_alias == "owner"


def test_edges_are_memoized(blog_graph):
    assert blog_graph.get_edges("Post") is blog_graph.get_edges("Post")
    assert blog_graph.get_edges("Nope") == []


def test_forward_path_uses_inner_join(blog_graph):
    path = blog_graph.find_path("Comment", "User")

    assert [e.target_entity for e in path.edges] == ["Post", "User"]
    assert path.aliases == ("comment", "post", "user")
    assert blog_graph.to_join_clause(path) == (
        "FROM comments AS comment\n"
        "  JOIN posts AS post ON comment.post_id = post.id\n"
        "  JOIN users AS user ON post.user_id = user.id"
    )


def test_reverse_path_uses_left_join(blog_graph):
    path = blog_graph.find_path("User", "Comment")

    assert [e.direction for e in path.edges] == ["reverse", "reverse"]
    assert blog_graph.to_join_clause(path) == (
        "FROM users AS user\n"
        "  LEFT JOIN posts AS post ON post.user_id = user.id\n"
        "  LEFT JOIN comments AS comment ON comment.post_id = post.id"
    )


def test_one_to_one_edge(blog_graph):
    profile_edge = next(e for e in blog_graph.get_edges("User") if e.target_entity == "Profile")
    assert profile_edge.cardinality == "one-to-one"
    assert format_edge(profile_edge) == "<- Profile [1]"


def test_no_path(blog_graph):
    assert blog_graph.find_path("User", "AuditLog") is None
    assert blog_graph.find_path("User", "Missing") is None
    assert blog_graph.find_path("Missing", "User") is None


def test_reachable(blog_graph):
    assert blog_graph.get_reachable("Comment") == {"Comment", "Post", "User", "Profile"}
    assert blog_graph.get_reachable("Comment", max_depth=1) == {"Comment", "Post"}
    assert blog_graph.get_reachable("AuditLog") == {"AuditLog"}
    assert blog_graph.get_reachable("Missing") == {"Missing"}


def test_relation_graph(blog_graph):
    G = blog_graph.relation_graph()

    assert set(G.nodes) == {"AuditLog", "Comment", "Post", "Profile", "User"}
    assert G.edges["Post", "User"]["constraint"] == "posts_user_id_fkey"
    assert G.edges["User", "Post"]["constraint"] == "posts_user_id_fkey"
    assert G.degree("AuditLog") == 0
    assert blog_graph.relation_graph() is G


def test_alias_collision_gets_suffix(catalog):
    catalog.table("users", col("id", attnotnull=True), col("manager_id"))
    catalog.primary_key("users", "id")
    catalog.table("teams", col("id", attnotnull=True), col("lead_id"))
    catalog.primary_key("teams", "id")
    catalog.foreign_key("teams", ["lead_id"], "users", ["id"], name="teams_user_id_fkey")
    catalog.table("badges", col("id", attnotnull=True), col("team_id"))
    catalog.primary_key("badges", "id")
    catalog.foreign_key("badges", ["team_id"], "teams", ["id"], name="badges_user_id_fkey")
    graph = JoinGraph(build_ir(catalog.build()))

    path = graph.find_path("Badge", "User")
    assert path.aliases == ("badge", "user", "user2")


def test_multi_schema_qualifies_tables(blog_catalog):
    blog_catalog.schema("auth")
    graph = JoinGraph(build_ir(blog_catalog.build(), schemas=["public", "auth"]))
    clause = graph.to_join_clause(graph.find_path("Post", "User"))
    assert clause.startswith("FROM public.posts AS post")
    assert "JOIN public.users AS user" in clause


def test_lookup_candidates(accounts_catalog):
    accounts_catalog.index("accounts", ["email"], name="accounts_email_plain_idx")
    accounts_catalog.index("accounts", ["email", "owner_id"], name="accounts_email_owner_idx")
    accounts_catalog.index("accounts", ["owner_id"], name="accounts_owner_gist_idx", method="gist")
    accounts_catalog.index("accounts", ["owner_id"], name="accounts_owner_partial_idx",
                           predicate="owner_id IS NOT NULL")
    graph = JoinGraph(build_ir(accounts_catalog.build()))

    candidates = graph.get_lookup_candidates("Account")
    assert [(c.column_name, c.index_name, c.is_unique) for c in candidates] == [
        ("id", "accounts_pkey", True),
        ("email", "accounts_email_key", True),
    ]
    assert candidates[1].field_name == "email"
    assert graph.get_lookup_candidates("Missing") == []

    filterable = graph.get_filterable_indexes("Account")
    assert len(filterable) == 6
    assert {f.columns for f in filterable if f.index_name == "accounts_email_owner_idx"} == {
        ("email", "ownerId")
    }


def test_format_edge_detail(blog_graph):
    edge = blog_graph.get_edges("Post")[0]
    assert format_edge(edge) == "-> User [1]"
    assert format_edge_detail(edge) == "via posts_user_id_fkey (user_id = id)"

    reverse = next(e for e in blog_graph.get_edges("Post") if e.direction == "reverse")
    assert format_edge(reverse) == "<- Comment [*]"


def test_mermaid(blog_graph):
    diagram = blog_graph.to_mermaid().splitlines()
    assert diagram[0] == "graph LR"
    assert "  AuditLog" in diagram
    assert "  Comment -->|comments_post_id_fkey| Post" in diagram
    assert "  Post -->|posts_user_id_fkey| User" in diagram
    assert "  Profile -->|profiles_user_id_fkey| User" in diagram
    assert sum(1 for line in diagram if "-->" in line) == 3
