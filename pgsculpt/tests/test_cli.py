"""Tests for the typer CLI."""

import pytest
from typer.testing import CliRunner

from pgsculpt.cli.app import app
from pgsculpt.utils.ir_io import load_catalog_from_json, load_ir_from_json
from conftest import col

runner = CliRunner()


@pytest.fixture(autouse=True)
def _quiet_logs(monkeypatch):
    monkeypatch.setenv("PGSCULPT_LOG_LEVEL", "WARNING")


@pytest.fixture
def blog_json(blog_catalog, tmp_path):
    path = tmp_path / "facts.json"
    path.write_text(blog_catalog.build().model_dump_json(), encoding="utf-8")
    return path


def test_build_writes_ir(blog_json, tmp_path):
    out = tmp_path / "out" / "ir.json"
    result = runner.invoke(app, ["build", str(blog_json), str(out)])

    assert result.exit_code == 0, result.output
    assert "✓ Complete! 5 entities" in result.output
    ir = load_ir_from_json(out)
    assert set(ir.entities) == {"AuditLog", "Comment", "Post", "Profile", "User"}
    assert ir.entities["Post"].relations[0].target_entity == "User"


def test_snapshot_round_trip(blog_json):
    facts = load_catalog_from_json(blog_json)
    users = next(c for c in facts.classes if c.relname == "users")
    assert [a.attname for a in facts.attributes_of(users.oid)] == ["id", "username"]


def test_summary(blog_json):
    result = runner.invoke(app, ["summary", str(blog_json)])

    assert result.exit_code == 0, result.output
    assert "table: 5" in result.output
    assert "User (table public.users) [SIUD] fields=2 relations=0 reverse=2" in result.output


def test_path(blog_json):
    result = runner.invoke(app, ["path", str(blog_json), "Comment", "User"])

    assert result.exit_code == 0, result.output
    assert "# -> Post [1] via comments_post_id_fkey (post_id = id)" in result.output
    assert "FROM comments AS comment" in result.output
    assert "JOIN users AS user ON post.user_id = user.id" in result.output


def test_path_not_found(blog_json):
    result = runner.invoke(app, ["path", str(blog_json), "User", "AuditLog"])
    assert result.exit_code == 1
    assert "No path from User to AuditLog" in result.output


def test_reachable_with_depth(blog_json):
    result = runner.invoke(app, ["reachable", str(blog_json), "Comment", "--depth", "1"])
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["Comment", "Post"]


def test_suggest_fks(catalog, tmp_path):
    catalog.table("customers", col("id", attnotnull=True))
    catalog.primary_key("customers", "id")
    catalog.table("orders", col("id", attnotnull=True), col("legacy_customer_id"))
    catalog.primary_key("orders", "id")
    path = tmp_path / "shop.json"
    path.write_text(catalog.build().model_dump_json(), encoding="utf-8")

    result = runner.invoke(app, ["suggest-fks", str(path), "Order"])
    assert result.exit_code == 0, result.output
    assert "[medium] Order.legacy_customer_id -> Customer.id" in result.output

    result = runner.invoke(app, ["suggest-fks", str(path), "Nope"])
    assert result.exit_code == 1
    assert "unknown table or view 'Nope'" in result.output


def test_mermaid(blog_json):
    result = runner.invoke(app, ["mermaid", str(blog_json)])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("graph LR")


def test_missing_snapshot(tmp_path):
    result = runner.invoke(app, ["summary", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "Catalog snapshot file not found" in result.output


def test_empty_snapshot(tmp_path):
    empty = tmp_path / "empty.json"
    empty.write_text("", encoding="utf-8")
    result = runner.invoke(app, ["summary", str(empty)])
    assert result.exit_code == 1
    assert "empty or corrupted" in result.output
