"""Tests for naming transforms."""

import pytest

from pgsculpt.ir.inflection import (
    Inflection,
    InflectionConfig,
    apply_transform_chain,
    camel_case,
    pascal_case,
    pluralize,
    singularize,
    snake_case,
)
from pgsculpt.ir.tags import EMPTY_TAGS, SmartTags


@pytest.mark.parametrize(
    "plural,singular",
    [
        ("users", "user"),
        ("categories", "category"),
        ("addresses", "address"),
        ("boxes", "box"),
        ("status", "status"),
        ("analysis", "analysis"),
    ],
)
def test_singularize(plural, singular):
    assert singularize(plural) == singular


def test_pluralize():
    assert pluralize("user") == "users"
    assert pluralize("category") == "categories"
    assert pluralize("day") == "days"
    assert pluralize("match") == "matches"


def test_case_transforms():
    assert camel_case("user_accounts") == "userAccounts"
    assert pascal_case("user_accounts") == "UserAccounts"
    assert snake_case("UserAccounts") == "user_accounts"
    assert pascal_case("int4") == "Int4"


def test_transform_chain():
    assert apply_transform_chain("user_accounts", ["singularize", "pascalCase"]) == "UserAccount"
    assert apply_transform_chain("user_accounts", []) == "user_accounts"


def test_default_inflection():
    inflection = Inflection()
    assert inflection.entity_name("blog_posts", EMPTY_TAGS) == "BlogPost"
    assert inflection.field_name("created_at", EMPTY_TAGS) == "createdAt"
    assert inflection.function_name("search_posts", EMPTY_TAGS) == "searchPosts"
    assert inflection.shape_name("BlogPost", "row") == "BlogPost"
    assert inflection.shape_name("BlogPost", "insert") == "BlogPostInsert"


def test_tags_override_chain():
    inflection = Inflection()
    assert inflection.entity_name("people", SmartTags(name="Person")) == "Person"
    assert inflection.field_name("uid", SmartTags(fieldName="userId")) == "userId"


def test_custom_config():
    inflection = Inflection(InflectionConfig(entity_name=[], field_name=["snakeCase"]))
    assert inflection.entity_name("blog_posts", EMPTY_TAGS) == "blog_posts"
    assert inflection.field_name("createdAt", EMPTY_TAGS) == "created_at"
