"""Tests for condition compilation."""

import pytest

from depot.errors import UnknownFieldError
from depot.repository.conditions import Operator, compile_conditions, parse_operator

from sample_blog import Post, titles


def test_parse_operator_aliases():
    assert parse_operator("==") is Operator.EQUALS
    assert parse_operator("<>") is Operator.NOT_EQUALS
    assert parse_operator(" NOT IN ") is Operator.NOT_IN
    assert parse_operator("is null") is Operator.IS_NULL
    assert parse_operator(Operator.LIKE) is Operator.LIKE


def test_parse_operator_rejects_unknown():
    with pytest.raises(ValueError, match="Unsupported operator"):
        parse_operator("~=")


def test_compile_unknown_field():
    with pytest.raises(UnknownFieldError) as exc_info:
        compile_conditions(Post, {"rating": 3})

    assert exc_info.value.field == "rating"


def test_compile_rejects_bad_tuple():
    with pytest.raises(ValueError):
        compile_conditions(Post, [("views",)])


def test_between_needs_two_bounds():
    with pytest.raises(ValueError):
        compile_conditions(Post, {"views": ("between", [1, 2, 3])})


@pytest.mark.parametrize(
    "conditions, expected",
    [
        ({"views": ("between", (5, 20))}, ["Beta", "Gamma", "Epsilon"]),
        ({"title": ("like", "%lta")}, ["Delta"]),
        ({"title": ("not like", "%a")}, ["Epsilon"]),
        ({"status": ("in", ["review", "published"])}, ["Alpha", "Gamma", "Epsilon"]),
        ({"author_id": ("not null", None)}, ["Alpha", "Beta", "Gamma", "Delta"]),
        ([("views", "!=", 0), ("published", False)], ["Beta", "Epsilon"]),
    ],
)
def test_operators_filter_records(blog, posts, conditions, expected):
    assert titles(posts.find_where(conditions)) == expected
