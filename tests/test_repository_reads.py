"""Tests for repository read operations."""

import pytest
from sqlalchemy import inspect

from depot.errors import NotFoundError, UnknownFieldError
from depot.pagination import LengthAwarePage, SimplePage

from sample_blog import AuthorRepository, PublishedCriterion, titles


def test_find_missing_raises_not_found(posts):
    with pytest.raises(NotFoundError) as exc_info:
        posts.find(42)

    assert exc_info.value.model == "Post"
    assert exc_info.value.identifier == 42


def test_find_returns_record(blog, posts):
    gamma = blog.posts["Gamma"]

    assert posts.find(gamma.id).title == "Gamma"


def test_find_ignores_records_filtered_by_criteria(blog, posts):
    posts.push_criteria(PublishedCriterion())

    with pytest.raises(NotFoundError):
        posts.find(blog.posts["Beta"].id)


def test_find_with_columns_loads_only_those(blog, session, posts):
    beta_id = blog.posts["Beta"].id
    session.expire_all()

    beta = posts.find(beta_id, columns=["id", "title"])

    unloaded = inspect(beta).unloaded
    assert "views" in unloaded
    assert "title" not in unloaded


def test_star_columns_load_everything(blog, session, posts):
    session.expire_all()

    post = posts.first(columns=["*"])

    assert "views" not in inspect(post).unloaded


def test_unknown_column_raises(blog, posts):
    with pytest.raises(UnknownFieldError):
        posts.all(columns=["id", "nope"])


def test_first_and_first_on_empty(blog, posts, session):
    assert posts.first().title == "Alpha"
    assert AuthorRepository(session).find_by_field("name", "Carol") == []
    posts.scope_query(lambda query: query.filter_by(title="Nope"))
    assert posts.first() is None


def test_find_by_field(blog, posts):
    assert titles(posts.find_by_field("status", "draft")) == ["Beta", "Delta"]


def test_find_where_mapping(blog, posts):
    result = posts.find_where({"status": "published", "views": (">", 30)})

    assert titles(result) == ["Alpha"]


def test_find_where_tuples(blog, posts):
    result = posts.find_where([("views", "<", 15), ("status", "draft")])

    assert titles(result) == ["Beta", "Delta"]


def test_find_where_none_value_matches_null(blog, posts):
    assert titles(posts.find_where({"author_id": None})) == ["Epsilon"]


def test_find_where_unknown_field(blog, posts):
    with pytest.raises(UnknownFieldError):
        posts.find_where({"rating": 5})


def test_find_where_in_and_not_in(blog, posts):
    assert titles(posts.find_where_in("title", ["Delta", "Alpha"])) == ["Alpha", "Delta"]
    assert titles(posts.find_where_not_in("status", ["draft", "published"])) == ["Epsilon"]


def test_find_where_between_is_inclusive(blog, posts):
    assert titles(posts.find_where_between("views", [5, 20])) == ["Beta", "Gamma", "Epsilon"]


def test_find_where_between_needs_two_bounds(blog, posts):
    with pytest.raises(ValueError):
        posts.find_where_between("views", [5])


def test_count(blog, posts):
    assert posts.count() == 5
    assert posts.count({"status": "draft"}) == 2

    posts.push_criteria(PublishedCriterion())
    assert posts.count() == 2


def test_paginate(blog, posts):
    page = posts.paginate(2, page=2)

    assert isinstance(page, LengthAwarePage)
    assert titles(page) == ["Gamma", "Delta"]
    assert page.total == 5
    assert page.last_page == 3
    assert page.has_more is True


def test_paginate_uses_default_limit(blog, posts):
    page = posts.paginate()

    assert page.per_page == 15
    assert len(page) == 5
    assert page.has_more is False


def test_paginate_counts_with_criteria(blog, posts):
    posts.push_criteria(PublishedCriterion())

    page = posts.paginate(1)

    assert page.total == 2
    assert titles(page) == ["Alpha"]


def test_paginate_rejects_bad_arguments(posts):
    with pytest.raises(ValueError):
        posts.paginate(0)
    with pytest.raises(ValueError):
        posts.simple_paginate(5, page=0)


def test_simple_paginate(blog, posts):
    first = posts.simple_paginate(2)
    last = posts.simple_paginate(2, page=3)

    assert isinstance(first, SimplePage)
    assert titles(first) == ["Alpha", "Beta"]
    assert first.has_more is True
    assert titles(last) == ["Epsilon"]
    assert last.has_more is False


def test_pluck_with_key(blog, posts):
    by_id = posts.pluck("title", "id")

    assert by_id[blog.posts["Gamma"].id] == "Gamma"
    assert len(by_id) == 5


def test_pluck_respects_criteria(blog, posts):
    posts.push_criteria(PublishedCriterion())

    assert posts.lists("title") == ["Alpha", "Gamma"]


def test_order_by_rejects_bad_direction(posts):
    with pytest.raises(ValueError):
        posts.order_by("title", "sideways")


def test_fields_searchable_normalized(session, posts):
    assert posts.get_fields_searchable() == {"title": "like", "status": "="}
    assert AuthorRepository(session).get_fields_searchable() == {"name": "=", "email": "="}
