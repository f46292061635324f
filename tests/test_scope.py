"""Tests for one-shot query scopes and handle invalidation."""

import pytest

from depot.errors import NotFoundError, RelationError

from sample_blog import Post, PublishedCriterion, titles


def only_drafts(query):
    return query.filter(Post.status == "draft")


def test_scope_applies_to_next_call_only(blog, posts):
    posts.scope_query(only_drafts)

    assert titles(posts.all()) == ["Beta", "Delta"]
    assert len(posts.all()) == 5


def test_reset_scope_drops_pending_scope(blog, posts):
    posts.scope_query(only_drafts).reset_scope()

    assert len(posts.all()) == 5


def test_scope_runs_after_criteria(blog, posts):
    seen = []

    def record(query):
        seen.append(query.count())
        return query

    posts.push_criteria(PublishedCriterion())
    posts.scope_query(record)
    posts.all()

    assert seen == [2]


def test_scope_consumed_even_when_call_fails(blog, posts):
    alpha = blog.posts["Alpha"]
    posts.scope_query(only_drafts)

    with pytest.raises(NotFoundError):
        posts.find(alpha.id)

    assert posts.find(alpha.id) is alpha


def test_scope_applies_to_update_lookup(blog, posts):
    alpha = blog.posts["Alpha"]
    posts.scope_query(only_drafts)

    with pytest.raises(NotFoundError):
        posts.update({"title": "Alpha II"}, alpha.id)

    assert posts.update({"title": "Alpha II"}, alpha.id).title == "Alpha II"


def test_ordering_does_not_leak_into_next_call(blog, posts):
    ordered = posts.order_by("title", "desc").all()

    assert titles(ordered) == ["Gamma", "Epsilon", "Delta", "Beta", "Alpha"]
    assert titles(posts.all())[0] == "Alpha"


def test_where_has_does_not_leak_into_next_call(blog, posts):
    assert len(posts.where_has("author").all()) == 4
    assert len(posts.all()) == 5


def test_raw_query_hands_over_query_with_criteria(blog, posts):
    posts.push_criteria(PublishedCriterion())
    posts.scope_query(lambda query: query.filter(Post.views > 30))

    query = posts.raw_query()

    assert [post.title for post in query] == ["Alpha"]
    # scope was consumed, criteria remain
    assert titles(posts.all()) == ["Alpha", "Gamma"]


def test_raw_query_without_criteria(blog, posts):
    posts.push_criteria(PublishedCriterion())

    assert posts.raw_query(apply_criteria=False).count() == 5


def only_alpha(query):
    return query.filter(Post.title == "Alpha")


def test_bad_between_bounds_discard_scope(blog, posts):
    posts.scope_query(only_alpha)

    with pytest.raises(ValueError):
        posts.find_where_between("views", [1])

    assert len(posts.all()) == 5


def test_bad_page_number_discards_scope(blog, posts):
    posts.scope_query(only_alpha)

    with pytest.raises(ValueError):
        posts.paginate(page=0)

    assert len(posts.all()) == 5


def test_bad_page_size_discards_scope(blog, posts):
    posts.scope_query(only_alpha).order_by("views", "desc")

    with pytest.raises(ValueError):
        posts.simple_paginate(0)

    assert titles(posts.all()) == ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]


def test_rejected_sync_discards_ordering(blog, posts):
    posts.order_by("views", "desc")

    with pytest.raises(RelationError):
        posts.sync(blog.posts["Alpha"].id, "author", [1])

    assert titles(posts.all()) == ["Alpha", "Beta", "Gamma", "Delta", "Epsilon"]


def test_sync_unknown_relation_discards_scope(blog, posts):
    posts.scope_query(only_alpha)

    with pytest.raises(RelationError):
        posts.sync(blog.posts["Alpha"].id, "comments", [1])

    assert len(posts.all()) == 5


def test_create_discards_pending_scope(blog, posts):
    posts.scope_query(only_alpha)

    posts.create({"title": "Zeta"})

    assert len(posts.all()) == 6
