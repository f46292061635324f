"""Pytest configuration and fixtures."""

from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from depot.database.schema import Base

from sample_blog import Author, Post, PostRepository, Tag


@pytest.fixture
def session():
    """Create a temporary in-memory database session for testing."""
    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    SessionLocal = sessionmaker(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def blog(session):
    """
    Seed five posts, two authors and three tags.

    Posts are added first so their ids follow list order (1..5):

        Alpha    published  views 50  alice  [python, sql]
        Beta     draft      views 5   alice  [python]
        Gamma    published  views 20  bob    [orm]
        Delta    draft      views 0   bob    []
        Epsilon  review     views 12  -      [sql, orm]
    """
    alice = Author(name="Alice", email="alice@example.com")
    bob = Author(name="Bob", email="bob@example.com")
    python, sql, orm = Tag(name="python"), Tag(name="sql"), Tag(name="orm")

    posts = [
        Post(title="Alpha", status="published", published=True, views=50, author=alice, tags=[python, sql]),
        Post(title="Beta", status="draft", published=False, views=5, author=alice, tags=[python]),
        Post(title="Gamma", status="published", published=True, views=20, author=bob, tags=[orm]),
        Post(title="Delta", status="draft", published=False, views=0, author=bob, tags=[]),
        Post(title="Epsilon", status="review", published=False, views=12, tags=[sql, orm]),
    ]
    session.add_all(posts)
    session.add_all([alice, bob, python, sql, orm])
    session.commit()

    return SimpleNamespace(
        posts={post.title: post for post in posts},
        authors={"alice": alice, "bob": bob},
        tags={"python": python, "sql": sql, "orm": orm},
    )


@pytest.fixture
def posts(session):
    """A PostRepository on the test session."""
    return PostRepository(session)
