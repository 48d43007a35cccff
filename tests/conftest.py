"""
Shared fixtures: an in-memory SQLite database, a session, a fresh model
registry, and an adapter wired to both.
"""

import pytest

from scaffoldkit.adapters.sqlalchemy_adapter import SQLAlchemyModelAdapter
from scaffoldkit.core.config import AdapterSettings, DatabaseSettings
from scaffoldkit.infrastructure.database import (
    Base,
    create_engine_from_settings,
    create_session_factory,
    init_db,
)
from scaffoldkit.metadata.registry import ModelRegistry

from tests.models import Author, Comment, Note, Post, Tag


@pytest.fixture
def engine():
    engine = create_engine_from_settings(DatabaseSettings(database_url="sqlite:///:memory:"))
    init_db(engine, Base)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = create_session_factory(engine)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def registry():
    ModelRegistry.reset()
    yield ModelRegistry.get_instance()
    ModelRegistry.reset()


@pytest.fixture
def settings():
    return AdapterSettings()


@pytest.fixture
def adapter(session, registry, settings):
    return SQLAlchemyModelAdapter(session, registry=registry, settings=settings)


@pytest.fixture
def blog(session):
    """
    Two authors, four posts, comments, tags and notes.

    Posts 5 and 7 are the merge/reassign pair.
    """
    ann = Author(id=1, name="Ann")
    bob = Author(id=2, name="Bob")
    python = Tag(id=1, name="python")
    sql = Tag(id=2, name="sql")
    orm = Tag(id=3, name="orm")

    posts = [
        Post(id=3, title="Alpha", status="active", author=ann, tags=[python]),
        Post(id=5, title="Bravo", status="draft", author=ann, tags=[python, sql]),
        Post(id=7, title="Charlie", status="active", author=bob, tags=[orm]),
        Post(id=9, title="Delta", status="active", author=bob),
    ]
    comments = [
        Comment(id=1, body="first", author_name="carol", post_id=5),
        Comment(id=2, body="second", author_name="dave", post_id=5),
        Comment(id=3, body="third", author_name="erin", post_id=5),
        Comment(id=4, body="fourth", author_name="frank", post_id=7),
        Comment(id=5, body="fifth", author_name="gina", post_id=3),
    ]
    notes = [
        Note(id=1, body="post note", notable_id=5, notable_type="Post"),
        Note(id=2, body="author note", notable_id=5, notable_type="Author"),
    ]

    session.add_all([ann, bob, python, sql, orm, *posts, *comments, *notes])
    session.commit()
    return {post.id: post for post in posts}
