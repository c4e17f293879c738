"""Test configuration for table layer unit tests.

Every test gets its own in-memory SQLite database with the ``users`` and
``posts`` tables created.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import patch

import pytest

from mini_engine.database import Column, Database, Index, Relation, Table, TableRegistry


class User(Table):
    name = "users"
    columns = {
        "id": Column("serial"),
        "name": Column("varchar", length=64),
        "email": Column("varchar"),
        "active": Column("boolean"),
        "profile": Column("json"),
    }
    indexes = {"users_email": Index("email", unique=True)}
    relations = {"posts": Relation("has_many", "posts", "user_id")}


class Post(Table):
    # Plain dict metadata is accepted as well
    name = "posts"
    columns = {
        "id": {"type": "serial"},
        "user_id": {"type": "integer"},
        "title": {"type": "text"},
    }
    indexes = {"posts_user": {"columns": ["user_id"]}}
    relations = {"author": {"type": "has_one", "table": "users", "foreign_key": "user_id"}}


@pytest.fixture
def database() -> Generator[Database, None, None]:
    """In-memory SQLite database."""
    db = Database("sqlite://")
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def tables(database: Database) -> TableRegistry:
    registry = TableRegistry(database)
    registry.register(User)
    registry.register(Post)
    registry.create_tables()
    return registry


@pytest.fixture
def users(tables: TableRegistry) -> Table:
    return tables["users"]


@pytest.fixture
def posts(tables: TableRegistry) -> Table:
    return tables["posts"]


@pytest.fixture
def alice(users: Table):
    return users.insert({"name": "alice", "email": "alice@example.com", "active": True, "profile": {"age": 30}})


@pytest.fixture
def sql_spy(database: Database):
    """Record every statement while still running it."""
    with patch.object(database, "execute", wraps=database.execute) as spy:
        yield spy
