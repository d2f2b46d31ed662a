import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from movie_inferno.core.database import DatabaseClient, load_mock_catalogue

__all__ = ["db", "catalogue_db", "add_users"]


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    client = DatabaseClient(engine)
    client.create_tables()
    yield client
    client.dispose()


@pytest.fixture
def catalogue_db(db):
    """预置三部电影、两部剧集及其类型。"""
    load_mock_catalogue(db)
    return db


def add_users(db, *users):
    rows = [{"role": "user", **user} for user in users]
    db.table("users").insert(rows)
