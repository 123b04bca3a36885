from __future__ import annotations

import pytest

from squaresum import create_app
from squaresum.games.square_sum.logic.catalog import LevelCatalog

TEST_SEED = 20240611


@pytest.fixture(scope="session")
def catalog() -> LevelCatalog:
    cat = LevelCatalog(seed=TEST_SEED)
    cat.load()
    return cat


def _make_app(**overrides):
    config = {
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:",
        "SQUARESUM_CATALOG_SEED": TEST_SEED,
        "RATELIMIT_ENABLED": False,
    }
    config.update(overrides)
    return create_app(config)


@pytest.fixture
def app():
    return _make_app()


@pytest.fixture
def sql_app():
    return _make_app(SQUARESUM_PROGRESS_BACKEND="sql")


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sql_client(sql_app):
    return sql_app.test_client()
