from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

from db_explorer.catalog import Catalog, discover
from db_explorer.config import ApiConfig, AppConfig, DatabaseConfig
from db_explorer.db import SQLClient
from db_explorer.server.app import create_app

SCHEMA = [
    """
    CREATE TABLE items (
        id INTEGER PRIMARY KEY,
        title VARCHAR(255) NOT NULL,
        description TEXT NOT NULL,
        price REAL,
        updated TEXT
    )
    """,
    """
    CREATE TABLE users (
        user_id INTEGER PRIMARY KEY,
        login VARCHAR(255) NOT NULL,
        score INTEGER,
        info TEXT
    )
    """,
    "CREATE TABLE notes (body TEXT)",
    "INSERT INTO items (id, title, description, price, updated) VALUES "
    "(1, 'database/sql', 'Talk about databases', NULL, 'rvasily'), "
    "(2, 'memcache', 'Talk about memcache with an example', 9.5, NULL)",
    "INSERT INTO users (user_id, login, score, info) VALUES (1, 'rvasily', 10, 'none')",
    "INSERT INTO notes (body) VALUES ('first')",
]


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    url = f"sqlite:///{tmp_path / 'explorer.db'}"
    engine = create_engine(url)
    with engine.begin() as connection:
        for statement in SCHEMA:
            connection.execute(text(statement))
    engine.dispose()
    return url


@pytest.fixture
def sql_client(db_url: str) -> Iterator[SQLClient]:
    client = SQLClient(create_engine(db_url))
    yield client
    client.dispose()


@pytest.fixture
def catalog(sql_client: SQLClient) -> Catalog:
    return discover(sql_client)


@pytest.fixture
def app_config(db_url: str) -> AppConfig:
    return AppConfig(database=DatabaseConfig(url=db_url))


def make_client(config: AppConfig) -> TestClient:
    return TestClient(create_app(config=config))


@pytest.fixture
def client(app_config: AppConfig) -> Iterator[TestClient]:
    with make_client(app_config) as test_client:
        yield test_client


@pytest.fixture
def lenient_client(db_url: str) -> Iterator[TestClient]:
    config = AppConfig(
        database=DatabaseConfig(url=db_url),
        api=ApiConfig(strict_inserts=False),
    )
    with make_client(config) as test_client:
        yield test_client
