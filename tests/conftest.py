from __future__ import annotations

import os
from pathlib import Path

import pytest
import sqlalchemy as sa
from alembic import command
from alembic.config import Config
from testcontainers.postgres import PostgresContainer


REPO_ROOT = Path(__file__).resolve().parents[1]
SEED = 1337


def migrate(sync_url: str) -> None:
    cfg = Config(str(REPO_ROOT / "db" / "migrations" / "alembic.ini"))
    previous = os.environ.get("DATABASE_URL")
    # env.py prefers DATABASE_URL over the ini file.
    os.environ["DATABASE_URL"] = sync_url
    try:
        command.upgrade(cfg, "head")
    finally:
        if previous is None:
            os.environ.pop("DATABASE_URL", None)
        else:
            os.environ["DATABASE_URL"] = previous


@pytest.fixture(scope="session")
def postgres_url() -> str:
    with PostgresContainer("postgres:16") as pg:
        yield pg.get_connection_url()


@pytest.fixture(scope="session")
def sync_url(postgres_url: str) -> str:
    # Normalize testcontainers URL (may be postgresql:// or postgresql+psycopg2://).
    base = postgres_url.replace("postgresql+psycopg2://", "postgresql://")
    return base.replace("postgresql://", "postgresql+psycopg://")


@pytest.fixture(scope="session")
def migrated_seeded_db(sync_url: str) -> str:
    migrate(sync_url)

    from db.seed import run

    run("seed", sync_url, SEED)
    run("admin", sync_url, SEED)

    async_url = sync_url.replace("postgresql+psycopg://", "postgresql+asyncpg://")
    os.environ["DATABASE_URL"] = async_url
    return async_url


@pytest.fixture(scope="session")
def sync_engine(migrated_seeded_db: str, sync_url: str):
    engine = sa.create_engine(sync_url)
    yield engine
    engine.dispose()


@pytest.fixture(scope="session")
def api_app(migrated_seeded_db: str):
    # Settings are read at import time.
    os.environ["DATABASE_URL"] = migrated_seeded_db
    os.environ["ADMIN_TOKEN"] = "test-admin"
    from services.api.app.main import app

    return app


def _user_id(engine, email: str) -> str:
    from db import schema

    with engine.connect() as conn:
        return str(conn.execute(sa.select(schema.users.c.id).where(schema.users.c.email == email)).scalar_one())


@pytest.fixture(scope="session")
def john_headers(sync_engine) -> dict:
    return {"X-User-Id": _user_id(sync_engine, "john.doe@taskpilot.com")}


@pytest.fixture(scope="session")
def jane_headers(sync_engine) -> dict:
    return {"X-User-Id": _user_id(sync_engine, "jane.smith@taskpilot.com")}
