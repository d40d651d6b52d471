from __future__ import annotations

import hashlib
import random
import uuid
from datetime import UTC, datetime
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from db.logging import logger


def _now() -> datetime:
    return datetime.now(tz=UTC)


def det_uuid(*parts: str) -> uuid.UUID:
    h = hashlib.sha256("||".join(parts).encode("utf-8")).hexdigest()
    return uuid.UUID(h[:32])


class BaseSeeder:
    """
    Shared plumbing for per-entity seeders.

    Seeders run on one sync connection inside the orchestrator's transaction. Inserts that can
    collide with existing data run in a SAVEPOINT so a conflict only rolls back that row.
    """

    name = "base"

    def __init__(self, conn: Connection, rng: random.Random, now: datetime | None = None) -> None:
        self.conn = conn
        self.rng = rng
        self.now = now or _now()

    def _uuid(self, *parts: Any) -> uuid.UUID:
        return det_uuid(self.name, *(str(p) for p in parts))

    def _audit(self, actor_id: uuid.UUID | None) -> dict:
        return {
            "created_by_id": actor_id,
            "updated_by_id": actor_id,
            "created_at": self.now,
            "updated_at": self.now,
        }

    def _try_insert(self, table: sa.Table, row: dict) -> bool:
        try:
            with self.conn.begin_nested():
                self.conn.execute(sa.insert(table).values(**row))
        except IntegrityError as e:
            logger.warning("seed_insert_conflict", seeder=self.name, table=table.name, error=str(e.orig))
            return False
        return True

    def _insert_many(self, table: sa.Table, rows: list[dict]) -> int:
        if rows:
            self.conn.execute(sa.insert(table), rows)
        return len(rows)

    def _first(self, q: sa.Select) -> dict | None:
        row = self.conn.execute(q).mappings().first()
        return dict(row) if row else None

    def _all(self, q: sa.Select) -> list[dict]:
        return [dict(r) for r in self.conn.execute(q).mappings().all()]

    def _delete_all(self, table: sa.Table, *where: Any) -> int:
        q = sa.delete(table)
        if where:
            q = q.where(*where)
        deleted = self.conn.execute(q).rowcount
        logger.info("seed_table_cleared", seeder=self.name, table=table.name, deleted=deleted)
        return deleted
