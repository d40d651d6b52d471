from __future__ import annotations

import time

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from db.seed import run as run_seeder
from services.api.app.deps import require_admin
from services.api.app.logging import logger
from services.api.app.observability import SEEDER_LATENCY, SEEDER_RUNS_TOTAL
from services.api.app.schemas import AdminSeedRequest
from services.api.app.settings import SETTINGS


router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


def _seed(req: AdminSeedRequest | None) -> int:
    return (req or AdminSeedRequest()).seed


async def _run(command: str, seed: int) -> dict:
    # Seeders are synchronous and hold one connection for the whole run.
    start = time.perf_counter()
    try:
        result = await run_in_threadpool(run_seeder, command, SETTINGS.database_url, seed)
    except Exception:
        SEEDER_RUNS_TOTAL.labels(command, "error").inc()
        logger.exception("admin_seeder_failed", command=command)
        raise
    finally:
        SEEDER_LATENCY.labels(command).observe((time.perf_counter() - start) * 1000)
    SEEDER_RUNS_TOTAL.labels(command, "ok").inc()
    logger.info("admin_seeder_finished", command=command, seed=seed)
    return {"command": command, "seed": seed, "result": result}


@router.post("/seed")
async def seed(req: AdminSeedRequest | None = None) -> dict:
    return await _run("seed", _seed(req))


@router.post("/seed-admin")
async def seed_admin(req: AdminSeedRequest | None = None) -> dict:
    return await _run("admin", _seed(req))


@router.post("/seed-inbox-rules")
async def seed_inbox_rules(req: AdminSeedRequest | None = None) -> dict:
    return await _run("inbox_rules", _seed(req))


@router.post("/clear")
async def clear(req: AdminSeedRequest | None = None) -> dict:
    return await _run("clear", _seed(req))


@router.post("/reset")
async def reset(req: AdminSeedRequest | None = None) -> dict:
    return await _run("reset", _seed(req))
