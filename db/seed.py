from __future__ import annotations

import argparse
import json
import os

import sqlalchemy as sa

from db.logging import configure_logging
from db.seeders import SeederService
from db.settings import SETTINGS, to_sync_url


COMMANDS = ("seed", "admin", "clear", "reset")


def run(command: str, database_url: str, seed_value: int) -> dict:
    engine = sa.create_engine(to_sync_url(database_url), future=True)
    try:
        service = SeederService(engine, seed_value)
        if command == "seed":
            return service.seed_core()
        if command == "admin":
            return service.seed_admin()
        if command == "clear":
            return service.clear_core()
        if command == "reset":
            return service.reset()
        if command == "inbox_rules":
            return service.seed_inbox_rules()
        raise ValueError(f"unknown command: {command}")
    finally:
        engine.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the TaskPilot database with demo data.")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--database-url", default=os.getenv("DATABASE_URL") or SETTINGS.database_url)
    parser.add_argument("--seed", type=int, default=SETTINGS.seed_value)
    args = parser.parse_args()

    configure_logging(SETTINGS.log_level)
    result = run(args.command, args.database_url, args.seed)
    print(json.dumps({"command": args.command, "seed": args.seed, "result": result}, indent=2, default=str))


if __name__ == "__main__":
    main()
