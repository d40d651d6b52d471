from __future__ import annotations

import contextlib
import logging
import sys
from collections.abc import Iterator

import structlog


def configure_logging(log_level: str) -> None:
    # stdout carries the CLI's JSON result; log events go to stderr.
    level = log_level.upper()
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        logger_factory=structlog.PrintLoggerFactory(sys.stderr),
        cache_logger_on_first_use=True,
    )


@contextlib.contextmanager
def seeder_run(op: str, seed: int) -> Iterator[None]:
    """Tag every event logged inside one orchestrator operation with its op and seed."""
    with structlog.contextvars.bound_contextvars(component="seeder", seeder_op=op, seed=seed):
        yield


logger = structlog.get_logger()
