from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Callable

import structlog
from fastapi import FastAPI, Request, Response


REQUEST_ID_HEADER = "X-Request-Id"


def _add_service(service: str) -> Callable:
    def processor(logger, method_name, event_dict):
        event_dict.setdefault("service", service)
        return event_dict

    return processor


def configure_logging(log_level: str, service: str = "taskpilot-api") -> None:
    level = log_level.upper()
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service(service),
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", key="ts"),
            structlog.processors.dict_tracebacks,
            structlog.processors.EventRenamer("msg"),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        cache_logger_on_first_use=True,
    )


def add_request_context(app: FastAPI) -> None:
    """Bind request id, method, path and acting user to every log line of a request."""

    @app.middleware("http")
    async def _request_context(request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        with structlog.contextvars.bound_contextvars(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            user_id=request.headers.get("X-User-Id"),
        ):
            resp = await call_next(request)
        resp.headers[REQUEST_ID_HEADER] = request_id
        return resp


logger = structlog.get_logger()
