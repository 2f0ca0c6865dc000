import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Callable

from fastapi import Request, Response


logger = logging.getLogger("messages_api")
access_logger = logging.getLogger("messages_api.access")


def configure_logging(level: str = "INFO") -> None:
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s - %(message)s")
        )
        logger.addHandler(handler)
    for h in logger.handlers:
        h.setLevel(level)


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat()


async def logging_middleware(request: Request, call_next: Callable) -> Response:
    request_id = str(uuid.uuid4())
    start = time.perf_counter()

    # store request_id in state so handlers can use it; handlers add to log_extra
    request.state.request_id = request_id
    request.state.log_extra = {}

    response: Response
    try:
        response = await call_next(request)
    except Exception:
        latency_ms = (time.perf_counter() - start) * 1000.0
        log = {
            "ts": iso_now(),
            "level": "error",
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status": 500,
            "latency_ms": round(latency_ms, 2),
        }
        access_logger.error(json.dumps(log))
        raise

    latency_ms = (time.perf_counter() - start) * 1000.0

    log = {
        "ts": iso_now(),
        "level": "info",
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "status": response.status_code,
        "latency_ms": round(latency_ms, 2),
    }

    # add extra fields from handlers (e.g. created message id)
    if isinstance(getattr(request.state, "log_extra", None), dict):
        log.update(request.state.log_extra)

    access_logger.info(json.dumps(log))
    return response
