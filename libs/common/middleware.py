"""Request tracing middleware for the commerce API.

Every request gets an ``X-Request-ID`` (propagated or generated) and, when the
caller names a tenant with ``X-Store-ID``, that store id is bound to the log
context as well. Both are echoed back on the response.
"""
import time
from typing import Callable

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from libs.common.logging import (
    clear_request_context,
    configure_logging,
    get_logger,
    set_request_context,
)

logger = get_logger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
STORE_ID_HEADER = "X-Store-ID"
QUIET_PATHS = frozenset({"/health"})


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        store_id = request.headers.get(STORE_ID_HEADER)
        request_id = set_request_context(
            request_id=request.headers.get(REQUEST_ID_HEADER),
            path=request.url.path,
            method=request.method,
            store_id=store_id,
        )
        quiet = request.url.path in QUIET_PATHS
        started = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception(
                "Unhandled error while serving request",
                extra={
                    "extra_fields": {
                        "error": str(e),
                        "duration_ms": _elapsed_ms(started),
                    }
                },
            )
            raise
        else:
            if not quiet:
                # Client and provider errors (4xx) are expected traffic on webhooks
                level = "error" if response.status_code >= 500 else "info"
                getattr(logger, level)(
                    "%s %s -> %s",
                    request.method,
                    request.url.path,
                    response.status_code,
                    extra={
                        "extra_fields": {
                            "status_code": response.status_code,
                            "duration_ms": _elapsed_ms(started),
                        }
                    },
                )
            response.headers[REQUEST_ID_HEADER] = request_id
            if store_id:
                response.headers[STORE_ID_HEADER] = store_id
            return response
        finally:
            clear_request_context()


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def add_observability_middleware(app: FastAPI) -> None:
    """Configure logging and install request tracing on ``app``."""
    configure_logging()
    app.add_middleware(RequestContextMiddleware)
