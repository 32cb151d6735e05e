from __future__ import annotations

import time
import uuid
from typing import Any, Dict, Optional

import anyio.to_thread
from fastapi import Request

from modproxy.core.events import EventLogger


TRACE_HEADER = "X-Trace-Id"


def _client_ip(request: Request) -> Optional[str]:
    return getattr(getattr(request, "client", None), "host", None)


class RequestLogMiddleware:
    """
    Per-request bookkeeping (order matters):
    1) trace_id on request.state and on the response
    2) request event
    3) response / exception event with latency

    Event appends are file writes and run on the worker thread pool.
    """

    def __init__(self, *, event_logger: EventLogger, logger=None):
        self.event_logger = event_logger
        self.logger = logger

    async def _log(self, trace_id: str, event_type: str, details: Dict[str, Any]) -> None:
        await anyio.to_thread.run_sync(self.event_logger.log, trace_id, event_type, details)

    async def __call__(self, request: Request, call_next):  # noqa: ANN001
        trace_id = uuid.uuid4().hex
        request.state.trace_id = trace_id
        ip = _client_ip(request)
        path = request.url.path
        method = request.method
        t0 = time.time()

        await self._log(trace_id, "proxy.request", {"path": path, "method": method, "client_host": ip})

        try:
            resp = await call_next(request)
        except Exception as e:
            await self._log(
                trace_id,
                "proxy.exception",
                {"path": path, "method": method, "error": str(e), "elapsed_ms": round((time.time() - t0) * 1000.0, 1)},
            )
            if self.logger is not None:
                self.logger.error(f"{method} {path} failed: {e}")
            raise

        resp.headers[TRACE_HEADER] = trace_id
        await self._log(
            trace_id,
            "proxy.response",
            {"path": path, "method": method, "status": resp.status_code, "elapsed_ms": round((time.time() - t0) * 1000.0, 1)},
        )
        return resp
