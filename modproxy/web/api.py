from __future__ import annotations

import functools
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

import anyio.to_thread
from fastapi import FastAPI, Request
from fastapi.responses import Response, StreamingResponse
from starlette.background import BackgroundTask

from modproxy.core.config.models import ProxyConfig
from modproxy.core.error_reporter import ErrorReporter, ErrorReporterConfig, normalize_exception
from modproxy.core.errors import ProxyError
from modproxy.core.events import EventLogger
from modproxy.core.policy import ProxyReply, ResponsePolicy, error_reply
from modproxy.core.router import route
from modproxy.core.streamer import iter_artifact, open_artifact
from modproxy.core.toolchain.base import ModuleToolchain
from modproxy.web.middleware import RequestLogMiddleware


ALL_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _to_response(reply: ProxyReply) -> Response:
    return Response(content=reply.body or b"", status_code=reply.status, media_type=reply.media_type, headers=reply.headers)


def create_app(
    toolchain: ModuleToolchain,
    *,
    settings: Optional[ProxyConfig] = None,
    event_logger: Optional[EventLogger] = None,
    reporter: Optional[ErrorReporter] = None,
    logger: Optional[logging.Logger] = None,
) -> FastAPI:
    settings = settings or ProxyConfig()
    log_dir = settings.logging.log_dir
    logger = logger or logging.getLogger("modproxy")
    event_logger = event_logger or EventLogger(os.path.join(log_dir, "events.jsonl"))
    reporter = reporter or ErrorReporter(
        path=os.path.join(log_dir, "errors.jsonl"),
        cfg=ErrorReporterConfig(include_tracebacks=settings.logging.include_tracebacks),
    )
    policy = ResponsePolicy(toolchain, logger=logger.getChild("policy"))
    mount_prefix = settings.server.mount_prefix

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        # Every proxy request holds a worker thread for the whole toolchain call.
        anyio.to_thread.current_default_thread_limiter().total_tokens = settings.server.max_concurrent_requests
        yield

    app = FastAPI(title="Module Proxy", version="0.1.0", lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.middleware("http")(RequestLogMiddleware(event_logger=event_logger, logger=logger))

    @app.exception_handler(ProxyError)
    async def proxy_error_handler(request: Request, exc: ProxyError):
        trace_id = getattr(getattr(request, "state", None), "trace_id", "web")
        await anyio.to_thread.run_sync(
            functools.partial(reporter.write_error, exc, trace_id=trace_id, subsystem="web", internal_exc=exc.__cause__ or exc)
        )
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.user_message}")
        return _to_response(error_reply(exc))

    @app.get("/health")
    def health():
        h = toolchain.health()
        return {"status": "ok" if h.ok else "degraded", "toolchain": {"ok": h.ok, "detail": h.detail}}

    # Sync handler: runs on the worker thread pool, one thread per request,
    # so a slow toolchain call never stalls other requests.
    @app.api_route("/{full_path:path}", methods=ALL_METHODS)
    def proxy(full_path: str, request: Request):
        try:
            endpoint = route(request.url.path, mount_prefix)
            reply = policy.respond(endpoint)
            if reply.artifact is None:
                return _to_response(reply)
            handle = open_artifact(reply.artifact)
        except ProxyError:
            raise
        except Exception as e:  # noqa: BLE001
            raise normalize_exception(e, context={"path": request.url.path}) from e
        # close() is idempotent; the task covers a client that leaves before the first chunk
        return StreamingResponse(
            iter_artifact(handle),
            status_code=reply.status,
            media_type=reply.media_type,
            headers=reply.headers,
            background=BackgroundTask(handle.close),
        )

    return app
