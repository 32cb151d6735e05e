from __future__ import annotations

import asyncio
import threading

import httpx

from modproxy.core.config.models import LoggingConfig, ProxyConfig
from modproxy.core.error_reporter import ErrorReporter
from modproxy.core.events import EventLogger
from modproxy.web.api import create_app

from .helpers.fakes import BarrierToolchain


def test_slow_downloads_do_not_block_each_other(make_app, tmp_path):
    # Each download waits for the other one; a serialized server would time out.
    tc = BarrierToolchain(str(tmp_path / "art"), parties=2, timeout=5.0)
    tc.add("example.com/a", "v1.0.0")
    tc.add("example.com/b", "v1.0.0")
    app = make_app(tc)

    async def fetch_both():
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://proxy") as client:
            return await asyncio.gather(
                client.get("/mod/example.com/a/@v/v1.0.0.mod"),
                client.get("/mod/example.com/b/@v/v1.0.0.mod"),
            )

    ra, rb = asyncio.run(fetch_both())
    assert ra.status_code == 200, ra.text
    assert rb.status_code == 200, rb.text
    assert ra.text == "module example.com/a\n"
    assert rb.text == "module example.com/b\n"


def test_log_appends_run_off_the_event_loop_thread(toolchain, log_dir):
    writers = []

    class _ThreadNotingEvents(EventLogger):
        def log(self, *args, **kwargs):  # noqa: ANN002, ANN003
            writers.append(("event", threading.get_ident()))
            return super().log(*args, **kwargs)

    class _ThreadNotingErrors(ErrorReporter):
        def write_error(self, *args, **kwargs):  # noqa: ANN002, ANN003
            writers.append(("error", threading.get_ident()))
            super().write_error(*args, **kwargs)

    app = create_app(
        toolchain,
        settings=ProxyConfig(logging=LoggingConfig(log_dir=str(log_dir))),
        event_logger=_ThreadNotingEvents(str(log_dir / "events.jsonl")),
        reporter=_ThreadNotingErrors(path=str(log_dir / "errors.jsonl")),
    )

    async def fetch_missing():
        loop_thread = threading.get_ident()
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://proxy") as client:
            return loop_thread, await client.get("/mod/example.com/missing/@v/list")

    loop_thread, r = asyncio.run(fetch_missing())
    assert r.status_code == 404
    assert [kind for kind, _ in writers] == ["event", "error", "event"]
    assert all(ident != loop_thread for _, ident in writers)
