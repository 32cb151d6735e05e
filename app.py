"""
Module proxy server.

Serves the module proxy protocol over HTTP, resolving every request by
running the go command against the modules' version-control repositories:

    MODULE/@v/list              known versions, one per line
    MODULE/@latest              {"Version", "Time"} of the latest version
    MODULE/@v/VERSION.info      version metadata
    MODULE/@v/VERSION.mod       go.mod file
    MODULE/@v/VERSION.zip       module archive

To use it:

    $ python app.py &
    $ export GOPROXY=http://localhost:8000/mod
    $ go get <module>
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any, Dict, Optional

import uvicorn

from modproxy.core.config import ConfigFsPaths, ConfigManager
from modproxy.core.errors import ConfigError
from modproxy.core.events import EventLogger
from modproxy.core.error_reporter import ErrorReporter, ErrorReporterConfig
from modproxy.core.logger import setup_logging
from modproxy.core.toolchain import GoCommandToolchain
from modproxy.web.api import create_app


def _cli_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    out: Dict[str, Dict[str, Any]] = {}
    if args.host:
        out.setdefault("server", {})["bind_host"] = args.host
    if args.port:
        out.setdefault("server", {})["port"] = args.port
    if args.cache_dir:
        out.setdefault("toolchain", {})["cache_dir"] = args.cache_dir
    if args.go:
        out.setdefault("toolchain", {})["go_binary"] = args.go
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Module proxy server backed by the go command")
    ap.add_argument("--config-root", default=".", help="Directory holding config/proxy.json.")
    ap.add_argument("--host", default=None, help="Listen address (overrides config).")
    ap.add_argument("--port", type=int, default=None, help="Listen port (overrides config).")
    ap.add_argument("--cache-dir", default=None, help="Module cache directory (overrides config).")
    ap.add_argument("--go", default=None, help="Path to the go binary (overrides config).")
    ap.add_argument("--diagnostics-only", action="store_true", help="Print toolchain health and effective config, then exit.")
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    manager = ConfigManager(fs=ConfigFsPaths(root=args.config_root))
    try:
        cfg = manager.load(overrides=_cli_overrides(args))
    except ConfigError as e:
        print(e.user_message, file=sys.stderr)
        return 2

    logger = setup_logging(cfg.logging.log_dir, level=cfg.logging.level)
    manager.logger = logger

    cache_dir = manager.resolved_cache_dir()
    try:
        os.makedirs(cache_dir, mode=0o755, exist_ok=True)
    except OSError as e:
        logger.critical(f"creating cache: {e}")
        return 1

    toolchain = GoCommandToolchain(
        cache_dir=cache_dir,
        go_binary=cfg.toolchain.go_binary,
        timeout_seconds=cfg.toolchain.timeout_seconds,
        env_passthrough=list(cfg.toolchain.env_passthrough),
        logger=logger.getChild("toolchain"),
    )

    if args.diagnostics_only:
        h = toolchain.health()
        print(json.dumps({"toolchain": {"ok": h.ok, "detail": h.detail}, "cache_dir": cache_dir, "config": cfg.model_dump()}, indent=2))
        return 0 if h.ok else 1

    app = create_app(
        toolchain,
        settings=cfg,
        event_logger=EventLogger(os.path.join(cfg.logging.log_dir, "events.jsonl")),
        reporter=ErrorReporter(
            path=os.path.join(cfg.logging.log_dir, "errors.jsonl"),
            cfg=ErrorReporterConfig(include_tracebacks=cfg.logging.include_tracebacks),
        ),
        logger=logger,
    )
    logger.info(f"Serving modules from {cache_dir} on http://{cfg.server.bind_host}:{cfg.server.port}{cfg.server.mount_prefix}")
    # keep the handlers attached by setup_logging
    server = uvicorn.Server(
        uvicorn.Config(app, host=cfg.server.bind_host, port=cfg.server.port, log_config=None, access_log=False)
    )
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
