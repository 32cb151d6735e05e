from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from modproxy.core.config.models import LoggingConfig, ProxyConfig
from modproxy.core.config.paths import ConfigFsPaths
from modproxy.core.error_reporter import ErrorReporter
from modproxy.core.events import EventLogger
from modproxy.web.api import create_app

from .helpers.fakes import FakeToolchain


T0 = datetime(2023, 5, 1, 12, 30, 0, tzinfo=timezone.utc)


@pytest.fixture
def tmp_config_root(tmp_path):
    """
    Provides an isolated root with config/ under tmp_path.
    """
    fs = ConfigFsPaths(root=str(tmp_path))
    os.makedirs(fs.config_dir, exist_ok=True)
    return fs


@pytest.fixture
def toolchain(tmp_path):
    tc = FakeToolchain(str(tmp_path / "artifacts"))
    tc.add("example.com/foo", "v1.0.0", time=T0)
    tc.add("example.com/foo", "v1.2.3", time=T0)
    tc.add("github.com/Azure/azure-sdk", "v0.3.0", time=T0)
    tc.alias("example.com/foo", "latest", "v1.2.3")
    tc.alias("example.com/foo", "main", "v1.2.3")
    return tc


@pytest.fixture
def log_dir(tmp_path):
    d = tmp_path / "logs"
    d.mkdir()
    return d


@pytest.fixture
def make_app(log_dir):
    def _make(tc):  # noqa: ANN001
        settings = ProxyConfig(logging=LoggingConfig(log_dir=str(log_dir)))
        return create_app(
            tc,
            settings=settings,
            event_logger=EventLogger(str(log_dir / "events.jsonl")),
            reporter=ErrorReporter(path=str(log_dir / "errors.jsonl")),
        )

    return _make


@pytest.fixture
def client(make_app, toolchain):
    with TestClient(make_app(toolchain)) as c:
        yield c
