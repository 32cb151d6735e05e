from __future__ import annotations

import json
import os

import pytest

from modproxy.core.config import ConfigManager, ProxyConfig
from modproxy.core.config.models import ServerConfig, ToolchainConfig
from modproxy.core.errors import ConfigError


def test_missing_config_writes_defaults(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, environ={})
    cfg = cm.load()
    assert cfg == ProxyConfig()
    assert cfg.server.mount_prefix == "/mod/"
    with open(tmp_config_root.proxy, "r", encoding="utf-8") as f:
        on_disk = json.load(f)
    assert on_disk["server"]["port"] == 8000


def test_read_only_does_not_write(tmp_config_root):
    ConfigManager(fs=tmp_config_root, environ={}, read_only=True).load()
    assert not os.path.exists(tmp_config_root.proxy)


def test_corrupt_config_is_backed_up_and_defaults_used(tmp_config_root):
    with open(tmp_config_root.proxy, "w", encoding="utf-8") as f:
        f.write("{not json")
    cfg = ConfigManager(fs=tmp_config_root, environ={}).load()
    assert cfg == ProxyConfig()
    backups = os.listdir(tmp_config_root.backups_dir)
    assert len(backups) == 1 and backups[0].endswith(".corrupt.json")


def test_file_values_are_used(tmp_config_root):
    with open(tmp_config_root.proxy, "w", encoding="utf-8") as f:
        json.dump({"server": {"port": 9090}, "toolchain": {"timeout_seconds": 5}}, f)
    cfg = ConfigManager(fs=tmp_config_root, environ={}).load()
    assert cfg.server.port == 9090
    assert cfg.server.bind_host == "127.0.0.1"
    assert cfg.toolchain.timeout_seconds == 5


def test_environment_then_cli_overrides(tmp_config_root):
    with open(tmp_config_root.proxy, "w", encoding="utf-8") as f:
        json.dump({"server": {"port": 9090}}, f)
    env = {"MODPROXY_PORT": "7000", "MODPROXY_CACHE_DIR": "/srv/cache", "MODPROXY_BIND_HOST": "0.0.0.0"}
    cfg = ConfigManager(fs=tmp_config_root, environ=env).load(overrides={"server": {"port": 6000}})
    assert cfg.server.port == 6000
    assert cfg.server.bind_host == "0.0.0.0"
    assert cfg.toolchain.cache_dir == "/srv/cache"


def test_invalid_values_raise_config_error(tmp_config_root):
    with open(tmp_config_root.proxy, "w", encoding="utf-8") as f:
        json.dump({"server": {"port": 70000}}, f)
    with pytest.raises(ConfigError) as ei:
        ConfigManager(fs=tmp_config_root, environ={}).load()
    assert ei.value.status_code == 500


def test_unknown_keys_are_rejected(tmp_config_root):
    with open(tmp_config_root.proxy, "w", encoding="utf-8") as f:
        json.dump({"server": {"prot": 1}}, f)
    with pytest.raises(ConfigError):
        ConfigManager(fs=tmp_config_root, environ={}).load()


@pytest.mark.parametrize("prefix", ["mod/", "/mod", ""])
def test_mount_prefix_must_be_rooted_dir(prefix):
    with pytest.raises(ValueError):
        ServerConfig(mount_prefix=prefix)


@pytest.mark.parametrize("names", [["GOPROXY"], ["PATH", "GOFLAGS"], ["netrc"]])
def test_env_passthrough_rejects_go_settings(names):
    with pytest.raises(ValueError):
        ToolchainConfig(env_passthrough=names)


def test_resolved_cache_dir_defaults_under_home(tmp_config_root, tmp_path):
    cm = ConfigManager(fs=tmp_config_root, environ={"HOME": str(tmp_path)})
    cm.load()
    assert cm.resolved_cache_dir() == os.path.join(str(tmp_path), "gomodproxy-cache")


def test_resolved_cache_dir_is_absolute(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, environ={})
    cm.load(overrides={"toolchain": {"cache_dir": "relative/cache"}})
    assert os.path.isabs(cm.resolved_cache_dir())


def test_get_before_load_raises(tmp_config_root):
    with pytest.raises(ConfigError):
        ConfigManager(fs=tmp_config_root, environ={}).get()


def test_save_backs_up_previous_file(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, environ={})
    cm.load()
    data = ProxyConfig().model_dump()
    data["server"]["port"] = 8181
    cfg = cm.save(data)
    assert cfg.server.port == 8181
    assert any(n.endswith(".prewrite.json") for n in os.listdir(tmp_config_root.backups_dir))


def test_save_rejects_invalid(tmp_config_root):
    cm = ConfigManager(fs=tmp_config_root, environ={})
    cm.load()
    with pytest.raises(ConfigError):
        cm.save({"server": {"mount_prefix": "nope"}})
