from __future__ import annotations

import os
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from modproxy.core.config.io import atomic_write_json, backup_file, ensure_dirs, read_json_file
from modproxy.core.config.models import ProxyConfig
from modproxy.core.config.paths import ConfigFsPaths
from modproxy.core.errors import ConfigError


DEFAULT_CACHE_DIRNAME = "gomodproxy-cache"

# environment variable -> (section, key)
ENV_OVERRIDES: Dict[str, tuple[str, str]] = {
    "MODPROXY_BIND_HOST": ("server", "bind_host"),
    "MODPROXY_PORT": ("server", "port"),
    "MODPROXY_CACHE_DIR": ("toolchain", "cache_dir"),
    "MODPROXY_GO_BINARY": ("toolchain", "go_binary"),
}


class ConfigManager:
    def __init__(
        self,
        *,
        fs: Optional[ConfigFsPaths] = None,
        logger=None,
        read_only: bool = False,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self.fs = fs or ConfigFsPaths(".")
        self.logger = logger
        self.read_only = read_only
        self.environ = os.environ if environ is None else environ
        self._cfg: Optional[ProxyConfig] = None

    # ---------- public API ----------
    def load(self, overrides: Optional[Dict[str, Dict[str, Any]]] = None) -> ProxyConfig:
        """
        Read config/proxy.json (created with defaults when missing), then
        apply environment overrides and finally explicit ``overrides``
        (command-line flags).
        """
        raw = self._load_raw()
        if not self.read_only and not os.path.exists(self.fs.proxy):
            atomic_write_json(self.fs.proxy, ProxyConfig().model_dump())
        merged = _merge(raw, self._env_overrides())
        merged = _merge(merged, overrides or {})
        try:
            cfg = ProxyConfig.model_validate(merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", path=self.fs.proxy) from e
        self._cfg = cfg
        return cfg

    def get(self) -> ProxyConfig:
        if self._cfg is None:
            raise ConfigError("Config not loaded.")
        return self._cfg

    def save(self, data: Dict[str, Any]) -> ProxyConfig:
        """Validate, back up the current file, write atomically, reload."""
        if self.read_only:
            raise ConfigError("Config manager is read-only.")
        try:
            ProxyConfig.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}", path=self.fs.proxy) from e
        backup_file(self.fs.proxy, self.fs.backups_dir, reason="prewrite")
        atomic_write_json(self.fs.proxy, data)
        return self.load()

    def resolved_cache_dir(self) -> str:
        cache_dir = self.get().toolchain.cache_dir
        if not cache_dir:
            cache_dir = os.path.join(self.environ.get("HOME") or os.path.expanduser("~"), DEFAULT_CACHE_DIRNAME)
        return os.path.abspath(os.path.expanduser(cache_dir))

    # ---------- internals ----------
    def _load_raw(self) -> Dict[str, Any]:
        ensure_dirs(self.fs.config_dir)
        rr = read_json_file(self.fs.proxy)
        if rr.ok:
            return rr.data
        if rr.missing:
            return {}
        if self.logger:
            self.logger.warning(f"Config {self.fs.proxy} unreadable ({rr.error}); using defaults.")
        if not self.read_only:
            moved = backup_file(self.fs.proxy, self.fs.backups_dir, reason="corrupt")
            if moved and self.logger:
                self.logger.warning(f"Moved unreadable config to {moved}")
        return {}

    def _env_overrides(self) -> Dict[str, Dict[str, Any]]:
        out: Dict[str, Dict[str, Any]] = {}
        for name, (section, key) in ENV_OVERRIDES.items():
            value = self.environ.get(name)
            if value:
                out.setdefault(section, {})[key] = value
        return out


def _merge(base: Dict[str, Any], top: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for k, v in top.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out
