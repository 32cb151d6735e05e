from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ServerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    bind_host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    mount_prefix: str = "/mod/"
    max_concurrent_requests: int = Field(default=64, ge=1, le=4096)

    @field_validator("mount_prefix")
    @classmethod
    def _prefix_is_rooted_dir(cls, v: str) -> str:
        if not v.startswith("/") or not v.endswith("/"):
            raise ValueError("mount_prefix must start and end with '/'")
        return v


class ToolchainConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    go_binary: str = "go"
    cache_dir: str = ""  # empty: $HOME/gomodproxy-cache
    timeout_seconds: float = Field(default=600.0, gt=0)
    env_passthrough: List[str] = Field(default_factory=lambda: ["USER", "PATH", "HOME"])

    @field_validator("env_passthrough")
    @classmethod
    def _no_go_settings(cls, v: List[str]) -> List[str]:
        # GO* settings are fixed by the toolchain itself; passing them through
        # would let the host's proxy/sumdb/credential choices leak in.
        bad = [name for name in v if name.upper().startswith("GO") or name.upper() == "NETRC"]
        if bad:
            raise ValueError(f"env_passthrough may not include {bad}")
        return v


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    log_dir: str = "logs"
    level: str = "INFO"
    include_tracebacks: bool = False

    @field_validator("level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        v = v.upper()
        if v not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level {v!r}")
        return v


class ProxyConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")
    config_version: int = Field(default=1, ge=1)
    server: ServerConfig = Field(default_factory=ServerConfig)
    toolchain: ToolchainConfig = Field(default_factory=ToolchainConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
