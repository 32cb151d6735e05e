from modproxy.core.config.manager import ConfigManager
from modproxy.core.config.models import LoggingConfig, ProxyConfig, ServerConfig, ToolchainConfig
from modproxy.core.config.paths import ConfigFsPaths

__all__ = [
    "ConfigFsPaths",
    "ConfigManager",
    "LoggingConfig",
    "ProxyConfig",
    "ServerConfig",
    "ToolchainConfig",
]
