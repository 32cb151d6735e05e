from modproxy.core.toolchain.base import ModuleToolchain, ToolchainHealth
from modproxy.core.toolchain.go_command import GoCommandToolchain

__all__ = [
    "ModuleToolchain",
    "ToolchainHealth",
    "GoCommandToolchain",
]
