from __future__ import annotations

import os
from dataclasses import dataclass


@dataclass(frozen=True)
class ConfigFsPaths:
    """Settings live in ``<root>/config/<filename>``; replaced copies go to ``backups/``."""

    root: str = "."
    filename: str = "proxy.json"

    @property
    def config_dir(self) -> str:
        return os.path.join(self.root, "config")

    @property
    def backups_dir(self) -> str:
        return os.path.join(self.config_dir, "backups")

    @property
    def proxy(self) -> str:
        return os.path.join(self.config_dir, self.filename)
