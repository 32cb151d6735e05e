from __future__ import annotations

from dataclasses import dataclass
from typing import List

from modproxy.core.models import ResolvedModule


@dataclass
class ToolchainHealth:
    ok: bool
    detail: str = ""


class ModuleToolchain:
    """
    Module toolchain interface.  Resolves version queries and materialises
    per-version artifacts in durable storage.

    Every operation is blocking (VCS round-trips may take minutes) and
    raises ``ResolutionError`` carrying the toolchain's error text when the
    module or version does not exist or the fetch fails.

    - download()       -> resolve a query and ensure .info/.mod/.zip exist
    - list_versions()  -> all known versions, in no particular order
    - resolve()        -> resolve a query without fetching artifacts
    - resolve_latest() -> resolve("latest")
    - health()         -> availability check
    """

    name: str = "base"

    def download(self, path: str, query: str) -> ResolvedModule:
        """Resolve ``path@query`` and return the artifact locators."""
        raise NotImplementedError

    def list_versions(self, path: str) -> List[str]:
        """Return the versions the toolchain can discover for ``path``."""
        raise NotImplementedError

    def resolve(self, path: str, query: str) -> ResolvedModule:
        """Resolve ``path@query`` to a concrete version."""
        raise NotImplementedError

    def resolve_latest(self, path: str) -> ResolvedModule:
        return self.resolve(path, "latest")

    def health(self) -> ToolchainHealth:
        return ToolchainHealth(ok=True, detail="ok")
