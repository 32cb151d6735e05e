from __future__ import annotations

import json
import logging
import os
import shlex
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from modproxy.core.errors import ResolutionError
from modproxy.core.models import ModuleDownloadJSON, ModuleListJSON, ModuleRef, ResolvedModule
from modproxy.core.toolchain.base import ModuleToolchain, ToolchainHealth


T = TypeVar("T", bound=BaseModel)

DEFAULT_ENV_PASSTHROUGH = ("USER", "PATH", "HOME")


@dataclass
class GoCommandToolchain(ModuleToolchain):
    """
    Toolchain backed by the ``go`` command.

    ``go mod download`` resolves a query and stores .info/.mod/.zip in the
    module cache, which doubles as the proxy's artifact storage; ``go list
    -m`` answers version-list and query-resolution requests.
    """

    cache_dir: str
    go_binary: str = "go"
    timeout_seconds: float = 600.0
    env_passthrough: List[str] = field(default_factory=lambda: list(DEFAULT_ENV_PASSTHROUGH))
    logger: Optional[logging.Logger] = None
    name: str = "go"

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = logging.getLogger("modproxy.toolchain")

    def health(self) -> ToolchainHealth:
        exe = shutil.which(self.go_binary)
        if exe is None:
            return ToolchainHealth(ok=False, detail=f"{self.go_binary}: executable not found")
        try:
            res = subprocess.run([exe, "version"], capture_output=True, text=True, timeout=10, env=self.environ())
        except (OSError, subprocess.SubprocessError) as e:
            return ToolchainHealth(ok=False, detail=str(e))
        if res.returncode != 0:
            return ToolchainHealth(ok=False, detail=(res.stderr or "").strip()[:300])
        return ToolchainHealth(ok=True, detail=(res.stdout or "").strip())

    # ---- operations ----
    def download(self, path: str, query: str) -> ResolvedModule:
        """Run 'go mod download' for path@query; also fetches the module's dependencies."""
        failure = f"failed to download module {path}"
        out = self._run_go(ModuleDownloadJSON, "mod", "download", "-json", str(ModuleRef(path, query)), failure=failure)
        if out.Error:
            raise ResolutionError(f"{failure}: {out.Error}", module=path, query=query)
        return ResolvedModule(
            path=out.Path or path,
            version=out.Version,
            info=out.Info,
            go_mod=out.GoMod,
            zip=out.Zip,
        )

    def list_versions(self, path: str) -> List[str]:
        failure = f"failed to list module {path}"
        out = self._run_go(ModuleListJSON, "list", "-m", "-json", "-versions", path, failure=failure)
        if out.Error is not None:
            raise ResolutionError(f"{failure}: {out.Error.Err}", module=path)
        return list(out.Versions)

    def resolve(self, path: str, query: str) -> ResolvedModule:
        failure = f"failed to list module {path}"
        out = self._run_go(ModuleListJSON, "list", "-m", "-json", str(ModuleRef(path, query)), failure=failure)
        if out.Error is not None:
            raise ResolutionError(f"{failure}: {out.Error.Err}", module=path, query=query)
        return ResolvedModule(path=out.Path or path, version=out.Version, time=out.Time)

    # ---- plumbing ----
    def environ(self) -> Dict[str, str]:
        """The complete environment of a go invocation, built from scratch."""
        env = {name: os.environ.get(name, "") for name in self.env_passthrough}
        env.update(
            {
                "NETRC": "",  # never read the user's credentials
                "GOPROXY": "direct",
                "GOSUMDB": "",
                "GOCACHE": self.cache_dir,
                "GOMODCACHE": self.cache_dir,
            }
        )
        return env

    def _run_go(self, schema: Type[T], *args: str, failure: str) -> T:
        """
        Run the go command and decode its JSON output into ``schema``.
        Errors the command reports about the module are prefixed with
        ``failure``; every failure is a ``ResolutionError``.
        """
        cmd = [self.go_binary, *args]
        display = shlex.join(cmd)
        tmpdir = tempfile.mkdtemp(prefix="modproxy_")
        try:
            try:
                res = subprocess.run(
                    cmd,
                    cwd=tmpdir,
                    env=self.environ(),
                    capture_output=True,
                    text=True,
                    timeout=self.timeout_seconds,
                )
            except FileNotFoundError as e:
                self.logger.error("%s: go binary not found: %s", display, e)
                raise ResolutionError(f"{display} failed: {e}", command=display) from e
            except subprocess.TimeoutExpired as e:
                raise ResolutionError(f"{display} timed out after {self.timeout_seconds:g}s", command=display) from e
            except OSError as e:
                raise ResolutionError(f"{display} failed: {e}", command=display) from e
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

        if res.returncode != 0:
            # The go command reports per-module errors in its JSON output and
            # exits non-zero; prefer that text when it is there.
            reported = _reported_error(res.stdout)
            if reported:
                raise ResolutionError(f"{failure}: {reported}", command=display)
            self.logger.warning("%s exited with status %s", display, res.returncode)
            raise ResolutionError(
                f"{display} failed: exit status {res.returncode} (stderr=<<{res.stderr}>>)",
                command=display,
            )
        try:
            return schema.model_validate_json(res.stdout)
        except ValidationError as e:
            raise ResolutionError(f"internal error decoding {display} JSON output: {e}", command=display) from e


def _reported_error(stdout: str) -> str:
    try:
        obj: Any = json.loads(stdout or "")
    except ValueError:
        return ""
    if not isinstance(obj, dict):
        return ""
    err = obj.get("Error")
    if isinstance(err, dict):
        err = err.get("Err")
    return str(err or "")
