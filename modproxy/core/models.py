from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ArtifactKind(str, Enum):
    info = "info"
    mod = "mod"
    zip = "zip"


# ---- Endpoints (one per request, produced by the router) ----
@dataclass(frozen=True)
class ListVersions:
    module: str


@dataclass(frozen=True)
class Latest:
    module: str


@dataclass(frozen=True)
class Artifact:
    module: str
    version_query: str
    kind: ArtifactKind


Endpoint = Union[ListVersions, Latest, Artifact]


@dataclass(frozen=True)
class ModuleRef:
    path: str
    version_query: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.path}@{self.version_query}" if self.version_query else self.path


# ---- Toolchain results ----
class ArtifactSet(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    info: str
    go_mod: str
    zip: str

    def locator(self, kind: ArtifactKind) -> str:
        if kind == ArtifactKind.info:
            return self.info
        if kind == ArtifactKind.mod:
            return self.go_mod
        return self.zip


class ResolvedModule(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str
    version: str = ""
    time: Optional[datetime] = None
    info: Optional[str] = None
    go_mod: Optional[str] = None
    zip: Optional[str] = None
    error: Optional[str] = None

    @model_validator(mode="after")
    def _error_excludes_artifacts(self) -> "ResolvedModule":
        if self.error and any((self.info, self.go_mod, self.zip)):
            raise ValueError("a failed resolution must not carry artifact locators")
        return self

    def require_artifacts(self) -> ArtifactSet:
        if self.error or not (self.info and self.go_mod and self.zip):
            raise ValueError(f"{self.path}@{self.version}: artifacts unavailable")
        return ArtifactSet(info=self.info, go_mod=self.go_mod, zip=self.zip)


class VersionList(BaseModel):
    model_config = ConfigDict(extra="forbid")

    path: str
    versions: List[str] = Field(default_factory=list)

    def to_text(self) -> str:
        """One version per line, each terminated by a newline."""
        return "".join(f"{v}\n" for v in self.versions)


class InfoJSON(BaseModel):
    """Wire shape of ``.info`` files and the ``@latest`` endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = Field(alias="Version")
    time: Optional[datetime] = Field(default=None, alias="Time")

    def to_wire(self) -> dict:
        return {"Version": self.version, "Time": format_time(self.time)}


def format_time(t: Optional[datetime]) -> Optional[str]:
    """RFC 3339 in UTC with a ``Z`` suffix, fractional seconds only when present."""
    if t is None:
        return None
    if t.tzinfo is not None:
        t = t.astimezone(timezone.utc)
    out = t.strftime("%Y-%m-%dT%H:%M:%S")
    if t.microsecond:
        out += f".{t.microsecond:06d}".rstrip("0")
    return out + "Z"


# ---- JSON schemas of the go command's output ----
class ModuleDownloadJSON(BaseModel):
    """Output of ``go mod download -json``."""

    model_config = ConfigDict(extra="ignore")

    Path: str = ""
    Version: str = ""
    Error: str = ""
    Info: str = ""
    GoMod: str = ""
    Zip: str = ""
    Dir: str = ""
    Sum: str = ""
    GoModSum: str = ""


class ModuleErrorJSON(BaseModel):
    model_config = ConfigDict(extra="ignore")

    Err: str = ""


class ModuleListJSON(BaseModel):
    """Output of ``go list -m -json``."""

    model_config = ConfigDict(extra="ignore")

    Path: str = ""
    Version: str = ""
    Versions: List[str] = Field(default_factory=list)
    Time: Optional[datetime] = None
    Dir: str = ""
    GoMod: str = ""
    GoVersion: str = ""
    Retracted: Optional[List[str]] = None
    Error: Optional[ModuleErrorJSON] = None
