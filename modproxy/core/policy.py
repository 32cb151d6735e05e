from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from modproxy.core.errors import ArtifactStreamError, ProxyError
from modproxy.core.models import Artifact, ArtifactKind, Endpoint, InfoJSON, Latest, ListVersions, ModuleRef, VersionList
from modproxy.core.toolchain.base import ModuleToolchain


MEDIA_TYPES: Dict[ArtifactKind, str] = {
    ArtifactKind.info: "application/json",
    ArtifactKind.mod: "text/plain; charset=UTF-8",
    ArtifactKind.zip: "application/zip",
}

NO_STORE = {"Cache-Control": "no-store"}


@dataclass(frozen=True)
class ProxyReply:
    status: int
    media_type: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    artifact: Optional[str] = None


def error_reply(err: ProxyError) -> ProxyReply:
    """Plain-text error body, one line, like net/http's Error helper."""
    return ProxyReply(
        status=err.status_code,
        media_type="text/plain; charset=utf-8",
        headers={"X-Content-Type-Options": "nosniff"},
        body=(err.user_message + "\n").encode("utf-8"),
    )


class ResponsePolicy:
    """
    Decides status, content type, caching and payload for an endpoint.

    Toolchain failures propagate as ``ResolutionError`` (404).  Version lists
    and ``@latest`` answers move over time and are never cacheable; an
    artifact is cacheable only when the client asked for the exact version
    the query resolved to.
    """

    def __init__(self, toolchain: ModuleToolchain, *, logger: Optional[logging.Logger] = None):
        self.toolchain = toolchain
        self.logger = logger or logging.getLogger("modproxy.policy")

    def respond(self, endpoint: Endpoint) -> ProxyReply:
        if isinstance(endpoint, ListVersions):
            return self._list(endpoint)
        if isinstance(endpoint, Latest):
            return self._latest(endpoint)
        if isinstance(endpoint, Artifact):
            return self._artifact(endpoint)
        raise TypeError(f"unknown endpoint {endpoint!r}")

    def _list(self, ep: ListVersions) -> ProxyReply:
        self.logger.info("list %s", ep.module)
        listing = VersionList(path=ep.module, versions=self.toolchain.list_versions(ep.module))
        body = listing.to_text().encode("utf-8")
        return ProxyReply(status=200, media_type="text/plain; charset=UTF-8", headers=dict(NO_STORE), body=body)

    def _latest(self, ep: Latest) -> ProxyReply:
        self.logger.info("latest %s", ep.module)
        latest = self.toolchain.resolve_latest(ep.module)
        info = InfoJSON(version=latest.version, time=latest.time)
        body = (json.dumps(info.to_wire(), separators=(",", ":")) + "\n").encode("utf-8")
        return ProxyReply(status=200, media_type="application/json", headers=dict(NO_STORE), body=body)

    def _artifact(self, ep: Artifact) -> ProxyReply:
        ref = ModuleRef(ep.module, ep.version_query)
        self.logger.info("%s %s", ep.kind.value, ref)
        m = self.toolchain.download(ep.module, ep.version_query)
        try:
            artifacts = m.require_artifacts()
        except ValueError as e:
            raise ArtifactStreamError(str(e), module=ep.module, version=m.version) from e

        headers: Dict[str, str] = {}
        # The query may name a branch or other movable reference; only an
        # exact version is immutable.
        if ep.version_query != m.version:
            headers.update(NO_STORE)
            self.logger.info("%s %s => %s", ep.kind.value, ref, m.version)

        return ProxyReply(
            status=200,
            media_type=MEDIA_TYPES[ep.kind],
            headers=headers,
            artifact=artifacts.locator(ep.kind),
        )
