"""
Request path routing for the module proxy protocol.

Five URL shapes are recognised under the mount prefix::

    MODULE/@v/list
    MODULE/@latest
    MODULE/@v/VERSION.info
    MODULE/@v/VERSION.mod
    MODULE/@v/VERSION.zip

Rules are tried in order and the first match wins.  Module paths may contain
dots but never the literal ``/@v/`` segment, and artifact extensions never
contain dots, so an artifact path is split at its last ``.`` and then at its
first ``/@v/``.
"""

from __future__ import annotations

from typing import Callable, List, Optional, Tuple

from modproxy.core.codec import unescape_path, unescape_version
from modproxy.core.errors import BadRequestError, NotFoundError
from modproxy.core.models import Artifact, ArtifactKind, Endpoint, Latest, ListVersions


DEFAULT_MOUNT_PREFIX = "/mod/"

LIST_SUFFIX = "/@v/list"
LATEST_SUFFIX = "/@latest"
VERSION_SEP = "/@v/"

_KINDS = {k.value: k for k in ArtifactKind}


def _suffixed(s: str, suffix: str) -> Optional[str]:
    if s.endswith(suffix):
        return s[: -len(suffix)]
    return None


def _match_list(rest: str) -> Optional[Endpoint]:
    mod = _suffixed(rest, LIST_SUFFIX)
    if mod is None:
        return None
    return ListVersions(module=unescape_path(mod))


def _match_latest(rest: str) -> Optional[Endpoint]:
    mod = _suffixed(rest, LATEST_SUFFIX)
    if mod is None:
        return None
    return Latest(module=unescape_path(mod))


def _match_artifact(rest: str) -> Optional[Endpoint]:
    base, dot, ext = rest.rpartition(".")
    if not dot or ext not in _KINDS:
        return None
    mod, sep, version = base.partition(VERSION_SEP)
    if not sep:
        return None
    return Artifact(module=unescape_path(mod), version_query=unescape_version(version), kind=_KINDS[ext])


RULES: List[Tuple[str, Callable[[str], Optional[Endpoint]]]] = [
    ("list", _match_list),
    ("latest", _match_latest),
    ("artifact", _match_artifact),
]


def route(request_path: str, mount_prefix: str = DEFAULT_MOUNT_PREFIX) -> Endpoint:
    """
    Parse ``request_path`` into an endpoint.

    Raises ``NotFoundError`` when the path is outside the mount prefix and
    ``BadRequestError`` when no rule matches or an identifier fails to
    unescape.
    """
    if not request_path.startswith(mount_prefix):
        raise NotFoundError("not found", path=request_path)
    rest = request_path[len(mount_prefix) :]
    for _name, match in RULES:
        endpoint = match(rest)
        if endpoint is not None:
            return endpoint
    raise BadRequestError("bad request", path=request_path)
