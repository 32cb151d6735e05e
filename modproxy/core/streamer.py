from __future__ import annotations

import logging
from contextlib import closing
from typing import BinaryIO, Iterator

from modproxy.core.errors import ArtifactStreamError


CHUNK_SIZE = 64 * 1024

_log = logging.getLogger("modproxy.streamer")


def open_artifact(locator: str) -> BinaryIO:
    """Open an artifact for reading; failures surface before any byte is sent."""
    try:
        return open(locator, "rb")
    except OSError as e:
        raise ArtifactStreamError(str(e), artifact=locator) from e


def iter_artifact(handle: BinaryIO, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
    """
    Yield the artifact in chunks.  The handle is closed however iteration
    ends: exhaustion, a read error, or the consumer closing the generator
    (client disconnect).
    """
    try:
        while True:
            try:
                chunk = handle.read(chunk_size)
            except OSError as e:
                _log.error("reading %s: %s", getattr(handle, "name", "artifact"), e)
                raise ArtifactStreamError(str(e), artifact=getattr(handle, "name", "")) from e
            if not chunk:
                return
            yield chunk
    finally:
        handle.close()


def stream(destination: BinaryIO, locator: str, chunk_size: int = CHUNK_SIZE) -> None:
    """Copy the named artifact to ``destination`` through the same open/iterate path the server uses."""
    with closing(iter_artifact(open_artifact(locator), chunk_size)) as chunks:
        for chunk in chunks:
            destination.write(chunk)
