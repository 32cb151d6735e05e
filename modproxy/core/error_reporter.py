from __future__ import annotations

import os
import threading
import traceback
from dataclasses import dataclass
from typing import Any, Dict, Optional

from modproxy.core.errors import ProxyError
from modproxy.core.events import append_jsonl, redact, scrub, utc_stamp


@dataclass
class ErrorReporterConfig:
    include_tracebacks: bool = False


class ErrorReporter:
    """
    Error log (JSONL).  Each entry carries the request's trace id, the error
    code and the HTTP status it was answered with; context is redacted and
    tracebacks are only written when enabled.
    """

    def __init__(self, *, path: str = os.path.join("logs", "errors.jsonl"), cfg: Optional[ErrorReporterConfig] = None):
        self.path = path
        self.cfg = cfg or ErrorReporterConfig()
        self._lock = threading.Lock()
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)

    def write_error(self, err: ProxyError, *, trace_id: str, subsystem: str, internal_exc: Optional[BaseException] = None) -> None:
        d = err.to_dict()
        entry: Dict[str, Any] = {
            "ts": utc_stamp(),
            "trace_id": trace_id,
            "subsystem": subsystem,
            "error_code": d["code"],
            "status": err.status_code,
            "severity": d["severity"],
            "recoverable": d["recoverable"],
            "user_message": scrub(d["user_message"]),
            "safe_context": d["context"],
        }
        if self.cfg.include_tracebacks and internal_exc is not None:
            tb = traceback.format_exception(type(internal_exc), internal_exc, internal_exc.__traceback__, limit=30)
            entry["internal_context"] = {"traceback": scrub("".join(tb))}
        append_jsonl(self.path, entry, self._lock)


def normalize_exception(exc: BaseException, *, context: Dict[str, Any]) -> ProxyError:
    """A ProxyError passes through; anything else becomes a generic internal error."""
    if isinstance(exc, ProxyError):
        return exc
    # The client only learns that something failed.
    return ProxyError(code="internal_error", user_message="internal server error", context=redact(dict(context or {})))
