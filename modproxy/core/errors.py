from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from modproxy.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass(eq=False)
class ProxyError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.user_message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


# ---- Request classes ----
class BadRequestError(ProxyError):
    def __init__(self, user_message: str = "bad request", **ctx: Any):
        super().__init__("bad_request", user_message, severity=Severity.INFO, recoverable=False, context=ctx)


class NotFoundError(ProxyError):
    def __init__(self, user_message: str = "not found", **ctx: Any):
        super().__init__("not_found", user_message, severity=Severity.INFO, recoverable=False, context=ctx)


class ResolutionError(ProxyError):
    def __init__(self, user_message: str = "module resolution failed", **ctx: Any):
        super().__init__("resolution_failed", user_message, severity=Severity.WARN, recoverable=False, context=ctx)


class ArtifactStreamError(ProxyError):
    def __init__(self, user_message: str = "artifact unavailable", **ctx: Any):
        super().__init__("artifact_stream_error", user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


# ---- Process classes ----
class ConfigError(ProxyError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


STATUS_BY_CODE: Dict[str, int] = {
    "bad_request": 400,
    "not_found": 404,
    "resolution_failed": 404,
    "artifact_stream_error": 500,
    "config_error": 500,
}
