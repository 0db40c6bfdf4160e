"""Error taxonomy shared by the JSON-RPC dispatcher and the REST facade.

Every error carries a JSON-RPC code, the HTTP status used by the REST facade,
and a message that is safe to show to clients. Anything more detailed (OS
paths, command lines, tracebacks) belongs in the server log.
"""

from typing import Any


class MonitorError(Exception):
    """Base class for errors surfaced to clients."""

    code: int = -32603
    http_status: int = 500
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_rpc_error(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "data": None}


class ProtocolError(MonitorError):
    """The message itself is unusable or asks for something unknown."""


class ParseError(ProtocolError):
    code = -32700
    http_status = 400
    default_message = "Parse error"


class InvalidRequest(ProtocolError):
    code = -32600
    http_status = 400
    default_message = "Invalid request"


class MethodNotFound(ProtocolError):
    code = -32601
    http_status = 404
    default_message = "Method not found"


class InvalidParams(ProtocolError):
    code = -32602
    http_status = 400
    default_message = "Invalid params"


class InternalError(ProtocolError):
    code = -32603
    http_status = 500
    default_message = "Internal error"


class DomainError(MonitorError):
    """A well-formed request that the host or session state cannot satisfy."""


class ProcessNotFound(DomainError):
    code = -32001
    http_status = 404
    default_message = "Process not found"

    def __init__(self, pid: int) -> None:
        self.pid = pid
        super().__init__(f"Process with PID {pid} not found")


class MonitoringAlreadyStarted(DomainError):
    code = -32002
    http_status = 409
    default_message = "Monitoring already started"


class MonitoringNotStarted(DomainError):
    code = -32003
    http_status = 409
    default_message = "Monitoring not started"


class SystemCommandFailed(DomainError):
    code = -32004
    http_status = 500
    default_message = "System command failed"


class PermissionDenied(DomainError):
    code = -32005
    http_status = 403
    default_message = "Permission denied"


class ConfigError(ValueError):
    """Raised for unusable configuration files or environment overrides."""
