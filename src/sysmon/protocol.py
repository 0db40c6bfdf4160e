"""JSON-RPC 2.0 / MCP message dispatch.

A message carrying an ``id`` member (any value, including ``0`` and ``null``)
is a request and gets exactly one response. A message without one is a
notification: it is executed, but nothing is sent back.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any

from sysmon import __version__
from sysmon.errors import (
    InternalError,
    InvalidParams,
    InvalidRequest,
    MethodNotFound,
    MonitorError,
    ParseError,
)
from sysmon.tools import LEGACY_METHODS, ToolRegistry

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"
DEFAULT_PROTOCOL_VERSION = "2025-11-25"
SERVER_NAME = "sysmon-mcp"

NOTIFICATION_METHODS = frozenset({"initialized", "notifications/initialized"})


@dataclass(slots=True, frozen=True)
class RequestId:
    """The ``id`` member of a request; its presence is what matters."""

    value: str | int | float | None


@dataclass(slots=True, frozen=True)
class RpcRequest:
    method: str
    params: dict[str, Any] | list[Any] | None = None
    id: RequestId | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None


def parse_request(body: bytes | str) -> RpcRequest:
    """
    Parse and validate one JSON-RPC message.

    Raises:
        ParseError: If the body is not valid JSON.
        InvalidRequest: If the JSON is not a well-formed request object.
    """
    try:
        message = json.loads(body)
    except ValueError as exc:  # Includes UnicodeDecodeError
        logger.debug("Rejected unparseable body: %s", exc)
        raise ParseError() from exc

    if not isinstance(message, dict):
        raise InvalidRequest("Request must be a JSON object")

    if message.get("jsonrpc", JSONRPC_VERSION) != JSONRPC_VERSION:
        raise InvalidRequest("Unsupported jsonrpc version")

    request_id = None
    if "id" in message:
        raw_id = message["id"]
        if isinstance(raw_id, bool) or not isinstance(raw_id, (str, int, float, type(None))):
            raise InvalidRequest("Request id must be a string, number or null")
        request_id = RequestId(raw_id)

    method = message.get("method")
    if not isinstance(method, str) or not method:
        raise _invalid_with_id("Request method must be a non-empty string", request_id)

    params = message.get("params")
    if params is not None and not isinstance(params, (dict, list)):
        raise _invalid_with_id("Request params must be an object or array", request_id)

    return RpcRequest(method=method, params=params, id=request_id)


def _invalid_with_id(message: str, request_id: RequestId | None) -> InvalidRequest:
    error = InvalidRequest(message)
    error.request_id = request_id
    return error


def success_response(request_id: RequestId | None, result: Any) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id.value if request_id is not None else None,
        "result": result,
        "error": None,
    }


def error_response(request_id: RequestId | None, error: MonitorError) -> dict[str, Any]:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id.value if request_id is not None else None,
        "result": None,
        "error": error.to_rpc_error(),
    }


class Dispatcher:
    """
    Routes JSON-RPC messages to the tool registry.

    The dispatcher holds no per-connection state; ``initialize`` may arrive at
    any point, any number of times.
    """

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry
        self._methods = {
            "initialize": self._initialize,
            "ping": lambda params: {},
            "tools/list": self._tools_list,
            "tools/call": self._tools_call,
        }

    def handle_raw(self, body: bytes | str) -> str | None:
        """Handle a raw message body; returns the serialized response or None."""
        try:
            request = parse_request(body)
        except MonitorError as exc:
            return json.dumps(error_response(getattr(exc, "request_id", None), exc))

        response = self.handle(request)
        return json.dumps(response) if response is not None else None

    def handle(self, request: RpcRequest) -> dict[str, Any] | None:
        """Handle a parsed message; notifications return None."""
        logger.debug("Dispatching %s (id=%s)", request.method, request.id)
        try:
            result = self._dispatch(request)
        except MonitorError as exc:
            if request.is_notification:
                logger.warning("Notification %s failed: %s", request.method, exc.message)
                return None
            return error_response(request.id, exc)
        except Exception:
            logger.exception("Unhandled error while processing %s", request.method)
            if request.is_notification:
                return None
            return error_response(request.id, InternalError())

        if request.is_notification:
            return None
        return success_response(request.id, result)

    def _dispatch(self, request: RpcRequest) -> Any:
        if request.method in NOTIFICATION_METHODS:
            logger.info("Client initialized")
            return {}

        handler = self._methods.get(request.method)
        if handler is not None:
            return handler(request.params)

        tool_name = LEGACY_METHODS.get(request.method)
        if tool_name is not None:
            return self._registry.invoke(tool_name, _object_params(request.params))

        raise MethodNotFound(f"Method not found: {request.method}")

    def _initialize(self, params: Any) -> dict[str, Any]:
        params = _object_params(params)
        requested = params.get("protocolVersion")
        client = params.get("clientInfo") or {}
        if isinstance(client, dict) and client.get("name"):
            logger.info("Initializing session for %s", client.get("name"))
        return {
            "protocolVersion": requested if isinstance(requested, str) else DEFAULT_PROTOCOL_VERSION,
            "capabilities": {"tools": {}},
            "serverInfo": {"name": SERVER_NAME, "version": __version__},
        }

    def _tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": [descriptor.to_dict() for descriptor in self._registry.list()]}

    def _tools_call(self, params: Any) -> dict[str, Any]:
        params = _object_params(params)
        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParams("Missing tool name")
        arguments = params.get("arguments")
        if arguments is not None and not isinstance(arguments, dict):
            raise InvalidParams("Tool arguments must be an object")

        logger.info("Calling tool %s", name)
        payload = self._registry.invoke(name, arguments)
        return {"content": [{"type": "text", "text": json.dumps(payload, indent=2)}]}


def _object_params(params: Any) -> dict[str, Any]:
    if params is None:
        return {}
    if not isinstance(params, dict):
        raise InvalidParams("Params must be an object")
    return params
