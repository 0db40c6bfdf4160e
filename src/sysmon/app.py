"""sysmon - HTTP application: MCP endpoint and REST facade."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from sysmon import __version__
from sysmon.collector import SystemCollector
from sysmon.config import Config
from sysmon.errors import InternalError, InvalidParams, InvalidRequest, MethodNotFound, MonitorError
from sysmon.models import to_payload
from sysmon.monitor import MonitoringController
from sysmon.protocol import Dispatcher
from sysmon.tools import ToolRegistry

logger = logging.getLogger(__name__)

SERVICE_NAME = "MCP System Monitor"

api = Blueprint("sysmon", __name__)


@dataclass(slots=True)
class Services:
    """Collaborators shared by every request of one application."""

    collector: SystemCollector
    controller: MonitoringController
    registry: ToolRegistry
    dispatcher: Dispatcher


def create_app(
    config: Config | None = None,
    collector: SystemCollector | None = None,
    controller: MonitoringController | None = None,
) -> Flask:
    """
    Build the Flask application.

    Args:
        config: Server configuration; defaults are used when omitted.
        collector: Host data source (built from config when omitted).
        controller: Monitoring session (built from config when omitted).
    """
    config = config or Config()
    collector = collector or SystemCollector(include_loopback=config.include_loopback)
    controller = controller or MonitoringController(collector, interval=config.sampling_interval)
    registry = ToolRegistry(collector, controller)

    app = Flask(__name__)
    app.json.sort_keys = False
    app.extensions["sysmon"] = Services(
        collector=collector,
        controller=controller,
        registry=registry,
        dispatcher=Dispatcher(registry),
    )
    CORS(app, origins=config.cors_origins)
    app.register_blueprint(api)
    app.register_error_handler(MonitorError, _handle_monitor_error)
    app.register_error_handler(HTTPException, _handle_http_error)
    app.register_error_handler(Exception, _handle_unexpected_error)
    return app


def _services() -> Services:
    return current_app.extensions["sysmon"]


def _handle_monitor_error(error: MonitorError) -> tuple[Response, int]:
    logger.info("%s %s -> %d %s", request.method, request.path, error.http_status, error.message)
    return _error_body(error.code, error.message), error.http_status


def _handle_http_error(error: HTTPException) -> Response:
    """Render routing and other werkzeug errors in the JSON error shape."""
    status = error.code or 500
    if status in (404, 405):
        code = MethodNotFound.code
    elif status >= 500:
        code = InternalError.code
    else:
        code = InvalidRequest.code
    response = error.get_response()
    response.data = _error_body(code, error.name).get_data()
    response.content_type = "application/json"
    return response


def _handle_unexpected_error(error: Exception) -> tuple[Response, int]:
    logger.exception("Unhandled error on %s %s", request.method, request.path)
    internal = InternalError()
    return _error_body(internal.code, internal.message), internal.http_status


def _error_body(code: int, message: str) -> Response:
    return jsonify({"error": {"code": code, "message": message}})


@api.post("/")
def mcp_endpoint() -> Response:
    """JSON-RPC over HTTP; notifications are acknowledged with an empty 202."""
    body = _services().dispatcher.handle_raw(request.get_data())
    if body is None:
        return Response(status=202)
    return Response(body, status=200, mimetype="application/json")


@api.get("/health")
def health() -> Response:
    return jsonify(
        {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


@api.get("/api/system/info")
def system_info() -> Response:
    return jsonify(to_payload(_services().collector.collect_system()))


@api.get("/api/system/cpu")
def cpu_info() -> Response:
    return jsonify(to_payload(_services().collector.collect_cpu()))


@api.get("/api/system/memory")
def memory_info() -> Response:
    return jsonify(to_payload(_services().collector.collect_memory()))


@api.get("/api/system/disks")
def disk_info() -> Response:
    return jsonify(to_payload(_services().collector.collect_disks()))


@api.get("/api/system/networks")
def network_info() -> Response:
    return jsonify(to_payload(_services().collector.collect_networks()))


@api.get("/api/system/processes")
def processes() -> Response:
    limit = request.args.get("limit")
    if limit is not None:
        if not limit.isdigit() or int(limit) < 1:
            raise InvalidParams("limit must be a positive integer")
        limit = int(limit)
    return jsonify(to_payload(_services().collector.collect_processes(limit=limit)))


@api.get("/api/system/processes/<int:pid>")
def process_by_pid(pid: int) -> Response:
    return jsonify(to_payload(_services().collector.collect_process(pid)))


@api.get("/api/system/metrics")
def system_metrics() -> Response:
    return jsonify(to_payload(_services().collector.collect_metrics()))


@api.post("/api/monitoring/start")
def start_monitoring() -> Response:
    return jsonify(to_payload(_services().controller.start()))


@api.post("/api/monitoring/stop")
def stop_monitoring() -> Response:
    return jsonify(to_payload(_services().controller.stop()))


@api.get("/api/monitoring/status")
def monitoring_status() -> Response:
    return jsonify(to_payload(_services().controller.status()))
