"""Tool registry exposed to MCP clients."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from sysmon.collector import SystemCollector
from sysmon.errors import InvalidParams, MethodNotFound
from sysmon.models import to_payload
from sysmon.monitor import MonitoringController

Handler = Callable[[dict[str, Any]], Any]

NO_ARGUMENTS: dict[str, Any] = {"type": "object", "properties": {}}

# Direct JSON-RPC method names accepted alongside tools/call.
LEGACY_METHODS = {
    "getSystemInfo": "get_system_info",
    "getCPUInfo": "get_cpu_info",
    "getMemoryInfo": "get_memory_info",
    "getDiskInfo": "get_disk_info",
    "getNetworkInfo": "get_network_info",
    "getProcesses": "get_processes",
    "getProcessByPID": "get_process_by_pid",
    "getSystemMetrics": "get_system_metrics",
    "startMonitoring": "start_monitoring",
    "stopMonitoring": "stop_monitoring",
}


@dataclass(slots=True, frozen=True)
class ToolDescriptor:
    """Name, description and argument shape of one tool."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=lambda: dict(NO_ARGUMENTS))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


class ToolRegistry:
    """
    Static table of monitoring tools, built once per registry.

    ``invoke`` returns JSON-ready payloads. Domain errors raised by the
    collector or the monitoring controller propagate unchanged.
    """

    def __init__(self, collector: SystemCollector, controller: MonitoringController) -> None:
        self._collector = collector
        self._controller = controller
        entries: list[tuple[ToolDescriptor, Handler]] = [
            (
                ToolDescriptor(
                    "get_system_info",
                    "Get system information (hostname, OS, kernel version, uptime)",
                ),
                lambda args: collector.collect_system(),
            ),
            (
                ToolDescriptor("get_cpu_info", "Get CPU information and usage statistics"),
                lambda args: collector.collect_cpu(),
            ),
            (
                ToolDescriptor("get_memory_info", "Get memory and swap usage information"),
                lambda args: collector.collect_memory(),
            ),
            (
                ToolDescriptor(
                    "get_disk_info",
                    "Get disk usage information for all mounted filesystems",
                ),
                lambda args: collector.collect_disks(),
            ),
            (
                ToolDescriptor(
                    "get_network_info",
                    "Get network interface information and statistics",
                ),
                lambda args: collector.collect_networks(),
            ),
            (
                ToolDescriptor(
                    "get_processes",
                    "Get running processes, sorted by CPU usage",
                    {
                        "type": "object",
                        "properties": {
                            "limit": {
                                "type": "integer",
                                "minimum": 1,
                                "description": "Maximum number of processes to return",
                            }
                        },
                    },
                ),
                self._get_processes,
            ),
            (
                ToolDescriptor(
                    "get_process_by_pid",
                    "Get information about a specific process",
                    {
                        "type": "object",
                        "properties": {
                            "pid": {"type": "integer", "minimum": 1, "description": "Process ID"}
                        },
                        "required": ["pid"],
                    },
                ),
                self._get_process_by_pid,
            ),
            (
                ToolDescriptor("get_system_metrics", "Get comprehensive system metrics"),
                lambda args: collector.collect_metrics(),
            ),
            (
                ToolDescriptor(
                    "start_monitoring",
                    "Start continuous background sampling of system metrics",
                ),
                lambda args: controller.start(),
            ),
            (
                ToolDescriptor("stop_monitoring", "Stop continuous background sampling"),
                lambda args: controller.stop(),
            ),
            (
                ToolDescriptor(
                    "get_monitoring_status",
                    "Get the state of the continuous monitoring session",
                ),
                lambda args: controller.status(),
            ),
        ]
        self._descriptors = [descriptor for descriptor, _ in entries]
        self._handlers = {descriptor.name: handler for descriptor, handler in entries}

    def list(self) -> list[ToolDescriptor]:
        """Return every tool descriptor in registration order."""
        return list(self._descriptors)

    def __contains__(self, name: object) -> bool:
        return name in self._handlers

    def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> Any:
        """
        Run the tool bound to ``name``.

        Raises:
            MethodNotFound: If no tool has that name.
            InvalidParams: If the arguments are not an object or are malformed.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise MethodNotFound(f"Tool not found: {name}")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParams("Tool arguments must be an object")
        return to_payload(handler(arguments))

    def _get_processes(self, arguments: dict[str, Any]) -> Any:
        limit = arguments.get("limit")
        if limit is not None:
            limit = _integer_argument(arguments, "limit", minimum=1)
        return self._collector.collect_processes(limit=limit)

    def _get_process_by_pid(self, arguments: dict[str, Any]) -> Any:
        if "pid" not in arguments:
            raise InvalidParams("Missing PID parameter")
        pid = _integer_argument(arguments, "pid", minimum=1)
        return self._collector.collect_process(pid)


def _integer_argument(arguments: dict[str, Any], name: str, minimum: int) -> int:
    value = arguments.get(name)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
        raise InvalidParams(f"Invalid {name} parameter: expected an integer >= {minimum}")
    return value
