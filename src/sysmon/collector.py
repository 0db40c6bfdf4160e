"""Host data collection for sysmon."""

import logging
import os
import platform
import socket
import subprocess
import time
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from pathlib import Path

import psutil

from sysmon import parsers
from sysmon.errors import PermissionDenied, ProcessNotFound, SystemCommandFailed
from sysmon.models import (
    CpuInfo,
    DiskInfo,
    MemoryInfo,
    NetworkInfo,
    ProcessInfo,
    SystemInfo,
    SystemMetrics,
    percentage,
)

logger = logging.getLogger(__name__)

CommandRunner = Callable[[Sequence[str]], str]

DF_COMMAND = ["df", "-H", "--output=source,target,fstype,size,used,avail"]
PS_COLUMNS = ("pid", "user:32", "pcpu", "pmem", "rss", "stat", "etime", "pri", "args")
# One -o per column; an empty header consumes the rest of a comma list.
PS_FORMAT = [arg for column in PS_COLUMNS for arg in ("-o", f"{column}=")]
CPUINFO_PATH = Path("/proc/cpuinfo")
# Largest pid ps accepts; anything outside 1..MAX_PID cannot name a process.
MAX_PID = 2**31 - 1

# Sensor groups in the order they are most likely to describe the CPU package.
CPU_SENSORS = ("coretemp", "k10temp", "zenpower", "cpu_thermal", "cpu-thermal", "acpitz")


def run_command(args: Sequence[str]) -> str:
    """
    Run an OS utility and return its standard output.

    Output is forced to the C locale; the parsers still accept localized
    numbers for utilities that ignore it.

    Raises:
        SystemCommandFailed: If the utility is missing or fails without output.
    """
    env = {**os.environ, "LC_ALL": "C"}
    try:
        completed = subprocess.run(
            list(args),
            capture_output=True,
            text=True,
            env=env,
            check=False,
        )
    except OSError as exc:
        logger.error("Failed to execute %s: %s", " ".join(args), exc)
        raise SystemCommandFailed(f"Unable to run {args[0]}") from exc

    if completed.returncode != 0 and not completed.stdout.strip() and completed.stderr.strip():
        logger.error(
            "%s exited with %d: %s",
            " ".join(args),
            completed.returncode,
            completed.stderr.strip(),
        )
        raise SystemCommandFailed(f"{args[0]} failed")
    return completed.stdout


@contextmanager
def _host_source(what: str) -> Iterator[None]:
    """Translate psutil and OS failures into domain errors."""
    try:
        yield
    except psutil.AccessDenied as exc:
        logger.warning("Access denied while reading %s: %s", what, exc)
        raise PermissionDenied(f"Insufficient permissions to read {what}") from exc
    except (OSError, psutil.Error) as exc:
        logger.error("Failed to read %s: %s", what, exc)
        raise SystemCommandFailed(f"Unable to read {what}") from exc


class SystemCollector:
    """
    Collects CPU, memory, disk, network and process snapshots from the live host.

    Every call reads the host afresh and returns new immutable records. The
    collector keeps no state between calls, so one instance can serve
    concurrent requests and the monitoring sampler at the same time.
    """

    def __init__(
        self,
        runner: CommandRunner | None = None,
        include_loopback: bool = False,
    ) -> None:
        """
        Initialize the SystemCollector.

        Args:
            runner: Executes ``df``/``ps`` and returns stdout. Defaults to subprocess.
            include_loopback: Whether loopback interfaces are reported.
        """
        self._run = runner or run_command
        self._include_loopback = include_loopback
        # Initialize CPU percent (first call returns 0.0)
        psutil.cpu_percent(interval=None)

    def collect_system(self) -> SystemInfo:
        """Collect host identity and uptime."""
        with _host_source("boot time"):
            boot_timestamp = psutil.boot_time()

        os_name, os_version = _os_release()
        return SystemInfo(
            hostname=socket.gethostname(),
            os_name=os_name,
            os_version=os_version,
            kernel_version=platform.release(),
            uptime=max(int(time.time() - boot_timestamp), 0),
            boot_time=datetime.fromtimestamp(boot_timestamp, tz=timezone.utc),
        )

    def collect_cpu(self) -> CpuInfo:
        """Collect CPU identity, usage and (when available) temperature."""
        with _host_source("CPU statistics"):
            usage = psutil.cpu_percent(interval=None)
            cores = psutil.cpu_count(logical=True) or 1
            physical_cores = psutil.cpu_count(logical=False)

        name = _cpu_model()
        return CpuInfo(
            name=name,
            brand=name,
            frequency_mhz=_cpu_frequency(),
            cores=cores,
            physical_cores=physical_cores,
            usage_percent=min(max(float(usage), 0.0), 100.0),
            temperature=_cpu_temperature(),
            load_average=_load_average(),
        )

    def collect_memory(self) -> MemoryInfo:
        """Collect RAM and swap usage."""
        with _host_source("memory statistics"):
            mem = psutil.virtual_memory()
            swap = psutil.swap_memory()

        used = max(mem.total - mem.available, 0)
        free = min(mem.free, mem.total - used)
        swap_used = min(swap.used, swap.total)
        return MemoryInfo(
            total=mem.total,
            used=used,
            free=free,
            available=mem.available,
            swap_total=swap.total,
            swap_used=swap_used,
            swap_free=swap.free,
            usage_percent=percentage(used, mem.total),
            swap_usage_percent=percentage(swap_used, swap.total),
        )

    def collect_disks(self) -> list[DiskInfo]:
        """Collect one record per mounted filesystem, as reported by ``df``."""
        output = self._run(DF_COMMAND)
        disks: list[DiskInfo] = []
        seen: set[str] = set()

        for line in output.splitlines()[1:]:  # Skip header
            parts = line.split()
            if len(parts) < 6:
                logger.debug("Skipping short df row: %r", line)
                continue

            source = parts[0]
            mount_point = " ".join(parts[1:-4])
            fstype, size, used, avail = parts[-4:]
            if "-" in (size, used, avail) or mount_point in seen:
                continue

            try:
                total_bytes = parsers.parse_size(size)
                used_bytes = parsers.parse_size(used)
                free_bytes = parsers.parse_size(avail)
            except parsers.ParseError as exc:
                logger.error("Unparseable df row %r: %s", line, exc)
                raise SystemCommandFailed("Unable to parse filesystem usage") from exc

            seen.add(mount_point)
            disks.append(
                DiskInfo(
                    name=source,
                    mount_point=mount_point,
                    file_system=fstype,
                    total=int(total_bytes),
                    used=int(used_bytes),
                    free=int(free_bytes),
                    usage_percent=percentage(used_bytes, total_bytes),
                )
            )

        return disks

    def collect_networks(self) -> list[NetworkInfo]:
        """Collect cumulative counters and addresses for each interface."""
        with _host_source("network statistics"):
            counters = psutil.net_io_counters(pernic=True)
            addresses = psutil.net_if_addrs()

        networks: list[NetworkInfo] = []
        for interface in sorted(counters):
            addrs = addresses.get(interface, [])
            if not self._include_loopback and _is_loopback(interface, addrs):
                continue

            stats = counters[interface]
            networks.append(
                NetworkInfo(
                    interface=interface,
                    ip_address=_first_address(addrs, socket.AF_INET),
                    mac_address=_first_address(addrs, psutil.AF_LINK),
                    bytes_received=stats.bytes_recv,
                    bytes_transmitted=stats.bytes_sent,
                    packets_received=stats.packets_recv,
                    packets_transmitted=stats.packets_sent,
                    errors_received=stats.errin,
                    errors_transmitted=stats.errout,
                )
            )

        return networks

    def collect_processes(self, limit: int | None = None) -> list[ProcessInfo]:
        """
        Collect all running processes, busiest first.

        Records are ordered by CPU usage descending, ties broken by pid
        ascending, then truncated to ``limit`` when one is given.
        """
        output = self._run(["ps", "-e", *PS_FORMAT])
        processes = _parse_process_rows(output)
        if not processes:
            logger.error("ps returned no processes")
            raise SystemCommandFailed("Unable to enumerate processes")

        processes.sort(key=lambda p: (-p.cpu_percent, p.pid))
        return processes[:limit] if limit is not None else processes

    def collect_process(self, pid: int) -> ProcessInfo:
        """
        Collect a single process.

        Raises:
            ProcessNotFound: If no process with that pid exists.
        """
        if not 0 < pid <= MAX_PID:
            raise ProcessNotFound(pid)
        output = self._run(["ps", "-p", str(pid), *PS_FORMAT])
        for process in _parse_process_rows(output):
            if process.pid == pid:
                return process
        raise ProcessNotFound(pid)

    def collect_metrics(self) -> SystemMetrics:
        """Collect every record type into one snapshot."""
        return SystemMetrics(
            timestamp=datetime.now(timezone.utc),
            system=self.collect_system(),
            cpu=self.collect_cpu(),
            memory=self.collect_memory(),
            disks=self.collect_disks(),
            networks=self.collect_networks(),
            processes=self.collect_processes(),
        )


def _parse_process_rows(output: str) -> list[ProcessInfo]:
    """Build ProcessInfo records from header-less ``ps`` output."""
    now = datetime.now(timezone.utc)
    processes: list[ProcessInfo] = []

    for line in output.splitlines():
        if not line.strip():
            continue

        parts = line.split(None, 8)
        if len(parts) < 8:
            logger.error("Malformed ps row: %r", line)
            raise SystemCommandFailed("Unable to parse process listing")

        pid, user, pcpu, pmem, rss, stat, etime, pri = parts[:8]
        command = parts[8].strip() if len(parts) > 8 else ""
        try:
            process_id = int(pid)
            cpu_percent = parsers.parse_decimal(pcpu)
            memory_percent = parsers.parse_decimal(pmem)
            memory_bytes = int(rss) * 1024  # KiB to bytes
        except ValueError as exc:
            logger.error("Unparseable ps row %r: %s", line, exc)
            raise SystemCommandFailed("Unable to parse process listing") from exc

        processes.append(
            ProcessInfo(
                pid=process_id,
                name=_process_name(command),
                command=command,
                cpu_percent=cpu_percent,
                memory_bytes=memory_bytes,
                memory_percent=memory_percent,
                status=stat,
                start_time=_start_time(etime, now),
                user=user,
                priority=_optional_int(pri),
            )
        )

    return processes


def _process_name(command: str) -> str:
    if not command:
        return ""
    if command.startswith("[") and command.endswith("]"):
        return command[1:-1]  # Kernel thread
    return os.path.basename(command.split()[0])


def _start_time(etime: str, now: datetime) -> datetime | None:
    try:
        return now - timedelta(seconds=parsers.parse_elapsed(etime))
    except parsers.ParseError:
        logger.debug("Unparseable elapsed time %r", etime)
        return None


def _optional_int(value: str) -> int | None:
    try:
        return int(value)
    except ValueError:
        return None


def _os_release() -> tuple[str, str]:
    try:
        release = platform.freedesktop_os_release()
    except OSError:
        return platform.system(), platform.version()
    return (
        release.get("NAME", platform.system()),
        release.get("VERSION", release.get("VERSION_ID", "Unknown")),
    )


def _cpu_model() -> str:
    try:
        cpuinfo = CPUINFO_PATH.read_text(encoding="utf-8", errors="replace")
    except OSError:
        cpuinfo = ""

    for key in ("model name", "Hardware", "Processor"):
        model = parsers.parse_key_value(cpuinfo, key)
        if model:
            return model
    return platform.processor() or platform.machine() or "Unknown CPU"


def _cpu_frequency() -> int | None:
    try:
        freq = psutil.cpu_freq()
    except (OSError, NotImplementedError, RuntimeError) as exc:
        logger.debug("CPU frequency unavailable: %s", exc)
        return None
    if freq is None or not freq.current:
        return None
    return int(round(freq.current))


def _cpu_temperature() -> float | None:
    read_sensors = getattr(psutil, "sensors_temperatures", None)
    if read_sensors is None:
        return None
    try:
        sensors = read_sensors()
    except (OSError, RuntimeError) as exc:
        logger.debug("Temperature sensors unavailable: %s", exc)
        return None

    for group in CPU_SENSORS:
        if sensors.get(group):
            return round(sensors[group][0].current, 1)
    for entries in sensors.values():
        if entries:
            return round(entries[0].current, 1)
    return None


def _load_average() -> tuple[float, float, float] | None:
    try:
        one, five, fifteen = psutil.getloadavg()
    except (OSError, AttributeError):
        return None
    return (round(one, 2), round(five, 2), round(fifteen, 2))


def _first_address(addrs: list, family: int) -> str | None:
    for addr in addrs:
        if addr.family == family and addr.address:
            return addr.address
    return None


def _is_loopback(interface: str, addrs: list) -> bool:
    if interface in ("lo", "lo0"):
        return True
    ipv4 = _first_address(addrs, socket.AF_INET)
    return ipv4 is not None and ipv4.startswith("127.")
