"""Shared fixtures for sysmon tests."""

import shutil
import threading
from collections.abc import Sequence
from datetime import datetime, timezone

import pytest

from sysmon.app import create_app
from sysmon.collector import SystemCollector
from sysmon.config import Config
from sysmon.errors import MonitoringNotStarted, SystemCommandFailed
from sysmon.models import (
    CpuInfo,
    MemoryInfo,
    SystemInfo,
    SystemMetrics,
)
from sysmon.monitor import MonitoringController

DF_OUTPUT = """\
Filesystem     Mounted on   Type     Size  Used Avail
/dev/sda1      /            ext4      53G   20G   31G
tmpfs          /dev/shm     tmpfs    4,6G     0  4,6G
/dev/sdb1      /mnt/My Disk ext4     1.1T  500G  600G
/dev/sda1      /            ext4      53G   20G   31G
binfmt_misc    /proc/sys/fs binfmt_misc  -     -     -
"""

PS_OUTPUT = """\
    1 root      0.0  0.1  11234 Ss   1-02:03:04  19 /sbin/init splash
    2 root      0.0  0.0      0 S    1-02:03:04  19 [kthreadd]
  300 alice    12,5  1.5 204800 Rl        05:07  19 /usr/bin/python3 worker.py --fast
  150 bob      12.5  2.0 102400 S      01:02:03  19 /usr/lib/firefox/firefox
   42 root      3.0  0.0   1024 S         bogus   - /usr/sbin/cron -f
"""

requires_ps = pytest.mark.skipif(shutil.which("ps") is None, reason="ps is not installed")
requires_df = pytest.mark.skipif(shutil.which("df") is None, reason="df is not installed")


class FakeRunner:
    """Command runner returning canned df/ps output."""

    def __init__(self, df: str = DF_OUTPUT, ps: str = PS_OUTPUT) -> None:
        self.df = df
        self.ps = ps
        self.calls: list[list[str]] = []

    def __call__(self, args: Sequence[str]) -> str:
        args = list(args)
        self.calls.append(args)
        if args[0] == "df":
            return self.df
        if args[0] == "ps":
            if "-p" in args:
                pid = args[args.index("-p") + 1]
                rows = [row for row in self.ps.splitlines() if row.split()[:1] == [pid]]
                return "".join(row + "\n" for row in rows)
            return self.ps
        raise SystemCommandFailed(f"Unable to run {args[0]}")


def make_metrics() -> SystemMetrics:
    """Build a small, fixed SystemMetrics snapshot."""
    now = datetime.now(timezone.utc)
    return SystemMetrics(
        timestamp=now,
        system=SystemInfo(
            hostname="testhost",
            os_name="Ubuntu",
            os_version="24.04 LTS",
            kernel_version="6.8.0",
            uptime=3600,
            boot_time=now,
        ),
        cpu=CpuInfo(
            name="Test CPU",
            brand="Test CPU",
            frequency_mhz=2400,
            cores=4,
            physical_cores=2,
            usage_percent=12.5,
            temperature=None,
            load_average=(0.5, 0.25, 0.1),
        ),
        memory=MemoryInfo(
            total=16 * 10**9,
            used=8 * 10**9,
            free=4 * 10**9,
            available=8 * 10**9,
            swap_total=0,
            swap_used=0,
            swap_free=0,
            usage_percent=50.0,
            swap_usage_percent=0.0,
        ),
        disks=[],
        networks=[],
        processes=[],
    )


class StubCollector:
    """Collector stand-in that counts samples and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.samples = 0
        self.sampled = threading.Event()

    def collect_metrics(self) -> SystemMetrics:
        self.samples += 1
        self.sampled.set()
        if self.fail:
            raise SystemCommandFailed("Unable to run ps")
        return make_metrics()


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def collector(fake_runner: FakeRunner) -> SystemCollector:
    return SystemCollector(runner=fake_runner)


@pytest.fixture
def controller():
    controller = MonitoringController(StubCollector(), interval=0.1)
    yield controller
    try:
        controller.stop()
    except MonitoringNotStarted:
        pass


@pytest.fixture
def app(collector: SystemCollector):
    app = create_app(Config(sampling_interval=0.1), collector=collector)
    app.config["TESTING"] = True
    yield app
    try:
        app.extensions["sysmon"].controller.stop()
    except MonitoringNotStarted:
        pass


@pytest.fixture
def client(app):
    return app.test_client()
