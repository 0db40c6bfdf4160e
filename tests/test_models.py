"""Tests for sysmon data models."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timezone

import pytest

from sysmon.models import (
    MonitoringState,
    MonitoringStatus,
    ProcessInfo,
    percentage,
    to_payload,
)

from conftest import make_metrics


def make_process(**overrides) -> ProcessInfo:
    values = dict(
        pid=123,
        name="test_process",
        command="/usr/bin/test --flag",
        cpu_percent=50.0,
        memory_bytes=1024000,
        memory_percent=25.0,
        status="R",
        start_time=datetime(2026, 1, 1, tzinfo=timezone.utc),
        user="testuser",
        priority=19,
    )
    values.update(overrides)
    return ProcessInfo(**values)


def test_process_info_creation():
    """Test ProcessInfo dataclass creation."""
    process = make_process()

    assert process.pid == 123
    assert process.name == "test_process"
    assert process.user == "testuser"
    assert process.status == "R"
    assert process.cpu_percent == 50.0
    assert process.memory_percent == 25.0
    assert process.memory_bytes == 1024000
    assert process.priority == 19
    assert process.command == "/usr/bin/test --flag"


def test_process_info_is_frozen():
    """Test that ProcessInfo is immutable (frozen)."""
    process = make_process()

    with pytest.raises(FrozenInstanceError):
        process.pid = 999


def test_process_info_uses_slots():
    """Test that ProcessInfo uses __slots__ for memory efficiency."""
    # Slots-based dataclasses don't have __dict__
    assert not hasattr(make_process(), "__dict__")


class TestPercentage:
    """Tests for the percentage helper."""

    def test_rounds_to_two_places(self):
        """Test percentages are rounded to two decimal places."""
        assert percentage(1, 3) == 33.33

    def test_zero_total(self):
        """Test an empty total yields 0.0 instead of dividing by zero."""
        assert percentage(5, 0) == 0.0

    def test_clamped(self):
        """Test percentages are clamped to the 0-100 range."""
        assert percentage(150, 100) == 100.0
        assert percentage(-1, 100) == 0.0


class TestToPayload:
    """Tests for to_payload serialization."""

    def test_datetime_and_optional_fields(self):
        """Test datetimes become ISO strings and absent values stay None."""
        payload = to_payload(make_process(start_time=None, priority=None))

        assert payload["start_time"] is None
        assert payload["priority"] is None

        payload = to_payload(make_process())
        assert payload["start_time"] == "2026-01-01T00:00:00+00:00"

    def test_nested_metrics(self):
        """Test nested records, tuples and lists are converted."""
        payload = to_payload(make_metrics())

        assert payload["system"]["hostname"] == "testhost"
        assert payload["cpu"]["temperature"] is None
        assert payload["cpu"]["load_average"] == [0.5, 0.25, 0.1]
        assert payload["disks"] == []
        assert isinstance(payload["timestamp"], str)

    def test_monitoring_status(self):
        """Test the session state is rendered as its value."""
        status = MonitoringStatus(
            state=MonitoringState.RUNNING,
            interval=5.0,
            started_at=None,
            last_sample_at=None,
            sample_count=0,
        )
        payload = to_payload(status)

        assert payload["state"] == "running"
        assert payload["monitoring_active"] is True
        assert payload["interval"] == 5.0
