"""Continuous monitoring session for sysmon."""

import logging
import threading
from datetime import datetime, timezone

from sysmon.collector import SystemCollector
from sysmon.errors import MonitoringAlreadyStarted, MonitoringNotStarted
from sysmon.models import MonitoringState, MonitoringStatus, SystemMetrics

logger = logging.getLogger(__name__)

MIN_INTERVAL = 0.1


class MonitoringController:
    """
    Process-wide monitoring session that samples the host in the background.

    The session is either stopped or running. While running, a daemon thread
    calls ``collect_metrics`` every ``interval`` seconds. A single lock guards
    every transition and every write the sampler makes, so concurrent
    ``start``/``stop`` calls see one winner and never a half-updated session.
    """

    def __init__(self, collector: SystemCollector, interval: float = 5.0) -> None:
        """
        Initialize the MonitoringController.

        Args:
            collector: Source of the sampled metrics.
            interval: Seconds between samples. Default 5.0s.
        """
        self._collector = collector
        self._interval = max(MIN_INTERVAL, interval)
        self._lock = threading.Lock()
        self._state = MonitoringState.STOPPED
        self._stop_event: threading.Event | None = None
        self._thread: threading.Thread | None = None
        self._started_at: datetime | None = None
        self._last_sample_at: datetime | None = None
        self._sample_count = 0
        self._latest: SystemMetrics | None = None

    @property
    def interval(self) -> float:
        """Get the sampling interval."""
        return self._interval

    @interval.setter
    def interval(self, value: float) -> None:
        """Set the sampling interval; takes effect after the current wait."""
        with self._lock:
            self._interval = max(MIN_INTERVAL, value)  # Minimum 0.1 seconds

    @property
    def is_running(self) -> bool:
        """Check if a monitoring session is active."""
        with self._lock:
            return self._state is MonitoringState.RUNNING

    def start(self) -> MonitoringStatus:
        """
        Start a monitoring session.

        Raises:
            MonitoringAlreadyStarted: If a session is already running.
        """
        with self._lock:
            if self._state is MonitoringState.RUNNING:
                raise MonitoringAlreadyStarted("Monitoring is already active")

            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._sample_loop,
                args=(stop_event,),
                daemon=True,
                name="MonitoringSampler",
            )
            self._state = MonitoringState.RUNNING
            self._stop_event = stop_event
            self._thread = thread
            self._started_at = datetime.now(timezone.utc)
            self._last_sample_at = None
            self._sample_count = 0
            thread.start()
            logger.info("Monitoring started (interval %.1fs)", self._interval)
            return self._status_locked()

    def stop(self, timeout: float | None = 5.0) -> MonitoringStatus:
        """
        Stop the monitoring session.

        Args:
            timeout: How long to wait for the sampler thread to exit (seconds).

        Raises:
            MonitoringNotStarted: If no session is running.
        """
        with self._lock:
            if self._state is MonitoringState.STOPPED:
                raise MonitoringNotStarted("Monitoring is not active")

            self._state = MonitoringState.STOPPED
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None
            stop_event.set()
            status = self._status_locked()

        # Joined outside the lock: the sampler takes the lock to record samples.
        if thread is not threading.current_thread():
            thread.join(timeout=timeout)
        logger.info("Monitoring stopped after %d samples", status.sample_count)
        return status

    def status(self) -> MonitoringStatus:
        """Get the current session state."""
        with self._lock:
            return self._status_locked()

    def latest_metrics(self) -> SystemMetrics | None:
        """Get the most recent sample of the current or last session."""
        with self._lock:
            return self._latest

    def _status_locked(self) -> MonitoringStatus:
        return MonitoringStatus(
            state=self._state,
            interval=self._interval,
            started_at=self._started_at,
            last_sample_at=self._last_sample_at,
            sample_count=self._sample_count,
        )

    def _sample_loop(self, stop_event: threading.Event) -> None:
        """Main sampling loop running in the background thread."""
        while not stop_event.is_set():
            try:
                metrics = self._collector.collect_metrics()
            except Exception:
                # A failed tick never ends the session
                logger.exception("Monitoring sample failed")
            else:
                with self._lock:
                    if self._stop_event is stop_event:
                        self._latest = metrics
                        self._last_sample_at = metrics.timestamp
                        self._sample_count += 1

            # Wait for interval seconds or until stop is requested
            stop_event.wait(timeout=self._interval)
