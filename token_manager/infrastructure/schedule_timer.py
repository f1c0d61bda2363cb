"""Recurring task timer built on the `schedule` library.

A private schedule.Scheduler is polled by one daemon thread. Registrations
return a handle whose cancel() removes the job, so nothing registered here
runs after cancellation.
"""

import threading
from typing import Callable, Optional

import schedule as schedule_lib
from loguru import logger

from token_manager.core.constants import TIMER_POLL_INTERVAL_SECONDS


class ScheduledJobHandle:
    """Cancellable handle for one registered job."""

    def __init__(self, timer: "ScheduleTimer", job: schedule_lib.Job):
        self._timer = timer
        self._job = job
        self.cancelled = False

    @property
    def next_run(self):
        """Next trigger as a naive local datetime, None once cancelled."""
        return None if self.cancelled else self._job.next_run

    def cancel(self) -> None:
        if self.cancelled:
            return
        self.cancelled = True
        self._timer.cancel(self._job)


class ScheduleTimer:
    """Daily wall-clock trigger, e.g. "02:00" local time.

    Example:
        ```python
        timer = ScheduleTimer()
        handle = timer.schedule("02:00", sweep)
        ...
        handle.cancel()
        timer.shutdown()
        ```
    """

    def __init__(self, poll_interval: float = TIMER_POLL_INTERVAL_SECONDS):
        """Initialize the timer.

        Args:
            poll_interval: Seconds between checks for due jobs
        """
        self.poll_interval = poll_interval
        self._scheduler = schedule_lib.Scheduler()
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def schedule(self, spec: str, callback: Callable[[], None]) -> ScheduledJobHandle:
        """Run callback every day at the given local time.

        Args:
            spec: "HH:MM" local time
            callback: Function to call on every trigger

        Returns:
            ScheduledJobHandle
        """
        with self._lock:
            job = self._scheduler.every().day.at(spec).do(self._invoke, callback)
            self._ensure_thread()

        logger.debug(f"Registered daily job at {spec}, next run {job.next_run}")
        return ScheduledJobHandle(self, job)

    def cancel(self, job: schedule_lib.Job) -> None:
        """Remove a job; stops polling once no jobs remain."""
        with self._lock:
            self._scheduler.cancel_job(job)
            if not self._scheduler.get_jobs():
                self._stop_event.set()
        logger.debug("Cancelled scheduled job")

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Cancel all jobs and stop the polling thread."""
        with self._lock:
            self._scheduler.clear()
            self._stop_event.set()
            thread = self._thread

        if thread and thread.is_alive() and thread is not threading.current_thread():
            thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _ensure_thread(self) -> None:
        thread = self._thread
        if thread is not None and thread.is_alive():
            if not self._stop_event.is_set():
                return
            # A previous cancel() is winding the loop down
            if thread is threading.current_thread():
                self._stop_event.clear()
                return
            thread.join()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="schedule-timer",
            daemon=True,
        )
        self._thread.start()

    def _run_loop(self) -> None:
        while not self._stop_event.wait(self.poll_interval):
            self._scheduler.run_pending()

    @staticmethod
    def _invoke(callback: Callable[[], None]) -> None:
        try:
            callback()
        except Exception:
            # Keep the polling thread alive for the next trigger
            logger.exception("Scheduled job raised an exception")
