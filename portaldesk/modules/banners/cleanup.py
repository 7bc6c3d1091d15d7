"""
Expired Queue Cleanup
=====================

Purges queue entries whose end time has passed. Runs on demand from the
admin API and optionally on a timer. Selection never calls it.
"""

import logging
import threading

from .models import utcnow

logger = logging.getLogger(__name__)


def cleanup_expired(store, now=None):
    """
    Delete expired entries from a ScheduleStore.
    Returns how many were removed; a second run with no new writes removes 0.
    """
    now = now or utcnow()
    removed = store.delete_expired(now)
    if removed:
        logger.info(f"Removed {removed} expired banner queue entries")
    return removed


class CleanupScheduler:
    """
    Re-arming timer that calls ``job()`` inside the app context every
    ``interval`` seconds. Failures are logged and the timer keeps going.
    """

    def __init__(self, app, job, interval):
        self.app = app
        self.job = job
        self.interval = interval
        self._timer = None
        self._lock = threading.Lock()
        self._stopped = True

    @property
    def running(self):
        return not self._stopped

    def start(self):
        if self.interval <= 0:
            return False
        with self._lock:
            if not self._stopped:
                return True
            self._stopped = False
            self._schedule()
        logger.info(f"Banner cleanup timer started (every {self.interval}s)")
        return True

    def stop(self):
        with self._lock:
            self._stopped = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self):
        self._timer = threading.Timer(self.interval, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self):
        with self.app.app_context():
            try:
                self.job()
            except Exception as e:
                logger.error(f"Scheduled banner cleanup failed: {e}")
        with self._lock:
            if not self._stopped:
                self._schedule()
