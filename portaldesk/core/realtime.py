"""
Change Notification
===================

In-process publish/subscribe for table changes. Writers publish
``(table, action, record_id)`` after a successful commit; readers subscribe
per table and refetch whatever they cache. Any transport (webhook, polling)
can sit behind the same contract, see ``WebhookRelay``.
"""

import logging
import queue
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone

import requests

logger = logging.getLogger(__name__)

ALL_TABLES = '*'


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    action: str
    record_id: str = None
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self):
        return {
            'table': self.table,
            'action': self.action,
            'record_id': self.record_id,
            'occurred_at': self.occurred_at.isoformat(),
        }


class ChangeHub:
    """Observer registry keyed by table name ('*' receives every table)."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers = {}

    def subscribe(self, table, callback):
        """Register callback(event) for a table. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.setdefault(table, []).append(callback)

        def unsubscribe():
            with self._lock:
                callbacks = self._subscribers.get(table, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def publish(self, table, action, record_id=None):
        """Deliver a change event to every subscriber of the table."""
        event = ChangeEvent(table=table, action=action,
                            record_id=str(record_id) if record_id is not None else None)

        with self._lock:
            callbacks = list(self._subscribers.get(table, [])) + list(self._subscribers.get(ALL_TABLES, []))

        for callback in callbacks:
            try:
                callback(event)
            except Exception as e:
                # a failing subscriber does not stop delivery to the rest
                logger.error(f"Change subscriber failed for {table}/{action}: {e}")
        return event

    def subscriber_count(self, table):
        with self._lock:
            return len(self._subscribers.get(table, []))


class WebhookRelay:
    """
    Forwards change events to external listeners (edge caches, the public site)
    as JSON POSTs. Best effort: failures are logged, never raised.

    With ``background=True`` events are queued and posted by a single daemon
    thread, so a slow listener never holds up the admin write that published
    the event. ``wait()`` blocks until the queue is drained.
    """

    def __init__(self, urls, timeout=5, session=None, background=True):
        self.urls = list(urls or [])
        self.timeout = timeout
        self.session = session or requests.Session()
        self.background = background
        self._queue = queue.Queue()
        self._worker = None
        self._worker_lock = threading.Lock()

    def __call__(self, event):
        payload = event.to_dict()
        if not self.background:
            self._deliver(payload)
            return
        self._ensure_worker()
        self._queue.put(payload)

    def attach(self, hub):
        """Subscribe this relay to every table on the hub."""
        if not self.urls:
            return None
        return hub.subscribe(ALL_TABLES, self)

    def wait(self):
        self._queue.join()

    def _deliver(self, payload):
        for url in self.urls:
            try:
                resp = self.session.post(url, json=payload, timeout=self.timeout)
                resp.raise_for_status()
            except requests.RequestException as e:
                logger.warning(f"Webhook relay to {url} failed: {e}")

    def _ensure_worker(self):
        with self._worker_lock:
            if self._worker is None or not self._worker.is_alive():
                self._worker = threading.Thread(target=self._drain, name='webhook-relay', daemon=True)
                self._worker.start()

    def _drain(self):
        while True:
            payload = self._queue.get()
            try:
                self._deliver(payload)
            except Exception as e:
                logger.error(f"Webhook relay worker error: {e}")
            finally:
                self._queue.task_done()
