"""
Alert recording and delivery.

Alerts are appended to a flat log file, one line per event:

    [2026-10-17 12:00:00] [CRITICAL] Alice (http://10.0.0.1:9944) is not responding!

The file is only ever appended to. Size-based rotation is available through
`max_bytes`/`backup_count`; with `max_bytes=0` the file grows without limit
and retention is left to whatever manages the log directory.

After an event is on disk, each registered hook is called with it. Hooks
are where external notification goes (see WebhookNotifier). A failing hook
is logged and skipped; it never prevents recording or stops the pass.
"""

import logging
import logging.handlers
import os
import threading
from typing import Callable, List, Optional

import requests

from fleet_monitor.models import AlertEvent, Severity

logger = logging.getLogger(__name__)

AlertHook = Callable[[AlertEvent], None]


class AlertSink:
    """Append-only alert log, safe for concurrent writers"""

    def __init__(
        self,
        path: str,
        max_bytes: int = 0,
        backup_count: int = 0,
        hooks: Optional[List[AlertHook]] = None,
    ):
        self.path = path
        self.hooks: List[AlertHook] = list(hooks or [])
        self.lock = threading.Lock()

        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        if max_bytes > 0:
            self.handler = logging.handlers.RotatingFileHandler(
                path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
            )
        else:
            self.handler = logging.FileHandler(path, encoding="utf-8")
        self.handler.setFormatter(logging.Formatter("%(message)s"))

    def add_hook(self, hook: AlertHook):
        self.hooks.append(hook)

    def record(self, event: AlertEvent):
        """Write the event to the alert log, then run delivery hooks."""
        line = event.format_line()
        levelno = logging.CRITICAL if event.level is Severity.CRITICAL else logging.WARNING

        with self.lock:
            self.handler.handle(
                logging.makeLogRecord({"msg": line, "levelno": levelno, "levelname": event.level.value})
            )

        logger.log(levelno, event.message)

        for hook in self.hooks:
            try:
                hook(event)
            except Exception:
                logger.exception(f"Alert hook {hook!r} failed for: {event.message}")

    def alert(self, level: Severity, message: str) -> AlertEvent:
        event = AlertEvent(level=level, message=message)
        self.record(event)
        return event

    def close(self):
        with self.lock:
            self.handler.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()


class WebhookNotifier:
    """
    Posts each alert to a chat webhook.

    The payload is Slack-compatible: {"text": "[LEVEL] label: message"}.
    Non-2xx answers raise, which AlertSink logs.
    """

    def __init__(self, url: str, label: str = "fleet-monitor", timeout: float = 10.0, session=None):
        self.url = url
        self.label = label
        self.timeout = timeout
        self.session = session or requests.Session()

    def __call__(self, event: AlertEvent):
        payload = {"text": f"[{event.level.value}] {self.label}: {event.message}"}
        response = self.session.post(self.url, json=payload, timeout=self.timeout)
        response.raise_for_status()

    def __repr__(self):
        return f"WebhookNotifier({self.url!r})"
