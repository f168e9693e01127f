"""In-memory alert outbox for friction notifications.

The notifier publishes every alert here and the host application drains
the undelivered ones after each operation. A session runs on a single
thread (one event loop), so no locking is done.
"""
import logging
from collections import deque

from .notifications import ThresholdAlert

logger = logging.getLogger(__name__)


class AlertQueue:
    """Undelivered alerts plus a bounded history of everything published."""

    def __init__(self, max_history: int = 100):
        """
        Args:
            max_history: Alerts kept in history, and the most that can wait
                undelivered before the oldest are dropped.
        """
        self._history: deque[ThresholdAlert] = deque(maxlen=max_history)
        self._pending: deque[ThresholdAlert] = deque(maxlen=max_history)

    def __len__(self) -> int:
        return len(self._pending)

    def publish(self, alert: ThresholdAlert) -> None:
        if len(self._pending) == self._pending.maxlen:
            logger.warning(
                f"[NOTIFY] Outbox full, dropping undelivered alert {self._pending[0].identifier}"
            )
        self._history.append(alert)
        self._pending.append(alert)

    def drain(self) -> list[ThresholdAlert]:
        """Hand over undelivered alerts in the order they were raised."""
        alerts = list(self._pending)
        self._pending.clear()
        return alerts

    def get_history(self, count: int = 50) -> list[ThresholdAlert]:
        """Get recent alerts, newest first."""
        return list(self._history)[-count:][::-1]
