"""
Daily Threshold Notification Engine.

Decides when to alert as today's weighted friction approaches the global
daily limit (75%, 90%, 100%) and when a single item exceeds its own daily
encounter limit. Every alert fires at most once per calendar day.

The decision logic is a pair of pure functions over an immutable
``NotificationState``; ``ThresholdNotifier`` owns the current state and
hands emitted alerts to the alert queue.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import Callable, FrozenSet, List, Optional, Tuple

from .models import AggregateScore, FrictionItem

logger = logging.getLogger(__name__)


class AlertKind(str, Enum):
    """Kinds of friction alerts."""

    APPROACHING_LIMIT = "approaching_limit"
    ALMOST_AT_LIMIT = "almost_at_limit"
    LIMIT_EXCEEDED = "limit_exceeded"
    ITEM_LIMIT_EXCEEDED = "item_limit_exceeded"


@dataclass(frozen=True)
class GlobalThreshold:
    percent: int
    flag: str
    kind: AlertKind
    title: str


# Highest first: one evaluation emits at most the highest newly crossed band.
GLOBAL_THRESHOLDS: Tuple[GlobalThreshold, ...] = (
    GlobalThreshold(100, "crossed_100", AlertKind.LIMIT_EXCEEDED, "Daily Friction Limit Exceeded"),
    GlobalThreshold(90, "crossed_90", AlertKind.ALMOST_AT_LIMIT, "Almost at Daily Limit"),
    GlobalThreshold(75, "crossed_75", AlertKind.APPROACHING_LIMIT, "Approaching Daily Limit"),
)


@dataclass(frozen=True)
class NotificationState:
    """Which alerts have already fired on ``day``."""

    day: Optional[date] = None
    crossed_75: bool = False
    crossed_90: bool = False
    crossed_100: bool = False
    alerted_item_ids: FrozenSet[int] = frozenset()

    def for_day(self, today: date) -> "NotificationState":
        """Return this state, or a cleared one if ``today`` is a new day."""
        if self.day == today:
            return self
        return NotificationState(day=today)


@dataclass
class ThresholdAlert:
    """An alert ready for delivery to the host's notification mechanism."""

    kind: AlertKind
    title: str
    message: str
    score: Optional[int] = None
    limit: Optional[int] = None
    percentage: Optional[int] = None
    subject_id: Optional[int] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def identifier(self) -> str:
        """Delivery key; item alerts are keyed by item so re-posts replace."""
        if self.subject_id is not None:
            return f"{self.kind.value}-{self.subject_id}"
        return self.kind.value

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "identifier": self.identifier,
            "kind": self.kind.value,
            "title": self.title,
            "message": self.message,
            "score": self.score,
            "limit": self.limit,
            "percentage": self.percentage,
            "subject_id": self.subject_id,
            "timestamp": self.timestamp.isoformat(),
        }


def evaluate(
    state: NotificationState,
    today: date,
    score: Optional[AggregateScore],
) -> Tuple[NotificationState, List[ThresholdAlert]]:
    """
    Evaluate the global daily thresholds against a score snapshot.

    Args:
        state: Current notification state
        today: Local calendar date of this evaluation
        score: Freshly fetched aggregate score

    Returns:
        (new state, alerts) with at most one alert
    """
    if score is None or not score.has_limit:
        return state, []

    state = state.for_day(today)
    percentage = score.limit_percentage

    for index, threshold in enumerate(GLOBAL_THRESHOLDS):
        if percentage < threshold.percent or getattr(state, threshold.flag):
            continue

        # Lower bands were passed on the way up; mark them too.
        crossed = {t.flag: True for t in GLOBAL_THRESHOLDS[index:]}
        alert = ThresholdAlert(
            kind=threshold.kind,
            title=threshold.title,
            message=_global_message(threshold, score),
            score=score.weighted_encounters_today,
            limit=score.global_limit,
            percentage=percentage,
        )
        return replace(state, **crossed), [alert]

    return state, []


def evaluate_item(
    state: NotificationState,
    today: date,
    item: FrictionItem,
) -> Tuple[NotificationState, List[ThresholdAlert]]:
    """
    Evaluate one item's daily encounter limit.

    The alert fires once per item per day while the backend reports the
    item as over its limit, and re-arms if the backend later reports it
    back under (limit raised or cleared).
    """
    state = state.for_day(today)

    if not item.is_limit_exceeded:
        if item.id in state.alerted_item_ids:
            return replace(state, alerted_item_ids=state.alerted_item_ids - {item.id}), []
        return state, []

    if item.id in state.alerted_item_ids:
        return state, []

    alert = ThresholdAlert(
        kind=AlertKind.ITEM_LIMIT_EXCEEDED,
        title=f"Limit Exceeded: {item.title}",
        message=(
            f"You've hit \"{item.title}\" {item.encounter_count} times today "
            f"(limit {item.encounter_limit}). Time to fix it?"
        ),
        score=item.encounter_count,
        limit=item.encounter_limit,
        subject_id=item.id,
    )
    return replace(state, alerted_item_ids=state.alerted_item_ids | {item.id}), [alert]


def _global_message(threshold: GlobalThreshold, score: AggregateScore) -> str:
    used = f"{score.weighted_encounters_today}/{score.global_limit}"
    if threshold.kind is AlertKind.LIMIT_EXCEEDED:
        return f"You've exceeded your daily friction limit ({used}, {score.limit_percentage}%)."
    return f"You're at {score.limit_percentage}% of your daily friction limit ({used})."


class ThresholdNotifier:
    """
    Owns today's notification state and publishes emitted alerts.

    State is in-memory only; a new process starts with nothing notified.
    """

    def __init__(
        self,
        sink: Optional[Callable[[ThresholdAlert], None]] = None,
        clock: Callable[[], date] = date.today,
    ):
        """
        Initialize the notifier.

        Args:
            sink: Called with every emitted alert (e.g. ``AlertQueue.publish``)
            clock: Returns the local calendar date
        """
        self._sink = sink
        self._clock = clock
        self._state = NotificationState()

    @property
    def state(self) -> NotificationState:
        return self._state

    def check_item(self, item: FrictionItem) -> List[ThresholdAlert]:
        """Check one item's per-day encounter limit."""
        self._state, alerts = evaluate_item(self._state, self._clock(), item)
        self._emit(alerts)
        return alerts

    def check_score(self, score: Optional[AggregateScore]) -> List[ThresholdAlert]:
        """Check the global daily thresholds."""
        previous_day = self._state.day
        self._state, alerts = evaluate(self._state, self._clock(), score)
        if previous_day is not None and self._state.day != previous_day:
            logger.info(f"[NOTIFY] New day {self._state.day}, thresholds re-armed")
        self._emit(alerts)
        return alerts

    def reset(self) -> None:
        self._state = NotificationState()
        logger.info("[NOTIFY] Notification state reset")

    def _emit(self, alerts: List[ThresholdAlert]) -> None:
        for alert in alerts:
            logger.info(f"[NOTIFY] {alert.kind.value}: {alert.message}")
            if self._sink is not None:
                self._sink(alert)
