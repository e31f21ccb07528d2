"""Daily insight derivation.

A stateless pass over the unlock sessions and raw events of one date that
produces a sparse set of key/value facts.
"""

import logging
from collections import Counter
from collections.abc import Collection, Iterable, Sequence
from typing import TypeVar
from zoneinfo import ZoneInfo

from usagetrack.events import EventKind, RawEvent, sort_by_time

from .dates import UTC, local_hour, start_of_day_millis
from .models import (
    DailyInsight,
    InsightKey,
    SessionEndReason,
    SessionType,
    UnlockSessionRecord,
)
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds

logger = logging.getLogger(__name__)

T = TypeVar("T")


def most_common(values: Iterable[T]) -> tuple[T, int] | None:
    """Most frequent value; ties go to the value seen first."""
    counts = Counter(values)
    if not counts:
        return None
    # Counter.most_common keeps insertion order among equal counts
    return counts.most_common(1)[0]


def is_meaningful(session: UnlockSessionRecord) -> bool:
    """Intentional, interrupted or not yet typed sessions count as meaningful."""
    return (
        session.session_type is SessionType.INTENTIONAL
        or session.session_end_reason is SessionEndReason.INTERRUPTED
        or session.session_type is None
    )


class InsightGenerator:
    """Generates the daily insight table for one date."""

    def __init__(
        self,
        tz: ZoneInfo = UTC,
        thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
    ) -> None:
        """Initialize insight generator.

        Args:
            tz: Local time zone for hour-of-day and midnight calculations
            thresholds: Provides the night-owl window
        """
        self._tz = tz
        self._thresholds = thresholds

    def derive(
        self,
        date_string: str,
        unlock_sessions: Sequence[UnlockSessionRecord],
        events: Sequence[RawEvent],
        hidden: Collection[str],
    ) -> list[DailyInsight]:
        """Derive insights for a date.

        Args:
            date_string: Date being processed
            unlock_sessions: Reconstructed unlock sessions
            events: Raw events of the date (resumes are used)
            hidden: Packages excluded from app insights

        Returns:
            Insights in a fixed key order; empty if there is no input
        """
        if not unlock_sessions and not events:
            return []

        insights: list[DailyInsight] = []

        def add(
            key: InsightKey, string_value: str | None = None, long_value: int | None = None
        ) -> None:
            insights.append(DailyInsight(date_string, key, string_value, long_value))

        sessions = sorted(unlock_sessions, key=lambda s: s.unlock_timestamp)
        resumes = [
            e
            for e in sort_by_time(events)
            if e.kind is EventKind.ACTIVITY_RESUMED and e.package_name not in hidden
        ]

        first_unlock = sessions[0].unlock_timestamp if sessions else None
        if sessions:
            add(
                InsightKey.GLANCE_COUNT,
                long_value=sum(1 for s in sessions if s.session_type is SessionType.GLANCE),
            )
            add(
                InsightKey.MEANINGFUL_UNLOCK_COUNT,
                long_value=sum(1 for s in sessions if is_meaningful(s)),
            )
            add(InsightKey.FIRST_UNLOCK_TIME, long_value=first_unlock)
            add(InsightKey.LAST_UNLOCK_TIME, long_value=sessions[-1].unlock_timestamp)

        if first_unlock is not None:
            first_app = next((e for e in resumes if e.timestamp > first_unlock), None)
            if first_app is not None:
                add(InsightKey.FIRST_APP_USED, first_app.package_name, first_app.timestamp)

        if resumes:
            last_app = resumes[-1]
            add(InsightKey.LAST_APP_USED, last_app.package_name, last_app.timestamp)

        top_compulsive = most_common(
            s.first_app_package_name
            for s in sessions
            if s.is_compulsive and s.first_app_package_name is not None
        )
        if top_compulsive is not None:
            package, count = top_compulsive
            add(InsightKey.TOP_COMPULSIVE_APP, package, count)

        top_notification = most_common(
            s.triggering_notification_package_name
            for s in sessions
            if s.triggering_notification_package_name is not None
        )
        if top_notification is not None:
            package, count = top_notification
            add(InsightKey.TOP_NOTIFICATION_UNLOCK_APP, package, count)

        busiest = most_common(local_hour(s.unlock_timestamp, self._tz) for s in sessions)
        if busiest is not None:
            hour, _ = busiest
            add(InsightKey.BUSIEST_UNLOCK_HOUR, long_value=hour)

        night_start = start_of_day_millis(date_string, self._tz)
        night_end = night_start + self._thresholds.night_owl_window_ms
        night_resumes = [e for e in resumes if night_start <= e.timestamp <= night_end]
        if night_resumes:
            night_owl = night_resumes[-1]
            add(InsightKey.NIGHT_OWL_LAST_APP, night_owl.package_name, night_owl.timestamp)

        logger.debug(f"Derived {len(insights)} insights for {date_string}")
        return insights


def derive_insights(
    date_string: str,
    unlock_sessions: Sequence[UnlockSessionRecord],
    events: Sequence[RawEvent],
    hidden: Collection[str],
    tz: ZoneInfo = UTC,
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> list[DailyInsight]:
    """Derive insights for a date with a one-off generator."""
    return InsightGenerator(tz, thresholds).derive(date_string, unlock_sessions, events, hidden)


__all__ = ["InsightGenerator", "derive_insights", "is_meaningful", "most_common"]
