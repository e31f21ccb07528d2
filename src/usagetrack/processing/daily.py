"""Daily pipeline orchestration.

Wires the unlock reconstructor, scroll merger, usage aggregator and insight
generator together for one date and assembles their outputs into a single
DailyProcessingResult.
"""

import logging
from collections.abc import Collection, Mapping, Sequence
from zoneinfo import ZoneInfo

from usagetrack.errors import ProcessingError
from usagetrack.events import EventKind, NotificationRecord, RawEvent

from .dates import UTC, end_of_day_millis, start_of_day_millis
from .insights import InsightGenerator
from .models import DailyProcessingResult
from .scroll import ScrollSessionMerger
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds
from .unlock import DEFAULT_LOCK_KINDS, DEFAULT_UNLOCK_KINDS, UnlockSessionReconstructor
from .usage import UsageAggregator

logger = logging.getLogger(__name__)

UNLOCK_RELEVANT_KINDS = frozenset(
    {
        EventKind.USER_UNLOCKED,
        EventKind.KEYGUARD_HIDDEN,
        EventKind.KEYGUARD_SHOWN,
        EventKind.SCREEN_NON_INTERACTIVE,
        EventKind.SERVICE_STOPPED,
        EventKind.ACTIVITY_RESUMED,
    }
)


class DailyDataProcessor:
    """Reconstructs one day of activity from its raw events.

    Holds no state between runs; the same instance may process several
    dates, also from different threads.
    """

    def __init__(
        self,
        thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
        tz: ZoneInfo = UTC,
    ) -> None:
        """Initialize processor.

        Args:
            thresholds: Tuning thresholds shared by all components
            tz: Local time zone that defines the calendar day
        """
        self._tz = tz
        self._unlocks = UnlockSessionReconstructor(thresholds)
        self._scrolls = ScrollSessionMerger(thresholds)
        self._usage = UsageAggregator(thresholds)
        self._insights = InsightGenerator(tz, thresholds)

    def process(
        self,
        date_string: str,
        events: Sequence[RawEvent],
        notifications: Sequence[NotificationRecord],
        hidden: Collection[str],
        notification_counts: Mapping[str, int],
        foreground_hint: str | None = None,
        now: int | None = None,
    ) -> DailyProcessingResult:
        """Process a single date.

        Args:
            date_string: Local day key (YYYY-MM-DD)
            events: All raw events of the day, in any order
            notifications: All notifications of the day
            hidden: Packages excluded from every count
            notification_counts: Pre-aggregated notifications per package
            foreground_hint: Package in the foreground at start of day
            now: Current UTC millis; caps the period for an in-progress day

        Returns:
            Complete result bundle for the date

        Raises:
            ProcessingError: If any component fails. No partial result is
                returned.
        """
        try:
            return self._process(
                date_string,
                events,
                notifications,
                frozenset(hidden),
                notification_counts,
                foreground_hint,
                now,
            )
        except ProcessingError:
            raise
        except Exception as e:
            logger.error(f"Processing {date_string} failed: {e}")
            raise ProcessingError(date_string, str(e)) from e

    def _process(
        self,
        date_string: str,
        events: Sequence[RawEvent],
        notifications: Sequence[NotificationRecord],
        hidden: frozenset[str],
        notification_counts: Mapping[str, int],
        foreground_hint: str | None,
        now: int | None,
    ) -> DailyProcessingResult:
        period_start = start_of_day_millis(date_string, self._tz)
        period_end = end_of_day_millis(date_string, self._tz)
        if now is not None:
            period_end = min(period_end, now)

        unlock_events = [e for e in events if e.kind in UNLOCK_RELEVANT_KINDS]
        unlock_sessions = self._unlocks.reconstruct(
            unlock_events,
            notifications,
            hidden,
            unlock_kinds=DEFAULT_UNLOCK_KINDS,
            lock_kinds=DEFAULT_LOCK_KINDS,
        )
        scroll_sessions = self._scrolls.merge(events, hidden)
        usage_records, device_summary = self._usage.calculate(
            events,
            hidden,
            date_string,
            unlock_sessions,
            notification_counts,
            period_start,
            period_end,
            foreground_hint,
        )
        insights = self._insights.derive(date_string, unlock_sessions, unlock_events, hidden)

        result = DailyProcessingResult(
            date_string=date_string,
            unlock_sessions=tuple(unlock_sessions),
            scroll_sessions=tuple(scroll_sessions),
            usage_records=tuple(usage_records),
            device_summary=device_summary,
            insights=tuple(insights),
        )

        logger.info(
            f"Processed {date_string}: {len(events)} events, "
            f"{len(unlock_sessions)} unlocks, {len(scroll_sessions)} scroll sessions, "
            f"{len(usage_records)} usage records, {len(insights)} insights"
        )
        return result


__all__ = ["DailyDataProcessor", "UNLOCK_RELEVANT_KINDS"]
