"""Daily processing service.

Loads a date's raw inputs from storage, runs the reconstruction engine and
persists the result as the authoritative replacement for that date. Recent
days are re-processed on every run because late events may still arrive
for them.
"""

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from pymongo.errors import PyMongoError

from usagetrack.config import ServiceConfig
from usagetrack.errors import ProcessingError, StorageError
from usagetrack.events import NotificationRecord, RawEvent
from usagetrack.processing import DailyDataProcessor, DailyProcessingResult
from usagetrack.processing.dates import date_string_for, format_date, parse_date_string
from usagetrack.storage import (
    DailyResultRepository,
    HiddenAppRepository,
    NotificationRepository,
    RawEventRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DayInput:
    """Immutable input snapshot for one date.

    Attributes:
        date_string: Local day key (YYYY-MM-DD)
        events: Raw events of the day
        notifications: Notifications of the day
        hidden: Packages excluded from every count
        notification_counts: Notifications per package
        foreground_hint: Package in the foreground at start of day
    """

    date_string: str
    events: tuple[RawEvent, ...] = ()
    notifications: tuple[NotificationRecord, ...] = ()
    hidden: frozenset[str] = field(default_factory=frozenset)
    notification_counts: Mapping[str, int] = field(default_factory=dict)
    foreground_hint: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DayInput":
        """Create from a JSON snapshot.

        Missing notification counts are derived from the notifications.
        """
        notifications = tuple(NotificationRecord.from_dict(n) for n in data.get("notifications", []))
        counts = data.get("notification_counts")
        if counts is None:
            counts = {}
            for notification in notifications:
                counts[notification.package_name] = counts.get(notification.package_name, 0) + 1
        return cls(
            date_string=data["date_string"],
            events=tuple(RawEvent.from_dict(e) for e in data.get("events", [])),
            notifications=notifications,
            hidden=frozenset(data.get("hidden", [])),
            notification_counts=dict(counts),
            foreground_hint=data.get("foreground_hint"),
        )


class StorageBackend(Protocol):
    """Protocol for the repositories the service reads and writes."""

    @property
    def events(self) -> RawEventRepository:
        """Raw event repository."""
        ...

    @property
    def notifications(self) -> NotificationRepository:
        """Notification repository."""
        ...

    @property
    def results(self) -> DailyResultRepository:
        """Derived daily result repository."""
        ...

    @property
    def hidden_apps(self) -> HiddenAppRepository:
        """Hidden package repository."""
        ...


def now_millis() -> int:
    """Current UTC epoch millis."""
    return int(datetime.now(UTC).timestamp() * 1000)


def run_day(
    processor: DailyDataProcessor,
    day: DayInput,
    now: int | None = None,
) -> DailyProcessingResult:
    """Run the engine over one input snapshot."""
    return processor.process(
        day.date_string,
        list(day.events),
        list(day.notifications),
        day.hidden,
        day.notification_counts,
        foreground_hint=day.foreground_hint,
        now=now,
    )


def process_dates_parallel(
    processor: DailyDataProcessor,
    days: Iterable[DayInput],
    max_workers: int = 4,
    now: int | None = None,
) -> dict[str, DailyProcessingResult]:
    """Process independent dates concurrently.

    Each date runs over its own snapshot; the processor holds no state
    between runs so a single instance is shared by the workers.

    Args:
        processor: Engine instance
        days: One snapshot per date
        max_workers: Thread pool size
        now: Current UTC millis; caps the period of an in-progress day

    Returns:
        Results keyed by date string, in date order

    Raises:
        ProcessingError: The first failure in date order, after every
            date has finished.
    """
    ordered = sorted(days, key=lambda d: d.date_string)
    results: dict[str, DailyProcessingResult] = {}
    failure: ProcessingError | None = None

    with ThreadPoolExecutor(max_workers=max(1, max_workers)) as executor:
        futures = [(day.date_string, executor.submit(run_day, processor, day, now)) for day in ordered]
        for date_string, future in futures:
            try:
                results[date_string] = future.result()
            except ProcessingError as e:
                logger.error(f"Date {date_string} failed: {e}")
                if failure is None:
                    failure = e

    if failure is not None:
        raise failure
    return results


class DailyProcessingService:
    """Re-processes dates from storage and persists their results."""

    def __init__(
        self,
        storage: StorageBackend,
        processor: DailyDataProcessor,
        config: ServiceConfig | None = None,
        tz: ZoneInfo | None = None,
    ) -> None:
        """Initialize service.

        Args:
            storage: Repository access
            processor: Engine instance
            config: Service configuration
            tz: Local time zone that defines the calendar day
        """
        self._storage = storage
        self._processor = processor
        self._config = config or ServiceConfig()
        self._tz = tz or ZoneInfo("UTC")

    def load_input(self, date_string: str, foreground_hint: str | None = None) -> DayInput:
        """Fetch the input snapshot of a date.

        Args:
            date_string: Local day key (YYYY-MM-DD)
            foreground_hint: Package in the foreground at start of day

        Raises:
            StorageError: If the database cannot be read.
        """
        try:
            return DayInput(
                date_string=date_string,
                events=tuple(self._storage.events.get_for_date(date_string)),
                notifications=tuple(self._storage.notifications.get_for_date(date_string)),
                hidden=self._storage.hidden_apps.get_hidden_packages(),
                notification_counts=self._storage.notifications.count_by_package(date_string),
                foreground_hint=foreground_hint,
            )
        except PyMongoError as e:
            logger.error(f"Failed to load inputs for {date_string}: {e}")
            raise StorageError(f"Failed to load inputs for {date_string}: {e}") from e

    def process_date(
        self,
        date_string: str,
        now: int | None = None,
        persist: bool = True,
        foreground_hint: str | None = None,
    ) -> DailyProcessingResult:
        """Process one date and replace its stored result.

        Args:
            date_string: Local day key (YYYY-MM-DD)
            now: Current UTC millis; caps the period of an in-progress day
            persist: Write the result to storage
            foreground_hint: Package in the foreground at start of day

        Returns:
            The complete result for the date

        Raises:
            ProcessingError: If the engine fails. Nothing is persisted.
            StorageError: If reading inputs or writing the result fails.
        """
        day = self.load_input(date_string, foreground_hint)
        try:
            result = run_day(self._processor, day, now)
        except ProcessingError as e:
            logger.error(f"Daily processing failed for {date_string}: {e}")
            raise

        if persist:
            try:
                self._storage.results.replace_for_date(result)
            except PyMongoError as e:
                logger.error(f"Failed to persist result for {date_string}: {e}")
                raise StorageError(f"Failed to persist result for {date_string}: {e}") from e

        return result

    def recent_dates(self, now: int) -> list[str]:
        """Dates due for re-processing, oldest first.

        Args:
            now: Current UTC millis

        Returns:
            The last reprocess_days local days ending with today
        """
        today = parse_date_string(date_string_for(now, self._tz))
        count = max(1, self._config.reprocess_days)
        return [format_date(today - timedelta(days=offset)) for offset in range(count - 1, -1, -1)]

    def process_recent(
        self, now: int | None = None, persist: bool = True
    ) -> dict[str, DailyProcessingResult]:
        """Re-process the recent days, yesterday and today by default.

        Returns:
            Results keyed by date string
        """
        now = now if now is not None else now_millis()
        dates = self.recent_dates(now)
        logger.info(f"Re-processing {len(dates)} day(s): {', '.join(dates)}")

        days = [self.load_input(date_string) for date_string in dates]
        results = process_dates_parallel(
            self._processor, days, max_workers=self._config.max_workers, now=now
        )

        if persist:
            for result in results.values():
                try:
                    self._storage.results.replace_for_date(result)
                except PyMongoError as e:
                    logger.error(f"Failed to persist result for {result.date_string}: {e}")
                    raise StorageError(
                        f"Failed to persist result for {result.date_string}: {e}"
                    ) from e

        return results


__all__ = [
    "DailyProcessingService",
    "DayInput",
    "StorageBackend",
    "now_millis",
    "process_dates_parallel",
    "run_day",
]
