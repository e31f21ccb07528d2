"""Repositories for raw inputs and derived daily results.

Raw events and notifications are append-only. Derived tables are replaced
wholesale per date: a run for a date supersedes every earlier result for
that date.
"""

import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from usagetrack.events import NotificationRecord, RawEvent
from usagetrack.processing.models import (
    DailyAppUsageRecord,
    DailyDeviceSummary,
    DailyInsight,
    DailyProcessingResult,
    ScrollSessionRecord,
    UnlockSessionRecord,
)

from .retry import retry_on_connection_failure

logger = logging.getLogger(__name__)


class RawEventRepository:
    """Repository for raw device events."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        """Initialize repository with MongoDB collection.

        Args:
            collection: MongoDB collection for raw events.
        """
        self._collection = collection
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        """Create indexes for efficient queries."""
        self._collection.create_index([("date_string", ASCENDING), ("timestamp", ASCENDING)])
        self._collection.create_index("package_name")

    @retry_on_connection_failure()
    def insert_many(self, events: Iterable[RawEvent]) -> int:
        """Append events.

        Returns:
            Number of events inserted.
        """
        docs = [event.to_dict() for event in events]
        if not docs:
            return 0
        self._collection.insert_many(docs)
        return len(docs)

    @retry_on_connection_failure()
    def get_for_date(self, date_string: str) -> list[RawEvent]:
        """Get every event of a local day, oldest first."""
        cursor = self._collection.find({"date_string": date_string}).sort("timestamp", ASCENDING)
        return [RawEvent.from_dict(doc) for doc in cursor]


class NotificationRepository:
    """Repository for posted notifications."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        """Initialize repository with MongoDB collection.

        Args:
            collection: MongoDB collection for notifications.
        """
        self._collection = collection
        self._collection.create_index([("date_string", ASCENDING), ("post_time", ASCENDING)])

    @retry_on_connection_failure()
    def insert_many(self, notifications: Iterable[NotificationRecord]) -> int:
        """Append notifications.

        Returns:
            Number of notifications inserted.
        """
        docs = [n.to_dict() for n in notifications]
        if not docs:
            return 0
        self._collection.insert_many(docs)
        return len(docs)

    @retry_on_connection_failure()
    def get_for_date(self, date_string: str) -> list[NotificationRecord]:
        """Get every notification of a local day, oldest first."""
        cursor = self._collection.find({"date_string": date_string}).sort("post_time", ASCENDING)
        return [NotificationRecord.from_dict(doc) for doc in cursor]

    @retry_on_connection_failure()
    def count_by_package(self, date_string: str) -> dict[str, int]:
        """Count notifications per package for a local day."""
        counts: dict[str, int] = {}
        for doc in self._collection.find({"date_string": date_string}, {"package_name": 1}):
            package = doc["package_name"]
            counts[package] = counts.get(package, 0) + 1
        return dict(sorted(counts.items()))


class HiddenAppRepository:
    """Repository for packages excluded from all counting."""

    def __init__(self, collection: Collection[dict[str, Any]]) -> None:
        """Initialize repository with MongoDB collection.

        Args:
            collection: MongoDB collection for hidden packages.
        """
        self._collection = collection
        self._collection.create_index("package_name", unique=True)

    @retry_on_connection_failure()
    def get_hidden_packages(self) -> frozenset[str]:
        """Get the current filter set."""
        return frozenset(
            doc["package_name"] for doc in self._collection.find({}, {"package_name": 1})
        )

    @retry_on_connection_failure()
    def set_hidden(self, package_name: str, hidden: bool = True) -> None:
        """Add a package to, or remove it from, the filter set."""
        if hidden:
            self._collection.update_one(
                {"package_name": package_name},
                {"$set": {"package_name": package_name, "updated_at": datetime.now(UTC)}},
                upsert=True,
            )
        else:
            self._collection.delete_one({"package_name": package_name})


class DailyResultRepository:
    """Repository for derived per-date tables."""

    USAGE = "daily_app_usage"
    UNLOCKS = "unlock_sessions"
    SCROLLS = "scroll_sessions"
    SUMMARY = "daily_device_summary"
    INSIGHTS = "daily_insights"

    def __init__(self, database: Database[dict[str, Any]]) -> None:
        """Initialize repository with MongoDB database.

        Args:
            database: Database holding the derived collections.
        """
        self._usage = database[self.USAGE]
        self._unlocks = database[self.UNLOCKS]
        self._scrolls = database[self.SCROLLS]
        self._summary = database[self.SUMMARY]
        self._insights = database[self.INSIGHTS]
        self._ensure_indexes()

    def _ensure_indexes(self) -> None:
        """Create indexes for efficient queries."""
        self._usage.create_index(
            [("date_string", ASCENDING), ("package_name", ASCENDING)], unique=True
        )
        self._unlocks.create_index([("date_string", ASCENDING), ("unlock_timestamp", ASCENDING)])
        self._scrolls.create_index(
            [("date_string", ASCENDING), ("session_start_time", ASCENDING)]
        )
        self._summary.create_index("date_string", unique=True)
        self._insights.create_index(
            [("date_string", ASCENDING), ("insight_key", ASCENDING)], unique=True
        )

    def _collections(self) -> list[Collection[dict[str, Any]]]:
        return [self._usage, self._unlocks, self._scrolls, self._summary, self._insights]

    @retry_on_connection_failure()
    def replace_for_date(self, result: DailyProcessingResult) -> None:
        """Persist a result as the authoritative replacement for its date.

        Args:
            result: Complete result bundle for one date.
        """
        date_string = result.date_string
        for collection in self._collections():
            collection.delete_many({"date_string": date_string})

        def insert(collection: Collection[dict[str, Any]], docs: list[dict[str, Any]]) -> None:
            if docs:
                collection.insert_many(docs)

        insert(self._usage, [r.to_dict() for r in result.usage_records])
        insert(self._unlocks, [s.to_dict() for s in result.unlock_sessions])
        insert(self._scrolls, [s.to_dict() for s in result.scroll_sessions])
        insert(self._insights, [i.to_dict() for i in result.insights])
        if result.device_summary is not None:
            self._summary.insert_one(result.device_summary.to_dict())

        logger.debug(f"Replaced derived tables for {date_string}")

    @retry_on_connection_failure()
    def get_for_date(self, date_string: str) -> DailyProcessingResult | None:
        """Load the stored result for a date.

        Returns:
            The stored bundle, or None if nothing is stored for the date.
        """
        query = {"date_string": date_string}
        usage = [
            DailyAppUsageRecord.from_dict(d)
            for d in self._usage.find(query).sort("package_name", ASCENDING)
        ]
        unlocks = [
            UnlockSessionRecord.from_dict(d)
            for d in self._unlocks.find(query).sort("unlock_timestamp", ASCENDING)
        ]
        scrolls = [
            ScrollSessionRecord.from_dict(d)
            for d in self._scrolls.find(query).sort("session_start_time", ASCENDING)
        ]
        insights = [DailyInsight.from_dict(d) for d in self._insights.find(query)]
        summary_doc = self._summary.find_one(query)

        if not (usage or unlocks or scrolls or insights or summary_doc):
            return None

        return DailyProcessingResult(
            date_string=date_string,
            unlock_sessions=tuple(unlocks),
            scroll_sessions=tuple(scrolls),
            usage_records=tuple(usage),
            device_summary=DailyDeviceSummary.from_dict(summary_doc) if summary_doc else None,
            insights=tuple(insights),
        )


__all__ = [
    "DailyResultRepository",
    "HiddenAppRepository",
    "NotificationRepository",
    "RawEventRepository",
]
