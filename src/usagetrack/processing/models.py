"""Output records produced by daily reconstruction.

Every record is created fresh for a run and is immutable once returned.
A run for a date fully supersedes any earlier result for that date.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SessionType(Enum):
    """Behavioral classification of an unlock session."""

    GLANCE = "Glance"
    INTENTIONAL = "Intentional"


class SessionEndReason(Enum):
    """How an unlock session was closed."""

    LOCKED = "LOCKED"
    INTERRUPTED = "INTERRUPTED"
    GHOST = "GHOST"


class ScrollDataType(Enum):
    """Data-quality tier of scroll measurements."""

    MEASURED = "MEASURED"
    INFERRED = "INFERRED"


class InsightKey(Enum):
    """Keys of the sparse daily insight table."""

    GLANCE_COUNT = "glance_count"
    MEANINGFUL_UNLOCK_COUNT = "meaningful_unlock_count"
    FIRST_UNLOCK_TIME = "first_unlock_time"
    LAST_UNLOCK_TIME = "last_unlock_time"
    FIRST_APP_USED = "first_app_used"
    LAST_APP_USED = "last_app_used"
    TOP_COMPULSIVE_APP = "top_compulsive_app"
    TOP_NOTIFICATION_UNLOCK_APP = "top_notification_unlock_app"
    BUSIEST_UNLOCK_HOUR = "busiest_unlock_hour"
    NIGHT_OWL_LAST_APP = "night_owl_last_app"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    return enum_cls(value) if value is not None else None


@dataclass(frozen=True)
class UsageInterval:
    """One unbroken foreground occupancy, half-open [start_time, end_time)."""

    package_name: str
    start_time: int
    end_time: int

    @property
    def duration(self) -> int:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class DailyAppUsageRecord:
    """Per-package usage for one date."""

    package_name: str
    date_string: str
    usage_time_millis: int
    active_time_millis: int
    app_open_count: int
    notification_count: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "package_name": self.package_name,
            "date_string": self.date_string,
            "usage_time_millis": self.usage_time_millis,
            "active_time_millis": self.active_time_millis,
            "app_open_count": self.app_open_count,
            "notification_count": self.notification_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyAppUsageRecord":
        """Create from MongoDB document."""
        return cls(
            package_name=data["package_name"],
            date_string=data["date_string"],
            usage_time_millis=data.get("usage_time_millis", 0),
            active_time_millis=data.get("active_time_millis", 0),
            app_open_count=data.get("app_open_count", 0),
            notification_count=data.get("notification_count", 0),
        )


@dataclass(frozen=True)
class UnlockSessionRecord:
    """A reconstructed unlock session.

    A session with no lock_timestamp is still open: it spans past the end
    of the processed batch.
    """

    unlock_timestamp: int
    date_string: str
    unlock_event_kind: str
    lock_timestamp: int | None = None
    duration_millis: int | None = None
    first_app_package_name: str | None = None
    session_type: SessionType | None = None
    session_end_reason: SessionEndReason | None = None
    is_compulsive: bool = False
    triggering_notification_package_name: str | None = None

    @property
    def is_open(self) -> bool:
        return self.lock_timestamp is None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "unlock_timestamp": self.unlock_timestamp,
            "lock_timestamp": self.lock_timestamp,
            "duration_millis": self.duration_millis,
            "date_string": self.date_string,
            "unlock_event_kind": self.unlock_event_kind,
            "first_app_package_name": self.first_app_package_name,
            "session_type": self.session_type.value if self.session_type else None,
            "session_end_reason": (
                self.session_end_reason.value if self.session_end_reason else None
            ),
            "is_compulsive": self.is_compulsive,
            "triggering_notification_package_name": self.triggering_notification_package_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnlockSessionRecord":
        """Create from MongoDB document."""
        return cls(
            unlock_timestamp=data["unlock_timestamp"],
            lock_timestamp=data.get("lock_timestamp"),
            duration_millis=data.get("duration_millis"),
            date_string=data["date_string"],
            unlock_event_kind=data.get("unlock_event_kind", ""),
            first_app_package_name=data.get("first_app_package_name"),
            session_type=_enum_or_none(SessionType, data.get("session_type")),
            session_end_reason=_enum_or_none(SessionEndReason, data.get("session_end_reason")),
            is_compulsive=data.get("is_compulsive", False),
            triggering_notification_package_name=data.get("triggering_notification_package_name"),
        )


@dataclass(frozen=True)
class ScrollSessionRecord:
    """A contiguous scroll session within one package and data tier."""

    package_name: str
    session_start_time: int
    session_end_time: int
    scroll_amount: int
    scroll_amount_x: int
    scroll_amount_y: int
    date_string: str
    data_type: ScrollDataType

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "package_name": self.package_name,
            "session_start_time": self.session_start_time,
            "session_end_time": self.session_end_time,
            "scroll_amount": self.scroll_amount,
            "scroll_amount_x": self.scroll_amount_x,
            "scroll_amount_y": self.scroll_amount_y,
            "date_string": self.date_string,
            "data_type": self.data_type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ScrollSessionRecord":
        """Create from MongoDB document."""
        return cls(
            package_name=data["package_name"],
            session_start_time=data["session_start_time"],
            session_end_time=data["session_end_time"],
            scroll_amount=data.get("scroll_amount", 0),
            scroll_amount_x=data.get("scroll_amount_x", 0),
            scroll_amount_y=data.get("scroll_amount_y", 0),
            date_string=data["date_string"],
            data_type=ScrollDataType(data.get("data_type", "MEASURED")),
        )


@dataclass(frozen=True)
class DailyDeviceSummary:
    """Whole-day rollup, derived from the other records of the run."""

    date_string: str
    total_usage_time_millis: int
    total_unlocked_duration_millis: int
    total_unlock_count: int
    intentional_unlock_count: int
    glance_unlock_count: int
    first_unlock_timestamp: int | None
    last_unlock_timestamp: int | None
    total_notification_count: int
    total_app_opens: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "date_string": self.date_string,
            "total_usage_time_millis": self.total_usage_time_millis,
            "total_unlocked_duration_millis": self.total_unlocked_duration_millis,
            "total_unlock_count": self.total_unlock_count,
            "intentional_unlock_count": self.intentional_unlock_count,
            "glance_unlock_count": self.glance_unlock_count,
            "first_unlock_timestamp": self.first_unlock_timestamp,
            "last_unlock_timestamp": self.last_unlock_timestamp,
            "total_notification_count": self.total_notification_count,
            "total_app_opens": self.total_app_opens,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyDeviceSummary":
        """Create from MongoDB document."""
        return cls(
            date_string=data["date_string"],
            total_usage_time_millis=data.get("total_usage_time_millis", 0),
            total_unlocked_duration_millis=data.get("total_unlocked_duration_millis", 0),
            total_unlock_count=data.get("total_unlock_count", 0),
            intentional_unlock_count=data.get("intentional_unlock_count", 0),
            glance_unlock_count=data.get("glance_unlock_count", 0),
            first_unlock_timestamp=data.get("first_unlock_timestamp"),
            last_unlock_timestamp=data.get("last_unlock_timestamp"),
            total_notification_count=data.get("total_notification_count", 0),
            total_app_opens=data.get("total_app_opens", 0),
        )


@dataclass(frozen=True)
class DailyInsight:
    """One key/value fact about a date. Absent keys mean "not applicable"."""

    date_string: str
    insight_key: InsightKey
    string_value: str | None = None
    long_value: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "date_string": self.date_string,
            "insight_key": self.insight_key.value,
            "string_value": self.string_value,
            "long_value": self.long_value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyInsight":
        """Create from MongoDB document."""
        return cls(
            date_string=data["date_string"],
            insight_key=InsightKey(data["insight_key"]),
            string_value=data.get("string_value"),
            long_value=data.get("long_value"),
        )


@dataclass(frozen=True)
class DailyProcessingResult:
    """Complete output bundle for one date.

    An empty bundle (no records, device_summary None) is the explicit
    "no data" result, distinct from a measured zero.
    """

    date_string: str
    unlock_sessions: tuple[UnlockSessionRecord, ...] = ()
    scroll_sessions: tuple[ScrollSessionRecord, ...] = ()
    usage_records: tuple[DailyAppUsageRecord, ...] = ()
    device_summary: DailyDeviceSummary | None = None
    insights: tuple[DailyInsight, ...] = field(default_factory=tuple)

    @property
    def has_data(self) -> bool:
        return bool(
            self.unlock_sessions
            or self.scroll_sessions
            or self.usage_records
            or self.device_summary is not None
            or self.insights
        )

    def insight(self, key: InsightKey) -> DailyInsight | None:
        """Look up a single insight by key."""
        return next((i for i in self.insights if i.insight_key == key), None)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-compatible dictionary."""
        return {
            "date_string": self.date_string,
            "unlock_sessions": [s.to_dict() for s in self.unlock_sessions],
            "scroll_sessions": [s.to_dict() for s in self.scroll_sessions],
            "usage_records": [r.to_dict() for r in self.usage_records],
            "device_summary": self.device_summary.to_dict() if self.device_summary else None,
            "insights": [i.to_dict() for i in self.insights],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailyProcessingResult":
        """Create from a dictionary produced by to_dict."""
        summary = data.get("device_summary")
        return cls(
            date_string=data["date_string"],
            unlock_sessions=tuple(
                UnlockSessionRecord.from_dict(d) for d in data.get("unlock_sessions", [])
            ),
            scroll_sessions=tuple(
                ScrollSessionRecord.from_dict(d) for d in data.get("scroll_sessions", [])
            ),
            usage_records=tuple(
                DailyAppUsageRecord.from_dict(d) for d in data.get("usage_records", [])
            ),
            device_summary=DailyDeviceSummary.from_dict(summary) if summary else None,
            insights=tuple(DailyInsight.from_dict(d) for d in data.get("insights", [])),
        )


__all__ = [
    "DailyAppUsageRecord",
    "DailyDeviceSummary",
    "DailyInsight",
    "DailyProcessingResult",
    "InsightKey",
    "ScrollDataType",
    "ScrollSessionRecord",
    "SessionEndReason",
    "SessionType",
    "UnlockSessionRecord",
    "UsageInterval",
]
