"""Data models for raw device events.

Defines the closed EventKind enumeration plus the RawEvent and
NotificationRecord inputs consumed by the reconstruction engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from usagetrack.errors import UnknownEventKindError


class EventKind(Enum):
    """Kinds of raw signals logged by the device listeners."""

    ACTIVITY_RESUMED = "activity_resumed"
    ACTIVITY_PAUSED = "activity_paused"
    ACTIVITY_STOPPED = "activity_stopped"
    SCREEN_INTERACTIVE = "screen_interactive"
    SCREEN_NON_INTERACTIVE = "screen_non_interactive"
    USER_UNLOCKED = "user_unlocked"
    USER_PRESENT = "user_present"
    KEYGUARD_HIDDEN = "keyguard_hidden"
    KEYGUARD_SHOWN = "keyguard_shown"
    RETURN_TO_HOME = "return_to_home"
    SERVICE_STARTED = "service_started"
    SERVICE_STOPPED = "service_stopped"
    SCROLL_MEASURED = "scroll_measured"
    SCROLL_INFERRED = "scroll_inferred"
    TYPING = "typing"
    VIEW_CLICKED = "view_clicked"
    VIEW_FOCUSED = "view_focused"
    USER_INTERACTION = "user_interaction"
    NOTIFICATION_POSTED = "notification_posted"
    NOTIFICATION_REMOVED = "notification_removed"

    @classmethod
    def parse(cls, value: "str | EventKind") -> "EventKind":
        """Parse a stored kind value.

        Accepts either the enum value ("activity_resumed") or its name
        ("ACTIVITY_RESUMED").

        Raises:
            UnknownEventKindError: If the value is not a known kind.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        if isinstance(value, str) and value in cls.__members__:
            return cls[value]
        raise UnknownEventKindError(value)


SCROLL_KINDS = frozenset({EventKind.SCROLL_MEASURED, EventKind.SCROLL_INFERRED})


@dataclass(frozen=True)
class RawEvent:
    """A single timestamped device event.

    Attributes:
        package_name: Package the event belongs to
        kind: Event kind
        timestamp: UTC epoch milliseconds
        date_string: Local calendar day key (YYYY-MM-DD)
        scroll_delta_x: Signed horizontal pixel delta (scroll events)
        scroll_delta_y: Signed vertical pixel delta (scroll events)
        value: Legacy magnitude-only scroll signal
        source: Producer tag
        class_name: Activity class, when known
    """

    package_name: str
    kind: EventKind
    timestamp: int
    date_string: str
    scroll_delta_x: int | None = None
    scroll_delta_y: int | None = None
    value: float | None = None
    source: str = "unknown"
    class_name: str | None = None

    @property
    def has_scroll_payload(self) -> bool:
        """True if any scroll delta or legacy value is present."""
        return (
            self.scroll_delta_x is not None
            or self.scroll_delta_y is not None
            or self.value is not None
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "package_name": self.package_name,
            "kind": self.kind.value,
            "timestamp": self.timestamp,
            "date_string": self.date_string,
            "scroll_delta_x": self.scroll_delta_x,
            "scroll_delta_y": self.scroll_delta_y,
            "value": self.value,
            "source": self.source,
            "class_name": self.class_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RawEvent":
        """Create from MongoDB document or JSON object."""
        return cls(
            package_name=data["package_name"],
            kind=EventKind.parse(data["kind"]),
            timestamp=int(data["timestamp"]),
            date_string=data["date_string"],
            scroll_delta_x=data.get("scroll_delta_x"),
            scroll_delta_y=data.get("scroll_delta_y"),
            value=data.get("value"),
            source=data.get("source", "unknown"),
            class_name=data.get("class_name"),
        )


@dataclass(frozen=True)
class NotificationRecord:
    """A posted notification."""

    package_name: str
    post_time: int  # UTC epoch millis
    date_string: str
    category: str | None = None
    title: str | None = None
    text: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for MongoDB storage."""
        return {
            "package_name": self.package_name,
            "post_time": self.post_time,
            "date_string": self.date_string,
            "category": self.category,
            "title": self.title,
            "text": self.text,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "NotificationRecord":
        """Create from MongoDB document or JSON object."""
        return cls(
            package_name=data["package_name"],
            post_time=int(data["post_time"]),
            date_string=data["date_string"],
            category=data.get("category"),
            title=data.get("title"),
            text=data.get("text"),
        )


def sort_by_time(events: "list[RawEvent] | tuple[RawEvent, ...]") -> list[RawEvent]:
    """Return events ordered by timestamp, stable for equal timestamps."""
    return sorted(events, key=lambda e: e.timestamp)


__all__ = [
    "EventKind",
    "NotificationRecord",
    "RawEvent",
    "SCROLL_KINDS",
    "sort_by_time",
]
