"""Events module for usagetrack.

Provides the raw event and notification inputs.
"""

from .models import SCROLL_KINDS, EventKind, NotificationRecord, RawEvent, sort_by_time

__all__ = [
    "EventKind",
    "NotificationRecord",
    "RawEvent",
    "SCROLL_KINDS",
    "sort_by_time",
]
