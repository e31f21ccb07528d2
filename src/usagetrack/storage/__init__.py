"""MongoDB storage module for usagetrack.

Supplies raw events and notifications for a date, and persists each date's
derived tables as an authoritative replacement.
"""

from .client import MongoStorageClient
from .repositories import (
    DailyResultRepository,
    HiddenAppRepository,
    NotificationRepository,
    RawEventRepository,
)
from .retry import retry_on_connection_failure

__all__ = [
    "DailyResultRepository",
    "HiddenAppRepository",
    "MongoStorageClient",
    "NotificationRepository",
    "RawEventRepository",
    "retry_on_connection_failure",
]
