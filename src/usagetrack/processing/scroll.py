"""Scroll session merging.

Filters scroll events, keeps only the best data tier per package, and
merges consecutive events into contiguous sessions.
"""

import logging
from collections.abc import Collection, Sequence
from dataclasses import dataclass, replace

from usagetrack.events import SCROLL_KINDS, EventKind, RawEvent, sort_by_time

from .models import ScrollDataType, ScrollSessionRecord
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds

logger = logging.getLogger(__name__)


def data_type_for(kind: EventKind) -> ScrollDataType:
    """Data tier of a scroll event kind."""
    if kind is EventKind.SCROLL_MEASURED:
        return ScrollDataType.MEASURED
    if kind is EventKind.SCROLL_INFERRED:
        return ScrollDataType.INFERRED
    raise ValueError(f"Not a scroll event kind: {kind}")


@dataclass(frozen=True)
class ScrollDelta:
    """Absolute scroll movement carried by one event."""

    x: int
    y: int

    @property
    def total(self) -> int:
        return self.x + self.y


def scroll_delta(event: RawEvent) -> ScrollDelta:
    """Extract the absolute deltas of a scroll event.

    The explicit delta fields win. Inferred events recorded before deltas
    existed carry only the legacy scalar value, read as vertical movement.
    """
    delta_x = event.scroll_delta_x or 0
    if event.scroll_delta_y is not None:
        delta_y = event.scroll_delta_y
    elif event.kind is EventKind.SCROLL_INFERRED and event.value is not None:
        delta_y = int(event.value)
    else:
        delta_y = 0
    return ScrollDelta(abs(delta_x), abs(delta_y))


def select_scroll_events(
    events: Sequence[RawEvent], hidden: Collection[str]
) -> list[RawEvent]:
    """Pick visible scroll events, dropping inferred data where measured exists.

    Within a run a package is represented by exactly one data tier.

    Returns:
        Surviving events sorted by timestamp
    """
    candidates = [
        e
        for e in events
        if e.kind in SCROLL_KINDS and e.has_scroll_payload and e.package_name not in hidden
    ]
    measured_packages = {
        e.package_name for e in candidates if e.kind is EventKind.SCROLL_MEASURED
    }
    selected = [
        e
        for e in candidates
        if e.package_name not in measured_packages or e.kind is EventKind.SCROLL_MEASURED
    ]
    return sort_by_time(selected)


class ScrollSessionMerger:
    """Merges scroll events into sessions."""

    def __init__(self, thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS) -> None:
        self._thresholds = thresholds

    def merge(
        self, events: Sequence[RawEvent], hidden: Collection[str]
    ) -> list[ScrollSessionRecord]:
        """Build scroll sessions for one batch.

        An event extends the open session when it has the same package and
        tier and arrives within the merge gap of the session's last event.
        Extending never moves the session start.
        """
        sessions: list[ScrollSessionRecord] = []
        current: ScrollSessionRecord | None = None
        skipped = 0

        for event in select_scroll_events(events, hidden):
            delta = scroll_delta(event)
            if delta.total == 0:
                skipped += 1
                continue

            data_type = data_type_for(event.kind)
            if (
                current is not None
                and current.package_name == event.package_name
                and current.data_type is data_type
                and event.timestamp - current.session_end_time
                <= self._thresholds.session_merge_gap_ms
            ):
                current = replace(
                    current,
                    session_end_time=event.timestamp,
                    scroll_amount=current.scroll_amount + delta.total,
                    scroll_amount_x=current.scroll_amount_x + delta.x,
                    scroll_amount_y=current.scroll_amount_y + delta.y,
                )
                continue

            if current is not None:
                sessions.append(current)
            current = ScrollSessionRecord(
                package_name=event.package_name,
                session_start_time=event.timestamp,
                session_end_time=event.timestamp,
                scroll_amount=delta.total,
                scroll_amount_x=delta.x,
                scroll_amount_y=delta.y,
                date_string=event.date_string,
                data_type=data_type,
            )

        if current is not None:
            sessions.append(current)

        if skipped:
            logger.debug(f"Skipped {skipped} scroll events with no movement")
        return sessions


def merge_scroll_sessions(
    events: Sequence[RawEvent],
    hidden: Collection[str],
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> list[ScrollSessionRecord]:
    """Merge scroll events into sessions with a one-off merger."""
    return ScrollSessionMerger(thresholds).merge(events, hidden)


__all__ = [
    "ScrollDelta",
    "ScrollSessionMerger",
    "data_type_for",
    "merge_scroll_sessions",
    "scroll_delta",
    "select_scroll_events",
]
