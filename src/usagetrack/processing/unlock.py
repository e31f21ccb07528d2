"""Unlock session reconstruction.

A state machine over unlock/lock events. The state is either Locked or an
OpenSession; a single transition function handles every event, including
recovery from a missed lock (a "ghost" session force-closed by the next
unlock).
"""

import logging
from bisect import bisect_left, bisect_right
from collections.abc import Collection, Sequence
from dataclasses import dataclass

from usagetrack.events import EventKind, NotificationRecord, RawEvent, sort_by_time

from .models import SessionEndReason, SessionType, UnlockSessionRecord
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds

logger = logging.getLogger(__name__)

DEFAULT_UNLOCK_KINDS = frozenset({EventKind.USER_UNLOCKED, EventKind.KEYGUARD_HIDDEN})
DEFAULT_LOCK_KINDS = frozenset({EventKind.KEYGUARD_SHOWN, EventKind.SCREEN_NON_INTERACTIVE})


@dataclass(frozen=True)
class Locked:
    """No unlock session is open."""


@dataclass(frozen=True)
class OpenSession:
    """An unlock session waiting for its close event."""

    unlock_time: int
    date_string: str
    unlock_kind: EventKind


UnlockState = Locked | OpenSession

LOCKED = Locked()


@dataclass(frozen=True)
class UnlockContext:
    """Read-only lookups shared by every transition of one run."""

    resumes: Sequence[RawEvent]
    notifications: Sequence[NotificationRecord]
    hidden: Collection[str]
    unlock_kinds: Collection[EventKind]
    lock_kinds: Collection[EventKind]
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS

    @classmethod
    def build(
        cls,
        events: Sequence[RawEvent],
        notifications: Sequence[NotificationRecord],
        hidden: Collection[str],
        unlock_kinds: Collection[EventKind],
        lock_kinds: Collection[EventKind],
        thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
    ) -> "UnlockContext":
        """Index sorted resumes and notifications for range lookups."""
        return cls(
            resumes=sort_by_time([e for e in events if e.kind is EventKind.ACTIVITY_RESUMED]),
            notifications=sorted(notifications, key=lambda n: n.post_time),
            hidden=hidden,
            unlock_kinds=unlock_kinds,
            lock_kinds=lock_kinds,
            thresholds=thresholds,
        )

    def first_app(self, after: int, before: int) -> RawEvent | None:
        """First visible resume strictly inside (after, before)."""
        times = [e.timestamp for e in self.resumes]
        for event in self.resumes[bisect_right(times, after) :]:
            if event.timestamp >= before:
                break
            if event.package_name not in self.hidden:
                return event
        return None

    def other_app_resumed(self, first: RawEvent, before: int) -> bool:
        """True if another package resumed strictly between first and before."""
        return any(
            first.timestamp < e.timestamp < before and e.package_name != first.package_name
            for e in self.resumes
        )

    def latest_notification_before(self, unlock_time: int) -> NotificationRecord | None:
        """Most recent notification posted strictly before unlock_time within the window."""
        post_times = [n.post_time for n in self.notifications]
        index = bisect_left(post_times, unlock_time) - 1
        if index < 0:
            return None
        notification = self.notifications[index]
        if unlock_time - notification.post_time < self.thresholds.notification_unlock_window_ms:
            return notification
        return None


def _ghost_record(session: OpenSession, close_time: int) -> UnlockSessionRecord:
    return UnlockSessionRecord(
        unlock_timestamp=session.unlock_time,
        lock_timestamp=close_time,
        duration_millis=close_time - session.unlock_time,
        date_string=session.date_string,
        unlock_event_kind=session.unlock_kind.value,
        first_app_package_name=None,
        session_type=SessionType.GLANCE,
        session_end_reason=SessionEndReason.GHOST,
        is_compulsive=False,
    )


def _closed_record(
    session: OpenSession, close_event: RawEvent, context: UnlockContext
) -> UnlockSessionRecord | None:
    duration = close_event.timestamp - session.unlock_time
    if duration < 0:
        logger.debug(
            f"Dropping unlock session at {session.unlock_time} with negative duration {duration}"
        )
        return None

    thresholds = context.thresholds
    reason = (
        SessionEndReason.LOCKED
        if close_event.kind in context.lock_kinds
        else SessionEndReason.INTERRUPTED
    )
    session_type = (
        SessionType.GLANCE
        if duration < thresholds.minimum_glance_duration_ms
        else SessionType.INTENTIONAL
    )

    first_app = context.first_app(session.unlock_time, close_event.timestamp)
    is_compulsive = False
    triggering_package = None
    if first_app is not None:
        is_compulsive = (
            not context.other_app_resumed(first_app, close_event.timestamp)
            and duration < thresholds.compulsive_unlock_threshold_ms
        )
        notification = context.latest_notification_before(session.unlock_time)
        if notification is not None and notification.package_name == first_app.package_name:
            triggering_package = notification.package_name

    return UnlockSessionRecord(
        unlock_timestamp=session.unlock_time,
        lock_timestamp=close_event.timestamp,
        duration_millis=duration,
        date_string=session.date_string,
        unlock_event_kind=session.unlock_kind.value,
        first_app_package_name=first_app.package_name if first_app else None,
        session_type=session_type,
        session_end_reason=reason,
        is_compulsive=is_compulsive,
        triggering_notification_package_name=triggering_package,
    )


def advance_unlock(
    state: UnlockState, event: RawEvent, context: UnlockContext
) -> tuple[UnlockState, UnlockSessionRecord | None]:
    """Apply one event to the unlock state.

    Returns:
        Tuple of (new state, session record closed by this event or None)
    """
    if event.kind in context.unlock_kinds:
        opened = OpenSession(event.timestamp, event.date_string, event.kind)
        if isinstance(state, OpenSession):
            logger.warning(
                f"Ghost unlock session at {state.unlock_time} closed by new unlock "
                f"at {event.timestamp}"
            )
            return opened, _ghost_record(state, event.timestamp)
        return opened, None

    is_close = event.kind in context.lock_kinds or event.kind is EventKind.SERVICE_STOPPED
    if is_close and isinstance(state, OpenSession):
        return LOCKED, _closed_record(state, event, context)

    return state, None


class UnlockSessionReconstructor:
    """Reconstructs classified unlock sessions from lock/unlock events."""

    def __init__(self, thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS) -> None:
        """Initialize reconstructor.

        Args:
            thresholds: Glance, compulsive and notification thresholds
        """
        self._thresholds = thresholds

    def reconstruct(
        self,
        events: Sequence[RawEvent],
        notifications: Sequence[NotificationRecord],
        hidden: Collection[str],
        unlock_kinds: Collection[EventKind] = DEFAULT_UNLOCK_KINDS,
        lock_kinds: Collection[EventKind] = DEFAULT_LOCK_KINDS,
    ) -> list[UnlockSessionRecord]:
        """Reconstruct unlock sessions for one batch.

        A session still open after the last event is returned open, with no
        lock timestamp or duration.

        Args:
            events: Unlock-relevant events, in any order
            notifications: The day's notifications
            hidden: Packages that never count as the first app
            unlock_kinds: Kinds that open a session
            lock_kinds: Kinds that close a session as LOCKED

        Returns:
            Sessions ordered by unlock time
        """
        if not events:
            return []

        context = UnlockContext.build(
            events, notifications, hidden, unlock_kinds, lock_kinds, self._thresholds
        )
        state: UnlockState = LOCKED
        sessions: list[UnlockSessionRecord] = []

        for event in sort_by_time(events):
            state, record = advance_unlock(state, event, context)
            if record is not None:
                sessions.append(record)

        if isinstance(state, OpenSession):
            sessions.append(
                UnlockSessionRecord(
                    unlock_timestamp=state.unlock_time,
                    date_string=state.date_string,
                    unlock_event_kind=state.unlock_kind.value,
                )
            )

        return sessions


def reconstruct_unlock_sessions(
    events: Sequence[RawEvent],
    notifications: Sequence[NotificationRecord],
    hidden: Collection[str],
    unlock_kinds: Collection[EventKind] = DEFAULT_UNLOCK_KINDS,
    lock_kinds: Collection[EventKind] = DEFAULT_LOCK_KINDS,
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> list[UnlockSessionRecord]:
    """Reconstruct unlock sessions with a one-off reconstructor."""
    return UnlockSessionReconstructor(thresholds).reconstruct(
        events, notifications, hidden, unlock_kinds, lock_kinds
    )


__all__ = [
    "DEFAULT_LOCK_KINDS",
    "DEFAULT_UNLOCK_KINDS",
    "LOCKED",
    "Locked",
    "OpenSession",
    "UnlockContext",
    "UnlockSessionReconstructor",
    "UnlockState",
    "advance_unlock",
    "reconstruct_unlock_sessions",
]
