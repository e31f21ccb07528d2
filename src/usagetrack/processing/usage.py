"""Usage and active-time aggregation.

Turns the raw event stream into closed foreground intervals per package,
measures "active time" inside each interval from interaction events, and
counts intentional app opens with a debounce automaton.

Only one package is ever in the foreground. The foreground state is an
explicit value threaded through the sorted events, so every step is a pure
function that can be tested in isolation.
"""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, replace

from usagetrack.events import SCROLL_KINDS, EventKind, RawEvent, sort_by_time

from .models import (
    DailyAppUsageRecord,
    DailyDeviceSummary,
    SessionType,
    UnlockSessionRecord,
    UsageInterval,
)
from .thresholds import DEFAULT_THRESHOLDS, ProcessingThresholds

logger = logging.getLogger(__name__)

# (usage_time_millis, active_time_millis)
UsageTotals = tuple[int, int]

FOREGROUND_KINDS = frozenset(
    {
        EventKind.ACTIVITY_RESUMED,
        EventKind.ACTIVITY_PAUSED,
        EventKind.ACTIVITY_STOPPED,
        EventKind.SCREEN_NON_INTERACTIVE,
    }
)

# Events that feed the app-open automaton
APP_OPEN_RELEVANT_KINDS = frozenset(
    {
        EventKind.ACTIVITY_RESUMED,
        EventKind.USER_UNLOCKED,
        EventKind.KEYGUARD_HIDDEN,
        EventKind.RETURN_TO_HOME,
    }
)

# A resume right after one of these is always a fresh open
APP_OPEN_RESET_KINDS = frozenset(
    {
        EventKind.USER_UNLOCKED,
        EventKind.KEYGUARD_HIDDEN,
        EventKind.RETURN_TO_HOME,
    }
)


@dataclass(frozen=True)
class Occupancy:
    """The package currently holding the foreground, and since when."""

    package_name: str
    start_time: int


ForegroundState = Occupancy | None


def _close(occupancy: Occupancy, end_time: int) -> UsageInterval | None:
    if end_time <= occupancy.start_time:
        return None
    return UsageInterval(occupancy.package_name, occupancy.start_time, end_time)


def advance_foreground(
    state: ForegroundState, event: RawEvent
) -> tuple[ForegroundState, UsageInterval | None]:
    """Apply one event to the foreground state.

    Args:
        state: Current occupancy, or None when nothing is foregrounded
        event: Next event in timestamp order

    Returns:
        Tuple of (new state, interval closed by this event or None)
    """
    kind = event.kind

    if kind is EventKind.ACTIVITY_RESUMED:
        if state is not None and state.package_name == event.package_name:
            return state, None
        closed = _close(state, event.timestamp) if state is not None else None
        return Occupancy(event.package_name, event.timestamp), closed

    if kind in (EventKind.ACTIVITY_PAUSED, EventKind.ACTIVITY_STOPPED):
        if state is not None and state.package_name == event.package_name:
            return None, _close(state, event.timestamp)
        return state, None

    if kind is EventKind.SCREEN_NON_INTERACTIVE:
        if state is None:
            return None, None
        return None, _close(state, event.timestamp)

    return state, None


def build_intervals(
    events: Iterable[RawEvent],
    period_end: int,
    initial: ForegroundState = None,
) -> tuple[list[UsageInterval], ForegroundState]:
    """Fold the events into closed foreground intervals.

    An occupancy still open after the last event is closed at period_end.

    Returns:
        Tuple of (intervals in time order, state after the last event)
    """
    state = initial
    intervals: list[UsageInterval] = []

    for event in sort_by_time([e for e in events if e.kind in FOREGROUND_KINDS]):
        state, closed = advance_foreground(state, event)
        if closed is not None:
            intervals.append(closed)

    if state is not None:
        final = _close(state, period_end)
        if final is not None:
            intervals.append(final)

    return intervals, state


def interaction_window(
    kind: EventKind, thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS
) -> int:
    """Length of the active-time window an interaction event contributes."""
    if kind in SCROLL_KINDS:
        return thresholds.scroll_window_ms
    if kind is EventKind.TYPING:
        return thresholds.type_window_ms
    if kind in (EventKind.VIEW_CLICKED, EventKind.VIEW_FOCUSED):
        return thresholds.tap_window_ms
    if kind is EventKind.USER_INTERACTION:
        return thresholds.interaction_window_ms
    return 0


def calculate_active_time(
    interactions: Iterable[RawEvent],
    start: int,
    end: int,
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> int:
    """Measure the part of [start, end] covered by interaction windows.

    Windows are merged when they overlap, then each merged window is
    clipped to the interval bounds.
    """
    windows = []
    for event in interactions:
        if not start <= event.timestamp <= end:
            continue
        window = interaction_window(event.kind, thresholds)
        if window > 0:
            windows.append((event.timestamp, event.timestamp + window))

    if not windows:
        return 0

    windows.sort()
    merged = [windows[0]]
    for current_start, current_end in windows[1:]:
        last_start, last_end = merged[-1]
        if current_start < last_end:
            merged[-1] = (last_start, max(last_end, current_end))
        else:
            merged.append((current_start, current_end))

    return sum(max(min(w_end, end) - max(w_start, start), 0) for w_start, w_end in merged)


def aggregate_usage(
    events: Sequence[RawEvent],
    period_end: int,
    foreground_hint: str | None = None,
    period_start: int | None = None,
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> tuple[dict[str, UsageTotals], list[RawEvent]]:
    """Compute usage and active time per package.

    Args:
        events: The day's events, in any order
        period_end: Close time for an occupancy left open at end of batch
        foreground_hint: Package already in the foreground at period_start
        period_start: Start of the processed period (required with a hint)
        thresholds: Active-time window lengths

    Returns:
        Tuple of (package -> (usage, active), inferred events). No events
        are inferred at present; the slot is kept for the app-open pass.
    """
    initial: ForegroundState = None
    if foreground_hint is not None and period_start is not None:
        initial = Occupancy(foreground_hint, period_start)

    intervals, _ = build_intervals(events, period_end, initial)

    interactions_by_package: dict[str, list[RawEvent]] = {}
    for event in events:
        if interaction_window(event.kind, thresholds) > 0:
            interactions_by_package.setdefault(event.package_name, []).append(event)

    totals: dict[str, UsageTotals] = {}
    for interval in intervals:
        active = calculate_active_time(
            interactions_by_package.get(interval.package_name, []),
            interval.start_time,
            interval.end_time,
            thresholds,
        )
        usage_so_far, active_so_far = totals.get(interval.package_name, (0, 0))
        totals[interval.package_name] = (usage_so_far + interval.duration, active_so_far + active)

    return totals, []


@dataclass(frozen=True)
class AppOpenState:
    """State of the app-open debounce automaton."""

    last_relevant_kind: EventKind | None = None
    last_open_time: int | None = None


def advance_app_open(
    state: AppOpenState,
    event: RawEvent,
    debounce_ms: int = DEFAULT_THRESHOLDS.app_open_debounce_ms,
) -> tuple[AppOpenState, str | None]:
    """Apply one event to the app-open automaton.

    A resume counts as an open if it is the first open seen, if it directly
    follows an unlock or a return to home, or if more than debounce_ms
    passed since the last counted open of any package.

    Returns:
        Tuple of (new state, package counted as opened or None)
    """
    opened: str | None = None

    if event.kind is EventKind.ACTIVITY_RESUMED:
        is_open = (
            state.last_open_time is None
            or state.last_relevant_kind in APP_OPEN_RESET_KINDS
            or event.timestamp - state.last_open_time > debounce_ms
        )
        if is_open:
            opened = event.package_name
            state = replace(state, last_open_time=event.timestamp)

    if event.kind in APP_OPEN_RELEVANT_KINDS:
        state = replace(state, last_relevant_kind=event.kind)

    return state, opened


def count_app_opens(
    events: Iterable[RawEvent],
    debounce_ms: int = DEFAULT_THRESHOLDS.app_open_debounce_ms,
) -> dict[str, int]:
    """Count intentional launches per package."""
    state = AppOpenState()
    opens: dict[str, int] = {}
    for event in sort_by_time([e for e in events if e.kind in APP_OPEN_RELEVANT_KINDS]):
        state, opened = advance_app_open(state, event, debounce_ms)
        if opened is not None:
            opens[opened] = opens.get(opened, 0) + 1
    return opens


def build_usage_records(
    date_string: str,
    usage: Mapping[str, UsageTotals],
    app_opens: Mapping[str, int],
    notification_counts: Mapping[str, int],
    unlock_sessions: Sequence[UnlockSessionRecord],
    hidden: frozenset[str] | set[str],
    thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS,
) -> tuple[list[DailyAppUsageRecord], DailyDeviceSummary | None]:
    """Build per-package records and the device summary.

    Hidden packages are removed from every input before anything is
    counted. Returns ([], None) when the day has nothing to report.
    """
    visible_usage = {pkg: v for pkg, v in usage.items() if pkg not in hidden}
    visible_opens = {pkg: v for pkg, v in app_opens.items() if pkg not in hidden}
    visible_notifications = {
        pkg: v for pkg, v in notification_counts.items() if pkg not in hidden and v > 0
    }

    packages = sorted(set(visible_usage) | set(visible_opens) | set(visible_notifications))

    records: list[DailyAppUsageRecord] = []
    for pkg in packages:
        usage_time, active_time = visible_usage.get(pkg, (0, 0))
        notifications = visible_notifications.get(pkg, 0)
        if usage_time < thresholds.minimum_significant_session_ms and notifications == 0:
            continue
        records.append(
            DailyAppUsageRecord(
                package_name=pkg,
                date_string=date_string,
                usage_time_millis=usage_time,
                active_time_millis=active_time,
                app_open_count=visible_opens.get(pkg, 0),
                notification_count=notifications,
            )
        )

    if not records and not unlock_sessions and not visible_notifications:
        return [], None

    unlock_times = [s.unlock_timestamp for s in unlock_sessions]
    summary = DailyDeviceSummary(
        date_string=date_string,
        total_usage_time_millis=sum(r.usage_time_millis for r in records),
        total_unlocked_duration_millis=sum(s.duration_millis or 0 for s in unlock_sessions),
        total_unlock_count=len(unlock_sessions),
        intentional_unlock_count=sum(
            1 for s in unlock_sessions if s.session_type is SessionType.INTENTIONAL
        ),
        glance_unlock_count=sum(1 for s in unlock_sessions if s.session_type is SessionType.GLANCE),
        first_unlock_timestamp=min(unlock_times) if unlock_times else None,
        last_unlock_timestamp=max(unlock_times) if unlock_times else None,
        total_notification_count=sum(visible_notifications.values()),
        total_app_opens=sum(visible_opens.values()),
    )
    return records, summary


class UsageAggregator:
    """Produces usage records and the device summary for one date."""

    def __init__(self, thresholds: ProcessingThresholds = DEFAULT_THRESHOLDS) -> None:
        """Initialize aggregator.

        Args:
            thresholds: Tuning thresholds
        """
        self._thresholds = thresholds

    def calculate(
        self,
        events: Sequence[RawEvent],
        hidden: frozenset[str] | set[str],
        date_string: str,
        unlock_sessions: Sequence[UnlockSessionRecord],
        notification_counts: Mapping[str, int],
        period_start: int,
        period_end: int,
        foreground_hint: str | None = None,
    ) -> tuple[list[DailyAppUsageRecord], DailyDeviceSummary | None]:
        """Aggregate usage over the complete event list, then filter output.

        Hidden packages still take part in the foreground timeline (a
        launcher resume ends the previous app's interval) but never appear
        in the counted output.
        """
        usage, inferred = aggregate_usage(
            events,
            period_end,
            foreground_hint=foreground_hint,
            period_start=period_start,
            thresholds=self._thresholds,
        )
        app_opens = count_app_opens([*events, *inferred], self._thresholds.app_open_debounce_ms)

        records, summary = build_usage_records(
            date_string,
            usage,
            app_opens,
            notification_counts,
            unlock_sessions,
            hidden,
            self._thresholds,
        )
        logger.debug(
            f"Usage for {date_string}: {len(usage)} packages in foreground, "
            f"{len(records)} records kept"
        )
        return records, summary


__all__ = [
    "APP_OPEN_RELEVANT_KINDS",
    "AppOpenState",
    "FOREGROUND_KINDS",
    "ForegroundState",
    "Occupancy",
    "UsageAggregator",
    "UsageTotals",
    "advance_app_open",
    "advance_foreground",
    "aggregate_usage",
    "build_intervals",
    "build_usage_records",
    "calculate_active_time",
    "count_app_opens",
    "interaction_window",
]
