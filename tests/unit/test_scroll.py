"""Tests for scroll session merging."""

import pytest

from usagetrack.events import EventKind, RawEvent
from usagetrack.processing.models import ScrollDataType
from usagetrack.processing.scroll import (
    ScrollDelta,
    ScrollSessionMerger,
    data_type_for,
    merge_scroll_sessions,
    scroll_delta,
    select_scroll_events,
)

DAY = "2024-03-01"


def measured(package: str, timestamp: int, dx: int | None, dy: int | None) -> RawEvent:
    return RawEvent(
        package_name=package,
        kind=EventKind.SCROLL_MEASURED,
        timestamp=timestamp,
        date_string=DAY,
        scroll_delta_x=dx,
        scroll_delta_y=dy,
    )


def inferred(
    package: str, timestamp: int, dy: int | None = None, value: float | None = None
) -> RawEvent:
    return RawEvent(
        package_name=package,
        kind=EventKind.SCROLL_INFERRED,
        timestamp=timestamp,
        date_string=DAY,
        scroll_delta_y=dy,
        value=value,
    )


@pytest.fixture
def merger() -> ScrollSessionMerger:
    """Create merger with default thresholds."""
    return ScrollSessionMerger()


class TestScrollDelta:
    """Tests for delta extraction."""

    def test_absolute_values(self) -> None:
        """Direction is discarded."""
        assert scroll_delta(measured("a", 0, -10, 20)) == ScrollDelta(10, 20)

    def test_missing_axes_are_zero(self) -> None:
        """A missing axis counts as no movement."""
        assert scroll_delta(measured("a", 0, None, 7)).total == 7

    def test_legacy_value_for_inferred(self) -> None:
        """Inferred events fall back to the legacy value as vertical movement."""
        assert scroll_delta(inferred("a", 0, value=12.0)) == ScrollDelta(0, 12)

    def test_legacy_value_ignored_for_measured(self) -> None:
        """Measured events never read the legacy value."""
        event = RawEvent(
            package_name="a",
            kind=EventKind.SCROLL_MEASURED,
            timestamp=0,
            date_string=DAY,
            value=50.0,
        )

        assert scroll_delta(event).total == 0

    def test_data_type_rejects_other_kinds(self) -> None:
        """Only scroll kinds map to a data tier."""
        with pytest.raises(ValueError):
            data_type_for(EventKind.TYPING)


class TestSelectScrollEvents:
    """Tests for scroll event selection."""

    def test_measured_suppresses_inferred(self) -> None:
        """A package with measured data loses its inferred events."""
        events = [inferred("z", 0, dy=5), measured("z", 100, 0, 5), inferred("y", 200, dy=3)]

        selected = select_scroll_events(events, frozenset())

        assert [(e.package_name, e.kind) for e in selected] == [
            ("z", EventKind.SCROLL_MEASURED),
            ("y", EventKind.SCROLL_INFERRED),
        ]

    def test_hidden_and_empty_payload_dropped(self) -> None:
        """Hidden packages and events without any payload are skipped."""
        events = [
            measured("launcher", 0, 5, 5),
            measured("a", 100, None, None),
            measured("a", 200, 1, 1),
        ]

        selected = select_scroll_events(events, frozenset({"launcher"}))

        assert [e.timestamp for e in selected] == [200]


class TestScrollSessionMerger:
    """Tests for ScrollSessionMerger.merge()."""

    def test_two_events_merge(self, merger: ScrollSessionMerger) -> None:
        """Close events of one package form one session with summed amounts."""
        events = [measured("a", 0, 10, 20), measured("a", 500, 5, 5)]

        sessions = merger.merge(events, frozenset())

        assert len(sessions) == 1
        session = sessions[0]
        assert session.scroll_amount == 40
        assert session.scroll_amount_x == 15
        assert session.scroll_amount_y == 25
        assert session.session_start_time == 0
        assert session.session_end_time == 500
        assert session.data_type is ScrollDataType.MEASURED

    def test_only_measured_survives(self, merger: ScrollSessionMerger) -> None:
        """Mixed tiers for one package keep only measured sessions."""
        events = [inferred("z", 0, dy=100), measured("z", 60_000, 0, 10)]

        sessions = merger.merge(events, frozenset())

        assert [s.data_type for s in sessions] == [ScrollDataType.MEASURED]
        assert sessions[0].scroll_amount == 10

    def test_gap_splits_sessions(self, merger: ScrollSessionMerger) -> None:
        """A gap over the merge threshold starts a new session."""
        events = [measured("a", 0, 0, 5), measured("a", 30_001, 0, 5)]

        sessions = merger.merge(events, frozenset())

        assert len(sessions) == 2

    def test_gap_at_threshold_merges(self, merger: ScrollSessionMerger) -> None:
        """A gap equal to the threshold still merges."""
        events = [measured("a", 0, 0, 5), measured("a", 30_000, 0, 5)]

        sessions = merger.merge(events, frozenset())

        assert len(sessions) == 1
        assert sessions[0].scroll_amount == 10

    def test_gap_measured_from_session_end(self, merger: ScrollSessionMerger) -> None:
        """A chain of close events keeps extending one session."""
        events = [measured("a", t, 0, 1) for t in range(0, 100_000, 20_000)]

        sessions = merger.merge(events, frozenset())

        assert len(sessions) == 1
        assert sessions[0].session_end_time == 80_000

    def test_package_change_splits(self, merger: ScrollSessionMerger) -> None:
        """Interleaved packages never share a session."""
        events = [measured("a", 0, 0, 5), measured("b", 100, 0, 5), measured("a", 200, 0, 5)]

        sessions = merger.merge(events, frozenset())

        assert [s.package_name for s in sessions] == ["a", "b", "a"]

    def test_zero_movement_skipped(self, merger: ScrollSessionMerger) -> None:
        """Events with no movement produce nothing."""
        sessions = merger.merge([measured("a", 0, 0, 0)], frozenset())

        assert sessions == []

    def test_amount_equals_sum_of_events(self, merger: ScrollSessionMerger) -> None:
        """Session totals equal the sum of the events they absorbed."""
        events = [measured("a", i * 1000, i, -2 * i) for i in range(1, 6)]

        sessions = merger.merge(events, frozenset())

        assert sum(s.scroll_amount for s in sessions) == sum(3 * i for i in range(1, 6))
        for session in sessions:
            assert session.scroll_amount == session.scroll_amount_x + session.scroll_amount_y

    def test_module_function(self) -> None:
        """The module-level entry point merges the same way."""
        events = [measured("a", 0, 10, 20), measured("a", 500, 5, 5)]

        assert [s.scroll_amount for s in merge_scroll_sessions(events, frozenset())] == [40]
