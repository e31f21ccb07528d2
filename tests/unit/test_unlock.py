"""Tests for unlock session reconstruction."""

import pytest

from usagetrack.events import EventKind, NotificationRecord, RawEvent
from usagetrack.processing.models import SessionEndReason, SessionType
from usagetrack.processing.unlock import (
    DEFAULT_LOCK_KINDS,
    DEFAULT_UNLOCK_KINDS,
    LOCKED,
    OpenSession,
    UnlockContext,
    UnlockSessionReconstructor,
    advance_unlock,
    reconstruct_unlock_sessions,
)

DAY = "2024-03-01"


def ev(package: str, kind: EventKind, timestamp: int) -> RawEvent:
    """Build a raw event for the test day."""
    return RawEvent(package_name=package, kind=kind, timestamp=timestamp, date_string=DAY)


def unlock(timestamp: int) -> RawEvent:
    return ev("android", EventKind.USER_UNLOCKED, timestamp)


def lock(timestamp: int) -> RawEvent:
    return ev("android", EventKind.SCREEN_NON_INTERACTIVE, timestamp)


def resume(package: str, timestamp: int) -> RawEvent:
    return ev(package, EventKind.ACTIVITY_RESUMED, timestamp)


def notification(package: str, post_time: int) -> NotificationRecord:
    return NotificationRecord(package_name=package, post_time=post_time, date_string=DAY)


@pytest.fixture
def reconstructor() -> UnlockSessionReconstructor:
    """Create reconstructor with default thresholds."""
    return UnlockSessionReconstructor()


class TestUnlockSessionReconstructor:
    """Tests for UnlockSessionReconstructor.reconstruct()."""

    def test_empty_input(self, reconstructor: UnlockSessionReconstructor) -> None:
        """No events gives no sessions."""
        assert reconstructor.reconstruct([], [], frozenset()) == []

    def test_hidden_first_app_skipped(self, reconstructor: UnlockSessionReconstructor) -> None:
        """The first visible resume is the first app; hidden ones are skipped."""
        events = [unlock(0), resume("launcher", 100), resume("x", 200), lock(2000)]

        sessions = reconstructor.reconstruct(events, [], frozenset({"launcher"}))

        assert len(sessions) == 1
        session = sessions[0]
        assert session.duration_millis == 2000
        assert session.lock_timestamp == 2000
        assert session.first_app_package_name == "x"
        assert session.is_compulsive is True
        assert session.session_type is SessionType.GLANCE
        assert session.session_end_reason is SessionEndReason.LOCKED
        assert session.unlock_event_kind == "user_unlocked"

    def test_long_session_is_intentional(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Sessions of at least the glance threshold are intentional."""
        sessions = reconstructor.reconstruct([unlock(0), lock(5000)], [], frozenset())

        assert sessions[0].session_type is SessionType.INTENTIONAL

    def test_glance_threshold_boundary(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Just under the glance threshold is a glance."""
        sessions = reconstructor.reconstruct([unlock(0), lock(4999)], [], frozenset())

        assert sessions[0].session_type is SessionType.GLANCE

    def test_missing_lock_produces_ghost(self, reconstructor: UnlockSessionReconstructor) -> None:
        """A second unlock force-closes the first session as a ghost."""
        events = [unlock(0), resume("x", 100), unlock(3000), lock(10_000)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert len(sessions) == 2
        ghost, real = sessions
        assert ghost.session_end_reason is SessionEndReason.GHOST
        assert ghost.lock_timestamp == 3000
        assert ghost.duration_millis == 3000
        assert ghost.session_type is SessionType.GLANCE
        assert ghost.first_app_package_name is None
        assert ghost.is_compulsive is False
        assert real.unlock_timestamp == 3000
        assert real.duration_millis == 7000
        assert real.session_end_reason is SessionEndReason.LOCKED

    def test_service_stop_interrupts(self, reconstructor: UnlockSessionReconstructor) -> None:
        """A service stop closes the session as interrupted."""
        events = [unlock(0), ev("usagetrack", EventKind.SERVICE_STOPPED, 8000)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert sessions[0].session_end_reason is SessionEndReason.INTERRUPTED
        assert sessions[0].duration_millis == 8000

    def test_unlock_without_lock_is_open(self, reconstructor: UnlockSessionReconstructor) -> None:
        """A session still open at the end of the batch is returned open."""
        sessions = reconstructor.reconstruct([unlock(1000), resume("x", 1200)], [], frozenset())

        assert len(sessions) == 1
        session = sessions[0]
        assert session.is_open
        assert session.unlock_timestamp == 1000
        assert session.lock_timestamp is None
        assert session.duration_millis is None
        assert session.session_type is None
        assert session.session_end_reason is None

    def test_lock_while_locked_ignored(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Lock events with no open session are ignored."""
        events = [lock(0), unlock(100), lock(200), lock(300)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert len(sessions) == 1
        assert sessions[0].lock_timestamp == 200

    def test_other_app_makes_session_not_compulsive(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """Switching to another app means the unlock was not a quick check."""
        events = [unlock(0), resume("x", 100), resume("y", 500), lock(2000)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert sessions[0].first_app_package_name == "x"
        assert sessions[0].is_compulsive is False

    def test_long_single_app_session_not_compulsive(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """Compulsive checks are short."""
        events = [unlock(0), resume("x", 100), lock(60_000)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert sessions[0].is_compulsive is False

    def test_no_visible_app(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Only hidden apps means no first app and no compulsive flag."""
        events = [unlock(0), resume("launcher", 100), lock(2000)]

        sessions = reconstructor.reconstruct(events, [], frozenset({"launcher"}))

        assert sessions[0].first_app_package_name is None
        assert sessions[0].is_compulsive is False

    def test_notification_triggered_unlock(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """A recent notification from the first app triggered the unlock."""
        events = [unlock(40_000), resume("chat", 40_500), lock(45_000)]
        notifications = [notification("chat", 20_000)]

        sessions = reconstructor.reconstruct(events, notifications, frozenset())

        assert sessions[0].triggering_notification_package_name == "chat"

    def test_stale_notification_ignored(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Notifications older than the window do not trigger."""
        events = [unlock(40_000), resume("chat", 40_500), lock(45_000)]
        notifications = [notification("chat", 10_000)]

        sessions = reconstructor.reconstruct(events, notifications, frozenset())

        assert sessions[0].triggering_notification_package_name is None

    def test_only_latest_notification_considered(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """The latest notification must come from the first app."""
        events = [unlock(40_000), resume("chat", 40_500), lock(45_000)]
        notifications = [notification("chat", 20_000), notification("mail", 30_000)]

        sessions = reconstructor.reconstruct(events, notifications, frozenset())

        assert sessions[0].triggering_notification_package_name is None

    def test_notification_at_unlock_time_ignored(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """A notification must be posted strictly before the unlock."""
        events = [unlock(40_000), resume("chat", 40_500), lock(45_000)]
        notifications = [notification("chat", 40_000)]

        sessions = reconstructor.reconstruct(events, notifications, frozenset())

        assert sessions[0].triggering_notification_package_name is None

    def test_sessions_ordered_by_unlock_time(
        self, reconstructor: UnlockSessionReconstructor
    ) -> None:
        """Output order follows unlock time, whatever the input order."""
        events = [lock(20_000), unlock(15_000), lock(2000), unlock(0)]

        sessions = reconstructor.reconstruct(events, [], frozenset())

        assert [s.unlock_timestamp for s in sessions] == [0, 15_000]
        assert all(s.duration_millis is not None and s.duration_millis >= 0 for s in sessions)

    def test_custom_unlock_kinds(self, reconstructor: UnlockSessionReconstructor) -> None:
        """Only the configured unlock kinds open sessions."""
        events = [
            ev("android", EventKind.KEYGUARD_HIDDEN, 0),
            ev("android", EventKind.KEYGUARD_SHOWN, 1000),
        ]

        sessions = reconstructor.reconstruct(
            events,
            [],
            frozenset(),
            unlock_kinds=frozenset({EventKind.USER_UNLOCKED}),
        )

        assert sessions == []


class TestAdvanceUnlock:
    """Tests for the single-step unlock transition."""

    @pytest.fixture
    def context(self) -> UnlockContext:
        return UnlockContext.build([], [], frozenset(), DEFAULT_UNLOCK_KINDS, DEFAULT_LOCK_KINDS)

    def test_unlock_opens_session(self, context: UnlockContext) -> None:
        """Unlocking from locked opens a session."""
        state, record = advance_unlock(LOCKED, unlock(100), context)

        assert state == OpenSession(100, DAY, EventKind.USER_UNLOCKED)
        assert record is None

    def test_negative_duration_dropped(self, context: UnlockContext) -> None:
        """A close before the unlock yields no record."""
        state, record = advance_unlock(
            OpenSession(5000, DAY, EventKind.USER_UNLOCKED), lock(1000), context
        )

        assert state == LOCKED
        assert record is None

    def test_unrelated_event_keeps_state(self, context: UnlockContext) -> None:
        """Events that neither open nor close leave the state untouched."""
        open_session = OpenSession(100, DAY, EventKind.USER_UNLOCKED)

        state, record = advance_unlock(open_session, resume("x", 200), context)

        assert state == open_session
        assert record is None


class TestReconstructUnlockSessions:
    """Tests for the module-level entry point."""

    def test_matches_reconstructor(self) -> None:
        """The function gives the same sessions as the class."""
        events = [unlock(0), resume("x", 100), lock(2000), unlock(9000)]

        assert reconstruct_unlock_sessions(events, [], frozenset()) == (
            UnlockSessionReconstructor().reconstruct(events, [], frozenset())
        )
