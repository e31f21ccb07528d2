"""Tuning constants for daily reconstruction.

All durations are in milliseconds.
"""

from dataclasses import dataclass

# A foreground total below this (and without notifications) is noise.
MINIMUM_SIGNIFICANT_SESSION_MS = 1_000

# Resumes closer than this to the last counted open are app-switcher churn.
APP_OPEN_DEBOUNCE_MS = 15_000

SESSION_MERGE_GAP_MS = 30_000
NOTIFICATION_UNLOCK_WINDOW_MS = 30_000
MINIMUM_GLANCE_DURATION_MS = 5_000
COMPULSIVE_UNLOCK_THRESHOLD_MS = 60_000

# Active-time windows per interaction class
INTERACTION_WINDOW_MS = 5_000
TAP_WINDOW_MS = 2_000
TYPE_WINDOW_MS = 8_000
SCROLL_WINDOW_MS = 3_000

# Hours after local midnight that count as "night owl" usage
NIGHT_OWL_WINDOW_MS = 4 * 60 * 60 * 1000


@dataclass(frozen=True)
class ProcessingThresholds:
    """Thresholds used by every reconstruction component."""

    minimum_significant_session_ms: int = MINIMUM_SIGNIFICANT_SESSION_MS
    app_open_debounce_ms: int = APP_OPEN_DEBOUNCE_MS
    session_merge_gap_ms: int = SESSION_MERGE_GAP_MS
    notification_unlock_window_ms: int = NOTIFICATION_UNLOCK_WINDOW_MS
    minimum_glance_duration_ms: int = MINIMUM_GLANCE_DURATION_MS
    compulsive_unlock_threshold_ms: int = COMPULSIVE_UNLOCK_THRESHOLD_MS
    interaction_window_ms: int = INTERACTION_WINDOW_MS
    tap_window_ms: int = TAP_WINDOW_MS
    type_window_ms: int = TYPE_WINDOW_MS
    scroll_window_ms: int = SCROLL_WINDOW_MS
    night_owl_window_ms: int = NIGHT_OWL_WINDOW_MS


DEFAULT_THRESHOLDS = ProcessingThresholds()


__all__ = [
    "APP_OPEN_DEBOUNCE_MS",
    "COMPULSIVE_UNLOCK_THRESHOLD_MS",
    "DEFAULT_THRESHOLDS",
    "INTERACTION_WINDOW_MS",
    "MINIMUM_GLANCE_DURATION_MS",
    "MINIMUM_SIGNIFICANT_SESSION_MS",
    "NIGHT_OWL_WINDOW_MS",
    "NOTIFICATION_UNLOCK_WINDOW_MS",
    "ProcessingThresholds",
    "SCROLL_WINDOW_MS",
    "SESSION_MERGE_GAP_MS",
    "TAP_WINDOW_MS",
    "TYPE_WINDOW_MS",
]
