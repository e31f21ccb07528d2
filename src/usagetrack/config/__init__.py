"""Configuration module for usagetrack.

This module provides configuration loading and profile management.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from zoneinfo import ZoneInfo

from usagetrack.processing.thresholds import (
    APP_OPEN_DEBOUNCE_MS,
    COMPULSIVE_UNLOCK_THRESHOLD_MS,
    INTERACTION_WINDOW_MS,
    MINIMUM_GLANCE_DURATION_MS,
    MINIMUM_SIGNIFICANT_SESSION_MS,
    NIGHT_OWL_WINDOW_MS,
    NOTIFICATION_UNLOCK_WINDOW_MS,
    SCROLL_WINDOW_MS,
    SESSION_MERGE_GAP_MS,
    TAP_WINDOW_MS,
    TYPE_WINDOW_MS,
    ProcessingThresholds,
)


@dataclass
class ProcessingConfig:
    """Reconstruction engine configuration."""

    timezone: str = "UTC"
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

    def to_thresholds(self) -> ProcessingThresholds:
        """Build the engine's threshold value object."""
        return ProcessingThresholds(
            minimum_significant_session_ms=self.minimum_significant_session_ms,
            app_open_debounce_ms=self.app_open_debounce_ms,
            session_merge_gap_ms=self.session_merge_gap_ms,
            notification_unlock_window_ms=self.notification_unlock_window_ms,
            minimum_glance_duration_ms=self.minimum_glance_duration_ms,
            compulsive_unlock_threshold_ms=self.compulsive_unlock_threshold_ms,
            interaction_window_ms=self.interaction_window_ms,
            tap_window_ms=self.tap_window_ms,
            type_window_ms=self.type_window_ms,
            scroll_window_ms=self.scroll_window_ms,
            night_owl_window_ms=self.night_owl_window_ms,
        )

    def zone(self) -> ZoneInfo:
        """Local time zone defining the calendar day."""
        return ZoneInfo(self.timezone)


@dataclass
class StorageConfig:
    """MongoDB storage configuration."""

    uri: str = "mongodb://localhost:27017"
    database: str = "usagetrack"
    max_pool_size: int = 10
    min_pool_size: int = 1
    connect_timeout_ms: int = 5000
    server_selection_timeout_ms: int = 5000


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    datefmt: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class ServiceConfig:
    """Daily processing service configuration."""

    reprocess_days: int = 2  # today and yesterday
    max_workers: int = 4


@dataclass
class UsageTrackConfig:
    """Main usagetrack configuration."""

    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    service: ServiceConfig = field(default_factory=ServiceConfig)


class ConfigLoader(Protocol):
    """Protocol for configuration loading."""

    def load(self, path: Path) -> UsageTrackConfig:
        """Load configuration from file path."""
        ...

    def load_profile(self, profile: str) -> UsageTrackConfig:
        """Load configuration by profile name (dev, prod, test)."""
        ...

    def get_config_dir(self) -> Path:
        """Get the configuration directory path."""
        ...


# Public API
__all__ = [
    "ConfigLoader",
    "LoggingConfig",
    "ProcessingConfig",
    "ServiceConfig",
    "StorageConfig",
    "UsageTrackConfig",
]
