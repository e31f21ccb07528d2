"""usagetrack - Daily activity reconstruction engine.

usagetrack turns one day of raw device events into:
- Per-app usage and active time
- Unlock sessions with glance/intentional classification
- Merged scroll sessions
- Daily insights

Usage:
    python -m usagetrack --input day.json --output result.json
    python -m usagetrack --profile prod --recent
"""

__version__ = "0.1.0"

from .config import UsageTrackConfig
from .config.loader import load_config
from .processing import DailyDataProcessor, DailyProcessingResult

__all__ = [
    "DailyDataProcessor",
    "DailyProcessingResult",
    "UsageTrackConfig",
    "__version__",
    "load_config",
]
