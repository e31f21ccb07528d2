"""usagetrack entry point.

Usage:
    python -m usagetrack [OPTIONS]

Options:
    --config PATH    Path to YAML config file
    --profile NAME   Profile name (dev, prod, test)
    --input PATH     JSON snapshot to process offline
    --date DATE      Date to process (YYYY-MM-DD)
    --recent         Re-process yesterday and today from MongoDB
    --output PATH    Write the result JSON here instead of stdout
    --help           Show this help message
    --version        Show version
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pymongo.errors import PyMongoError

from . import __version__
from .config import LoggingConfig, UsageTrackConfig
from .config.loader import load_config
from .config.profiles import detect_profile
from .errors import UsageTrackError
from .processing import DailyDataProcessor, DailyProcessingResult
from .processing.dates import parse_date_string
from .service import DailyProcessingService, DayInput, now_millis, process_dates_parallel

# Project root is the parent of src/
_env_file = Path(__file__).parent.parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    load_dotenv()


def setup_logging(config: LoggingConfig) -> None:
    """Configure logging based on config."""
    numeric_level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=config.format,
        datefmt=config.datefmt,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="usagetrack",
        description="usagetrack - Daily activity reconstruction engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m usagetrack --input day.json            # Process a snapshot, print JSON
  python -m usagetrack --input day.json --output out.json
  python -m usagetrack --profile prod --recent     # Re-process yesterday and today
  python -m usagetrack --date 2024-03-01           # Re-process one stored date
  python -m usagetrack --date 2024-03-01 --foreground-hint com.example.reader

Environment:
  USAGETRACK_PROFILE    Set profile (dev, prod, test)
  USAGETRACK_MONGO_URI  Override the MongoDB connection URI
""",
    )

    parser.add_argument(
        "--config",
        type=Path,
        help="Path to YAML config file",
        metavar="PATH",
    )

    parser.add_argument(
        "--profile",
        choices=["dev", "prod", "test"],
        help="Configuration profile to use",
    )

    parser.add_argument(
        "--input",
        type=Path,
        metavar="PATH",
        help="JSON snapshot (one day object or a list of them) to process without MongoDB",
    )

    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Date to process (YYYY-MM-DD)",
    )

    parser.add_argument(
        "--foreground-hint",
        metavar="PACKAGE",
        default=None,
        help="Package already in the foreground at midnight of --date",
    )

    parser.add_argument(
        "--recent",
        action="store_true",
        help="Re-process the recent days stored in MongoDB",
    )

    parser.add_argument(
        "--output",
        type=Path,
        metavar="PATH",
        help="Write result JSON to this file instead of stdout",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"usagetrack v{__version__}",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Load config and exit (for testing)",
    )

    return parser.parse_args(argv)


def load_snapshots(path: Path, date_string: str | None = None) -> list[DayInput]:
    """Read day snapshots from a JSON file.

    Args:
        path: File holding one snapshot object or a list of them
        date_string: Keep only this date, or fill it in when missing

    Returns:
        Snapshots in file order
    """
    with open(path) as f:
        data = json.load(f)

    items = data if isinstance(data, list) else [data]
    days = []
    for item in items:
        if date_string is not None:
            if item.get("date_string", date_string) != date_string:
                continue
            item = {**item, "date_string": date_string}
        days.append(DayInput.from_dict(item))
    return days


def write_results(results: list[DailyProcessingResult], output: Path | None) -> None:
    """Write results as JSON to a file or stdout."""
    payload: Any = [r.to_dict() for r in results]
    if len(results) == 1:
        payload = payload[0]
    text = json.dumps(payload, indent=2)
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n")


def run_offline(
    args: argparse.Namespace, config: UsageTrackConfig, logger: logging.Logger
) -> int:
    """Process JSON snapshots without touching MongoDB."""
    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        return 1

    days = load_snapshots(args.input, args.date)
    if not days:
        logger.error(f"No snapshot for {args.date} in {args.input}")
        return 1

    processor = DailyDataProcessor(config.processing.to_thresholds(), config.processing.zone())
    results = process_dates_parallel(
        processor, days, max_workers=config.service.max_workers, now=now_millis()
    )
    write_results(list(results.values()), args.output)
    return 0


def run_stored(
    args: argparse.Namespace, config: UsageTrackConfig, logger: logging.Logger
) -> int:
    """Re-process stored dates and persist their results."""
    from .storage import MongoStorageClient

    processor = DailyDataProcessor(config.processing.to_thresholds(), config.processing.zone())

    with MongoStorageClient.from_config(config.storage) as storage:
        service = DailyProcessingService(
            storage, processor, config.service, config.processing.zone()
        )
        if args.recent:
            results = list(service.process_recent().values())
        else:
            results = [
                service.process_date(
                    args.date, now=now_millis(), foreground_hint=args.foreground_hint
                )
            ]

    logger.info(f"Persisted {len(results)} day(s)")
    if args.output is not None:
        write_results(results, args.output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for usagetrack.

    Returns:
        Exit code (0 for success, non-zero for errors)
    """
    args = parse_args(argv)

    if args.date is not None:
        try:
            parse_date_string(args.date)
        except ValueError:
            print(f"Error: Invalid date format '{args.date}'. Use YYYY-MM-DD.", file=sys.stderr)
            return 1

    # Load configuration
    try:
        if args.config:
            config = load_config(path=args.config)
        elif args.profile:
            config = load_config(profile=args.profile)
        else:
            config = load_config(profile=detect_profile().value)
    except FileNotFoundError as e:
        print(f"Error: Config file not found: {e}", file=sys.stderr)
        return 1
    except UsageTrackError as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    setup_logging(config.logging)
    logger = logging.getLogger("usagetrack")

    logger.info(f"usagetrack v{__version__}")
    logger.info(f"Profile: {args.profile or detect_profile().value}")
    logger.info(f"Time zone: {config.processing.timezone}")

    if args.dry_run:
        logger.info("Dry run mode - exiting after config load")
        logger.info(f"MongoDB: {config.storage.database}")
        logger.info(f"Re-process days: {config.service.reprocess_days}")
        return 0

    try:
        if args.input is not None:
            return run_offline(args, config, logger)
        if args.recent or args.date is not None:
            return run_stored(args, config, logger)
    except (UsageTrackError, PyMongoError) as e:
        logger.error(f"Run failed: {e}")
        return 1

    print("Error: one of --input, --date or --recent is required", file=sys.stderr)
    return 2


if __name__ == "__main__":
    sys.exit(main())
