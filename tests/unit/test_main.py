"""Tests for the command line entry point."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

from usagetrack.__main__ import load_snapshots, main, parse_args
from usagetrack.processing.dates import start_of_day_millis

DAY = "2024-03-01"


def write_snapshot(path: Path, date_string: str = DAY) -> Path:
    start = start_of_day_millis(date_string)
    snapshot = {
        "date_string": date_string,
        "events": [
            {"package_name": "a", "kind": "activity_resumed", "timestamp": start, "date_string": date_string},
            {"package_name": "b", "kind": "activity_resumed", "timestamp": start + 5000, "date_string": date_string},
            {"package_name": "b", "kind": "activity_paused", "timestamp": start + 9000, "date_string": date_string},
        ],
        "notifications": [],
        "hidden": [],
    }
    path.write_text(json.dumps(snapshot))
    return path


class TestMain:
    """Tests for main()."""

    def test_offline_run_writes_result(self, tmp_path: Path) -> None:
        """A snapshot is processed and the result written as JSON."""
        snapshot = write_snapshot(tmp_path / "day.json")
        output = tmp_path / "result.json"

        code = main(["--profile", "test", "--input", str(snapshot), "--output", str(output)])

        assert code == 0
        result = json.loads(output.read_text())
        usage = {r["package_name"]: r["usage_time_millis"] for r in result["usage_records"]}
        assert usage == {"a": 5000, "b": 4000}
        assert result["device_summary"]["total_usage_time_millis"] == 9000

    def test_offline_run_capped_at_now(self, tmp_path: Path) -> None:
        """An in-progress day counts open usage only up to the current time."""
        start = start_of_day_millis(DAY)
        snapshot = tmp_path / "today.json"
        snapshot.write_text(
            json.dumps(
                {
                    "date_string": DAY,
                    "events": [
                        {
                            "package_name": "a",
                            "kind": "activity_resumed",
                            "timestamp": start + 1000,
                            "date_string": DAY,
                        }
                    ],
                }
            )
        )
        output = tmp_path / "result.json"

        with patch("usagetrack.__main__.now_millis", return_value=start + 11_000):
            code = main(["--profile", "test", "--input", str(snapshot), "--output", str(output)])

        assert code == 0
        result = json.loads(output.read_text())
        assert result["usage_records"][0]["usage_time_millis"] == 10_000

    def test_stored_date_passes_foreground_hint(self) -> None:
        """The foreground hint reaches the stored-date run."""
        with (
            patch("usagetrack.storage.MongoStorageClient.from_config", return_value=MagicMock()),
            patch("usagetrack.__main__.DailyProcessingService") as service_cls,
        ):
            code = main(["--profile", "test", "--date", DAY, "--foreground-hint", "chat"])

        assert code == 0
        service = service_cls.return_value
        service.process_date.assert_called_once()
        assert service.process_date.call_args.kwargs["foreground_hint"] == "chat"

    def test_missing_input_file(self, tmp_path: Path) -> None:
        """A missing snapshot is an error."""
        code = main(["--profile", "test", "--input", str(tmp_path / "nope.json")])

        assert code == 1

    def test_invalid_date(self) -> None:
        """Malformed dates are rejected before anything runs."""
        assert main(["--profile", "test", "--date", "03/01/2024"]) == 1

    def test_dry_run(self) -> None:
        """Dry run exits after loading config."""
        assert main(["--profile", "test", "--dry-run"]) == 0

    def test_no_mode_selected(self) -> None:
        """One of the run modes is required."""
        assert main(["--profile", "test"]) == 2


class TestLoadSnapshots:
    """Tests for snapshot loading."""

    def test_list_filtered_by_date(self, tmp_path: Path) -> None:
        """A list file can be narrowed to one date."""
        first = json.loads(write_snapshot(tmp_path / "a.json", DAY).read_text())
        second = json.loads(write_snapshot(tmp_path / "b.json", "2024-03-02").read_text())
        path = tmp_path / "both.json"
        path.write_text(json.dumps([first, second]))

        days = load_snapshots(path, "2024-03-02")

        assert [d.date_string for d in days] == ["2024-03-02"]
        assert len(days[0].events) == 3

    def test_date_filled_in(self, tmp_path: Path) -> None:
        """A snapshot without a date takes the requested one."""
        path = tmp_path / "nodate.json"
        path.write_text(json.dumps({"events": []}))

        days = load_snapshots(path, DAY)

        assert days[0].date_string == DAY


class TestParseArgs:
    """Tests for argument parsing."""

    def test_foreground_hint_defaults_to_none(self) -> None:
        """No hint unless one is given."""
        assert parse_args(["--date", DAY]).foreground_hint is None

    def test_foreground_hint(self) -> None:
        """The hint is read as a package name."""
        args = parse_args(["--date", DAY, "--foreground-hint", "chat"])

        assert args.foreground_hint == "chat"
