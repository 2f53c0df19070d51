"""Tests for the recording parser and the `wt replay` command."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from wt import cli
from wt.parsers.recording import ParseStats, parse_recording
from wt.utils.log import set_level
from wt.utils.validate import FixRecord, StepRecord

from conftest import METERS_PER_DEG_LAT, START_LAT, START_LON

HEADER = "kind,ts,lat,lon,accuracy,speed,altitude,steps\n"


@pytest.fixture(autouse=True)
def in_tmp_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Run each test from a scratch directory and drop any file log it opened."""
    monkeypatch.chdir(tmp_path)
    yield
    package_logger = logging.getLogger("wt")
    for handler in list(package_logger.handlers):
        if isinstance(handler, logging.FileHandler):
            package_logger.removeHandler(handler)
            handler.close()
    set_level("INFO")


def write_recording(path: Path, rows: list[str]) -> Path:
    path.write_text(HEADER + "".join(r + "\n" for r in rows), encoding="utf-8")
    return path


def walk_rows(n: int = 20) -> list[str]:
    rows = []
    step_deg = 1.4 / METERS_PER_DEG_LAT
    for i in range(n):
        rows.append(f"fix,{i * 1000},{START_LAT + i * step_deg:.8f},{START_LON},5.0,1.4,,")
        rows.append(f"steps,{i * 1000 + 500},,,,,,{10_000 + 2 * i}")
    return rows


def test_parse_recording_yields_typed_records(tmp_path: Path) -> None:
    path = write_recording(
        tmp_path / "rec.csv",
        [
            "fix,0,37.5665,126.978,8.5,,12.0,",
            "steps,500,,,,,,4200",
            "fix,1000,37.56651,126.978,9.0,1.2,,",
        ],
    )
    records = list(parse_recording(path))

    assert records == [
        FixRecord(ts=0, lat=37.5665, lon=126.978, accuracy=8.5, altitude=12.0),
        StepRecord(ts=500, steps=4200),
        FixRecord(ts=1000, lat=37.56651, lon=126.978, accuracy=9.0, speed=1.2),
    ]
    raw = records[0].to_raw_fix()
    assert raw.horizontal_accuracy_m == 8.5
    assert raw.speed_mps is None
    assert raw.altitude_m == 12.0


def test_parse_recording_skips_bad_rows(tmp_path: Path) -> None:
    path = write_recording(
        tmp_path / "rec.csv",
        [
            "fix,0,37.5665,126.978,8.5,,,",
            "fix,1000,137.0,126.978,8.5,,,",
            "fix,2000,37.5665,126.978,-1,,,",
            "wifi,3000,,,,,,",
            "steps,4000,,,,,,",
            "steps,5000,,,,,,12",
        ],
    )
    stats = ParseStats()
    records = list(parse_recording(path, stats))

    assert [type(r) for r in records] == [FixRecord, StepRecord]
    assert stats.rows_total == 6
    assert stats.skipped == 4
    assert stats.fixes == 1
    assert stats.steps == 1


def test_parse_recording_requires_header_columns(tmp_path: Path) -> None:
    path = tmp_path / "rec.csv"
    path.write_text("geoTime,latitude,longitude\n0,37.5,127.0\n", encoding="utf-8")
    with pytest.raises(KeyError, match="kind"):
        list(parse_recording(path))


def test_replay_writes_snapshot(tmp_path: Path) -> None:
    rec = write_recording(tmp_path / "rec.csv", walk_rows(20))
    out = tmp_path / "snapshot.json"

    cli.main(["replay", str(rec), "--out", str(out)])

    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["accepted"] == 20
    assert data["movement_state"] == "walking"
    assert data["total_meters"] == pytest.approx(19 * 1.4, rel=0.15)
    # first reading is the baseline and the first fix starts stationary
    assert 0 < data["total_steps"] <= 38
    assert data["stats"]["rejected_low_accuracy"] == 0
    assert len(data["curve"]) >= 2


def test_replay_returns_session(tmp_path: Path) -> None:
    rec = write_recording(tmp_path / "rec.csv", walk_rows(5))
    result = cli.replay(str(rec), "running", None)
    assert result.accepted == 5
    assert not (tmp_path / "snapshot.json").exists()


def test_parse_args_defaults() -> None:
    args = cli.parse_args(["serve"])
    assert args.command == "serve"
    assert args.port == 8000
    assert args.preset == "walking"


def test_replay_writes_json_log_after_global_flags(tmp_path: Path) -> None:
    rec = write_recording(tmp_path / "rec.csv", walk_rows(3))

    cli.main(["-v", "replay", str(rec)])

    log_path = tmp_path / "replay.log"
    assert log_path.exists()
    lines = [json.loads(line) for line in log_path.read_text(encoding="utf-8").splitlines()]
    assert any(line["message"].startswith("Replay: recording=") for line in lines)
    assert {line["logger"] for line in lines} >= {"wt.cli"}
    # -v also reaches the file
    assert any(line["level"] == "DEBUG" for line in lines)


def test_version_does_not_write_a_log(tmp_path: Path) -> None:
    cli.main(["version"])
    assert not (tmp_path / "replay.log").exists()
    assert not (tmp_path / "version.log").exists()
