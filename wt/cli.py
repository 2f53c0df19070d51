#!/usr/bin/env python3
"""
CLI entry point for the wt walk-tracking toolkit.

Defines the following commands:
  wt replay <recording.csv> [--preset walking|running] [--out FILE]
  wt serve [--port 8000] [--preset walking|running]
  wt version
"""

import json
import sys
from argparse import ArgumentParser, Namespace
from importlib.metadata import PackageNotFoundError, version as _get_version
from pathlib import Path

import uvicorn

from wt.utils.log import attach_file_log, get_logger, set_level
from wt.server import create_app
from wt.parsers.recording import ParseStats, parse_recording
from wt.analysis.config import PipelineConfig
from wt.analysis.pipeline import TrackingPipeline
from wt.utils.validate import FixRecord, SessionOut

logger = get_logger(__name__)


def replay(recording: str, preset: str, out: str | None) -> SessionOut:
    """
    Replay a recorded session through a fresh pipeline.

    Parameters
    ----------
    recording
        Path to the CSV recording.
    preset
        Name of the PipelineConfig preset.
    out
        Optional path to write the final snapshot to, as JSON.
    """
    logger.info("Replay: recording=%s, preset=%s", recording, preset)
    pipeline = TrackingPipeline(PipelineConfig.preset(preset))
    stats = ParseStats()

    for record in parse_recording(recording, stats):
        if isinstance(record, FixRecord):
            try:
                fix = record.to_raw_fix()
            except ValueError as exc:
                logger.warning("Skipping fix at t=%d: %s", record.ts, exc)
                continue
            pipeline.process(fix)
        else:
            pipeline.on_sensor_step_count(record.steps, record.ts, record.acceleration)

    result = SessionOut.from_snapshot(pipeline.snapshot())
    logger.info(
        "Replayed %d rows (%d fixes, %d step readings, %d skipped)",
        stats.rows_total, stats.fixes, stats.steps, stats.skipped,
    )
    logger.info(
        "Distance %.1fm, steps %d, state %s, %d/%d fixes accepted, %d path vertices",
        result.total_meters, result.total_steps, result.movement_state,
        result.accepted, stats.fixes, len(result.path),
    )

    if out:
        payload = result.model_dump()
        payload["stats"] = pipeline.stats()
        payload["curve"] = pipeline.smoothed_curve()
        Path(out).write_text(json.dumps(payload, indent=2), encoding="utf-8")
        logger.info("Wrote snapshot to %s", out)
    return result


def serve(port: int, preset: str) -> None:
    """
    Spin up FastAPI+Uvicorn to accept live fixes and step readings.

    Parameters
    ----------
    port
        Port on which to serve HTTP.
    preset
        Name of the PipelineConfig preset for new sessions.
    """
    logger.info("Serve: port=%d, preset=%s", port, preset)
    app = create_app(PipelineConfig.preset(preset))
    uvicorn.run(app, host="127.0.0.1", port=port)


def version() -> None:
    """
    Print the installed wt package version.
    """
    try:
        ver = _get_version("wt")
    except PackageNotFoundError:
        ver = "unknown"
    logger.info("wt version %s", ver)


def parse_args(argv: list[str] | None = None) -> Namespace:
    """
    Parse command-line arguments and return the populated namespace.
    """
    parser = ArgumentParser(prog="wt")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every rejected fix.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # wt replay
    p = subparsers.add_parser("replay", help="Replay a recorded session.")
    p.add_argument("recording", type=str, help="CSV recording of fixes and step readings.")
    p.add_argument(
        "--preset", choices=("walking", "running"), default="walking", help="Pipeline preset."
    )
    p.add_argument("--out", type=str, help="Write the final snapshot to this JSON file.")

    # wt serve
    p = subparsers.add_parser("serve", help="Serve via FastAPI + Uvicorn.")
    p.add_argument(
        "--port", type=int, default=8000, help="Port number to serve on."
    )
    p.add_argument(
        "--preset", choices=("walking", "running"), default="walking", help="Pipeline preset."
    )

    # wt version
    subparsers.add_parser("version", help="Show wt version and exit.")

    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    """
    Entry point: dispatch to the selected subcommand.
    """
    args = parse_args(argv)
    if args.verbose:
        set_level("DEBUG")
    attach_file_log(args.command, "DEBUG" if args.verbose else "INFO")
    match args.command:
        case "replay":
            replay(args.recording, args.preset, args.out)
        case "serve":
            serve(args.port, args.preset)
        case "version":
            version()
        case _:
            sys.exit(1)


if __name__ == "__main__":
    main()
