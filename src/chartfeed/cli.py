"""Command-line interface for inspecting a chartfeed backend."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from chartfeed.backend.base import ChartingBackend
from chartfeed.backend.csv_backend import CsvChartingBackend
from chartfeed.backend.http_backend import HttpChartingBackend
from chartfeed.config import Settings
from chartfeed.datafeed.adapter import Datafeed
from chartfeed.domain.models import PeriodParams
from chartfeed.errors import ChartfeedError, ConfigError
from chartfeed.logging.event_sink import JsonlEventSink, summarize_events
from chartfeed.logging.logger import DatafeedLogger, setup_logger


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""
    parser = argparse.ArgumentParser(description="Account-history datafeed tools")
    actions = parser.add_mutually_exclusive_group(required=True)
    actions.add_argument("--accounts", action="store_true", help="List account identifiers")
    actions.add_argument("--search", type=str, help="Search accounts by substring")
    actions.add_argument("--resolve", type=str, help="Print symbol metadata for an account")
    actions.add_argument("--bars", type=str, help="Fetch bars for an account")
    actions.add_argument(
        "--preflight",
        nargs="?",
        const="",
        help="Resolve the default (or given) account and run the pre-flight check",
    )
    actions.add_argument(
        "--event-summary",
        type=str,
        metavar="PATH",
        help="Summarize a JSONL event trail written with --events",
    )
    parser.add_argument("--from", dest="from_time", type=int, help="Range start (epoch seconds)")
    parser.add_argument("--to", dest="to_time", type=int, help="Range end (epoch seconds)")
    parser.add_argument("--resolution", type=str, help="Bar resolution (1D, 1W, 1M)")
    parser.add_argument("--data-source", choices=["http", "csv"], help="Backend type")
    parser.add_argument("--base-url", type=str, help="Charting API base URL")
    parser.add_argument("--data-dir", type=str, help="CSV replay directory")
    parser.add_argument("--account-type", type=str, help="Restrict accounts to this type")
    parser.add_argument("--events", type=str, help="Append protocol events to this JSONL file")
    return parser


def apply_cli_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Apply CLI values onto environment-derived settings."""
    if args.bars and (args.from_time is None or args.to_time is None):
        raise ConfigError("--bars requires --from and --to")
    if args.from_time is not None and args.to_time is not None and args.from_time > args.to_time:
        raise ConfigError("--from must not be after --to")

    overrides: dict[str, object] = {}
    if args.data_source:
        overrides["data_source"] = args.data_source
    if args.base_url:
        overrides["base_url"] = args.base_url
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if args.account_type:
        overrides["account_type"] = args.account_type
    if args.resolution:
        overrides["resolution"] = args.resolution
    if args.events:
        overrides["events_path"] = args.events
    return settings.with_overrides(**overrides)


def build_backend(settings: Settings) -> ChartingBackend:
    """Create the backend collaborator selected by settings."""
    if settings.data_source == "csv":
        return CsvChartingBackend(settings.data_dir)
    return HttpChartingBackend(
        base_url=settings.base_url,
        account_type=settings.account_type,
        preflight_lookback_days=settings.preflight_lookback_days,
        timeout=settings.request_timeout,
        max_retries=settings.max_retries,
    )


def build_datafeed(settings: Settings, backend: ChartingBackend | None = None) -> Datafeed:
    """Wire a datafeed to its backend, logger and optional event trail."""
    logger = DatafeedLogger(setup_logger(settings.log_level, settings.log_file))
    event_sink = None
    if settings.events_path:
        event_sink = JsonlEventSink(
            settings.events_path,
            max_bytes=settings.events_max_bytes,
            logger=logger,
        )
    return Datafeed.from_backend(
        backend or build_backend(settings),
        logger=logger,
        event_sink=event_sink,
    )


async def run_action(settings: Settings, args: argparse.Namespace, datafeed: Datafeed) -> Any:
    """Run the selected action and return a JSON-serializable result."""
    if args.accounts:
        return await datafeed.accounts.list_identifiers()
    if args.search is not None:
        results = await datafeed.search_symbols(args.search)
        return [result.to_record() for result in results]
    if args.resolve is not None:
        info = await datafeed.resolve_symbol(args.resolve)
        return info.to_record()
    if args.event_summary is not None:
        return summarize_events(args.event_summary)
    if args.preflight is not None:
        await datafeed.on_ready()
        symbol = await datafeed.prepare(args.preflight or None)
        return {"symbol": symbol, "state": datafeed.state.value}

    page = await datafeed.get_bars(
        {"ticker": args.bars, "name": args.bars},
        settings.resolution,
        PeriodParams(from_time=args.from_time, to_time=args.to_time),
    )
    return {"bars": [bar.to_record() for bar in page.bars], "meta": page.meta()}


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = apply_cli_overrides(Settings.from_env(), args)
    except ConfigError as exc:
        print(f"Configuration error: {exc}")
        return 2

    backend = build_backend(settings)
    datafeed = build_datafeed(settings, backend)
    try:
        result = asyncio.run(run_action(settings, args, datafeed))
    except ChartfeedError as exc:
        print(f"Datafeed error: {exc}")
        return 1
    finally:
        datafeed.close()
        backend.close()
    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
