"""Prospect monitor batch runner.

Runs one batch monitoring pass from the command line, for a watch list file
or prospects given as arguments, and prints either a JSON result or a rendered
alert digest. The exit code is 0 when every prospect succeeded, 2 when some
failed, and 1 on a fatal error.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .config import MonitorSettings, WatchList
from .digest import DIGEST_FORMATS, AlertDigestBuilder, DigestConfig
from .errors import ProspectMonitorError
from .logging_config import setup_logging
from .monitor import BatchMonitor, ProspectMonitor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Prospect monitor - searches recent news for each prospect and classifies it"
    )

    parser.add_argument(
        "--watchlist",
        type=Path,
        help="YAML or JSON file with 'prospects' and 'keywords' lists",
    )

    parser.add_argument(
        "--prospect",
        action="append",
        default=[],
        help="Prospect to monitor (repeatable, overrides the watch list prospects)",
    )

    parser.add_argument(
        "--keyword",
        action="append",
        default=[],
        help="Keyword to monitor (repeatable, overrides the watch list keywords)",
    )

    parser.add_argument(
        "--settings",
        type=Path,
        help="YAML file with a 'settings' mapping applied on top of the environment",
    )

    parser.add_argument(
        "--delay",
        type=float,
        help="Seconds to pause between prospects (default: from settings)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the batch result as JSON",
    )

    parser.add_argument(
        "--digest",
        choices=sorted(DIGEST_FORMATS),
        default="text",
        help="Digest format when not printing JSON (default: text)",
    )

    parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write output to this file instead of stdout",
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        help="Write logs to file",
    )

    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser


def resolve_watchlist(args: argparse.Namespace) -> WatchList:
    data = {"prospects": [], "keywords": []}
    if args.watchlist:
        watchlist = WatchList.from_file(args.watchlist)
        data = {"prospects": watchlist.prospects, "keywords": watchlist.keywords}
    if args.prospect:
        data["prospects"] = args.prospect
    if args.keyword:
        data["keywords"] = args.keyword
    return WatchList.from_dict(data)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point for the batch runner."""
    args = build_parser().parse_args(argv)

    load_dotenv()
    logger = setup_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        log_file=args.log_file,
        # stdout carries the JSON or digest output
        stream=sys.stderr,
    )

    try:
        settings = (
            MonitorSettings.from_file(args.settings) if args.settings else MonitorSettings.from_env()
        )
        watchlist = resolve_watchlist(args)
    except ProspectMonitorError as exc:
        logger.error(exc.message)
        return 1

    delay = settings.batch_delay_seconds if args.delay is None else max(args.delay, 0.0)
    batch_monitor = BatchMonitor(ProspectMonitor(settings), delay)

    try:
        result = asyncio.run(batch_monitor.monitor_batch(watchlist.prospects, watchlist.keywords))
    except ProspectMonitorError as exc:
        logger.error(exc.message)
        return 1

    if args.json:
        content = json.dumps(result.to_dict(), indent=2, ensure_ascii=False)
    else:
        builder = AlertDigestBuilder(config=DigestConfig.from_env())
        content = builder.render(builder.build_digest(result), args.digest)

    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(content, encoding="utf-8")
        logger.info(f"Wrote batch output to {args.output}")
    else:
        print(content)

    return result.exit_code()


if __name__ == "__main__":
    sys.exit(main())
