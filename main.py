#!/usr/bin/env python3
"""
whenis - Main Entry Point

Answers one calendar question from the command line using the same engine the
chat bot uses:

    python main.py f1            # next event matching "f1"
    python main.py -n 5 f1       # next five matches
    python main.py --ongoing     # events running right now
    python main.py --list        # calendar names
"""

import argparse
import asyncio
import sys

from utils.environ import QUERY_TIMEOUT_SECONDS
from utils.logging import setup_logging
from whenis.directory import DirectoryCache
from whenis.engine import ScatterGatherEngine
from whenis.errors import AllSourcesFailedError, DirectoryUnavailableError
from whenis.google_api import build_service
from whenis.source import GoogleCalendarSource
from whenis.views import CalendarAggregator

logger = setup_logging()


def build_aggregator(service, http_factory=None) -> CalendarAggregator:
    """Wire source, directory cache, engine and views together."""
    source = GoogleCalendarSource(service, http_factory)
    directory = DirectoryCache(source)
    engine = ScatterGatherEngine(directory, source)
    return CalendarAggregator(directory, engine, source)


def describe(event) -> str:
    when = event.start.date_time or event.start.date or "unknown time"
    return f"{event.title} ({when})"


async def run(args, aggregator: CalendarAggregator) -> int:
    if args.list:
        names = await aggregator.directory_names(timeout=args.timeout)
        print(" ".join(f"`{name}`" for name in names))
        return 0

    if args.ongoing:
        result = await aggregator.ongoing(timeout=args.timeout)
        events = result.events
    elif args.limit > 1:
        result = await aggregator.search(args.query, args.limit, timeout=args.timeout)
        events = result.events
    else:
        result = None
        event = await aggregator.find_next(args.query, timeout=args.timeout)
        events = [event] if event else []

    if result is not None and result.errors:
        logger.warning(f"Some calendars did not answer: {', '.join(result.failed_calendars)}")
    if not events:
        print("no results")
        return 0
    for event in events:
        print(describe(event))
    return 0


def main():
    """Main application entry point."""
    parser = argparse.ArgumentParser(prog="whenis", description="Find when calendar events happen.")
    parser.add_argument("query", nargs="*", help="text to look for")
    parser.add_argument("--list", action="store_true", help="list all available calendars")
    parser.add_argument("--ongoing", action="store_true", help="show events happening now")
    parser.add_argument("-n", "--limit", type=int, default=1, help="number of matches to show")
    parser.add_argument("--timeout", type=float, default=QUERY_TIMEOUT_SECONDS, help="seconds to wait for calendars")
    args = parser.parse_args()
    args.query = " ".join(args.query)

    if not (args.list or args.ongoing or args.query):
        parser.error("a query, --list or --ongoing is required")

    try:
        service, http_factory = build_service()
        aggregator = build_aggregator(service, http_factory)
        sys.exit(asyncio.run(run(args, aggregator)))
    except KeyboardInterrupt:
        logger.info("Stopped by user")
    except (AllSourcesFailedError, DirectoryUnavailableError) as e:
        logger.error(f"could not complete your request: {e}")
        sys.exit(2)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
