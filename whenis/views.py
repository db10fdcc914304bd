"""
views.py: The read models the bot answers with.

CalendarAggregator holds no state between calls; every answer is a function
of the directory snapshot and the current time.
"""
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from utils.environ import ONGOING_LOOKBACK_DAYS, QUERY_TIMEOUT_SECONDS
from utils.logging import logger
from whenis.errors import AllSourcesFailedError
from whenis.models import EventQuery, EventRecord, PartialInstant, QueryResult
from whenis.time_model import end_instant, start_instant

# Calendar that receives events created through add_event
PRIMARY_CALENDAR = "primary"
EVENT_LOCATION = "strims.gg"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CalendarAggregator:
    """
    Args:
        directory: DirectoryCache.
        engine: ScatterGatherEngine built on the same directory.
        source: CalendarSource, only needed for add_event.
        now: returns the current aware datetime; replaceable in tests.
        lookback_days: window of the ongoing view.
    """

    def __init__(self, directory, engine, source=None,
                 now: Callable[[], datetime] = utc_now,
                 lookback_days: int = ONGOING_LOOKBACK_DAYS):
        self.directory = directory
        self.engine = engine
        self.source = source
        self._now = now
        self._lookback = timedelta(days=lookback_days)

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ SEARCH                                                             ║
    # ╚════════════════════════════════════════════════════════════════════╝

    async def search(self, text: str, limit: int, *, timeout: Optional[float] = QUERY_TIMEOUT_SECONDS) -> QueryResult:
        """Up to ``limit`` events matching ``text`` that start now or later, earliest first."""
        now = self._now()
        tz = self.engine.tz
        query = EventQuery(text=text, time_min=now, max_results=max(1, limit), starts_at_or_after=now)
        logger.info(f"Searching all calendars for {text!r} (limit {limit})")
        return await self.engine.query_all(
            query,
            total_limit=limit,
            timeout=timeout,
            where=lambda record: start_instant(record, tz) >= now,
        )

    async def query_by_calendar_title(self, text: str, *,
                                      timeout: Optional[float] = QUERY_TIMEOUT_SECONDS) -> Optional[EventRecord]:
        """
        Next event of the calendars whose name contains ``text``.

        Each matching calendar contributes its earliest upcoming event. The
        earliest start wins; on an exact tie the calendar listed first in the
        directory wins. Returns None when no calendar name matches or none of
        the matching calendars has an upcoming event. Raises
        AllSourcesFailedError when every matching calendar failed.
        """
        now = self._now()
        tz = self.engine.tz
        calendar_ids = await self.directory.ids_matching(text, timeout=timeout)
        if not calendar_ids:
            logger.info(f"No calendar title matches {text!r}")
            return None

        result = await self.engine.query_all(
            EventQuery(time_min=now, max_results=1, starts_at_or_after=now),
            timeout=timeout,
            calendar_ids=calendar_ids,
            where=lambda record: start_instant(record, tz) >= now,
        )
        if not result.events:
            return None
        # the engine's stable sort already breaks start ties by calendar_ids order
        return result.events[0]

    async def find_next(self, text: str, *, timeout: Optional[float] = QUERY_TIMEOUT_SECONDS) -> Optional[EventRecord]:
        """
        The bot's plain "when is X": best event match, else best calendar-title match.

        A total failure of the event search does not stop the title fallback;
        it is re-raised only when the fallback finds nothing either.
        """
        search_failure = None
        try:
            result = await self.search(text, 1, timeout=timeout)
        except AllSourcesFailedError as e:
            search_failure = e
        else:
            if result.events:
                return result.events[0]

        event = await self.query_by_calendar_title(text, timeout=timeout)
        if event is None and search_failure is not None:
            raise search_failure
        return event

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ ONGOING                                                            ║
    # ╚════════════════════════════════════════════════════════════════════╝

    async def ongoing(self, *, timeout: Optional[float] = QUERY_TIMEOUT_SECONDS) -> QueryResult:
        """Events that started inside the lookback window and have not ended yet."""
        now = self._now()
        window_start = now - self._lookback
        tz = self.engine.tz

        def still_running(record: EventRecord) -> bool:
            return start_instant(record, tz) >= window_start and end_instant(record, tz) > now

        return await self.engine.query_all(
            EventQuery(time_min=window_start, time_max=now),
            timeout=timeout,
            where=still_running,
        )

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ DIRECTORY & WRITES                                                 ║
    # ╚════════════════════════════════════════════════════════════════════╝

    async def directory_names(self, *, timeout: Optional[float] = QUERY_TIMEOUT_SECONDS) -> List[str]:
        return await self.directory.names(timeout=timeout)

    async def add_event(self, creator: str, title: str, description: str, start: datetime,
                        duration: timedelta, *, timeout: Optional[float] = QUERY_TIMEOUT_SECONDS):
        """Insert an event into the primary calendar. Not part of the read path."""
        if self.source is None:
            raise RuntimeError("add_event needs a calendar source")
        if start.tzinfo is None:
            raise ValueError("start must be timezone-aware")
        if duration <= timedelta(0):
            raise ValueError("duration must be positive")
        body = {
            "summary": title,
            "description": description,
            "creator": {"displayName": creator},
            "location": EVENT_LOCATION,
            "start": PartialInstant.at(start).to_google(),
            "end": PartialInstant.at(start + duration).to_google(),
        }
        logger.info(f"Adding event {title!r} for {creator} at {start.isoformat()}")
        return await asyncio.wait_for(self.source.insert_event(PRIMARY_CALENDAR, body), timeout)
