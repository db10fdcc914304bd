"""
source.py: The calendar source boundary.

CalendarSource is what the directory cache and the query engine consume.
GoogleCalendarSource implements it on top of the blocking googleapiclient
service, running each request on a worker thread.
"""
import asyncio
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union

from googleapiclient.errors import HttpError

from utils.environ import DIRECTORY_MAX_PAGES
from utils.logging import logger
from utils.rate_limiter import default_calendar_api_limiter, default_event_list_limiter
from whenis.errors import NOT_MODIFIED, MalformedTimeError
from whenis.models import CalendarRef, EventQuery, EventRecord
from whenis.retry import retry_api_call
from whenis.time_model import start_instant

# Google's maximum page size for events.list and calendarList.list
MAX_PAGE_SIZE = 250

DirectoryFetch = Union[Tuple[List[CalendarRef], Optional[str]], Any]


class CalendarSource(Protocol):
    async def list_events(self, calendar_id: str, query: EventQuery) -> List[EventRecord]:
        ...

    async def fetch_directory(self, change_token: Optional[str]) -> DirectoryFetch:
        ...

    async def insert_event(self, calendar_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        ...


# --- rfc3339 ---
# Google expects RFC 3339 with an explicit offset for timeMin/timeMax.
def rfc3339(value) -> str:
    if value.tzinfo is None:
        raise ValueError(f"naive datetime {value!r} cannot be sent as RFC 3339")
    return value.isoformat()


class GoogleCalendarSource:
    """
    CalendarSource backed by the Google Calendar v3 API.

    Args:
        service: googleapiclient Resource for calendar v3.
        http_factory: returns a fresh transport per request (httplib2 is not
            thread-safe); when None the service's own transport is used.
        list_limiter / api_limiter: token buckets for events.list and for
            everything else.
        max_directory_pages: guard against an endless calendar list.
        tz: zone for date-only starts when applying starts_at_or_after.
    """

    def __init__(self, service, http_factory=None, list_limiter=None, api_limiter=None,
                 max_directory_pages: int = DIRECTORY_MAX_PAGES, tz=None):
        self._tz = tz
        self._service = service
        self._http_factory = http_factory
        self._list_limiter = list_limiter or default_event_list_limiter()
        self._api_limiter = api_limiter or default_calendar_api_limiter()
        self._max_directory_pages = max_directory_pages

    def _execute(self, request, rate_limiter):
        if self._http_factory is None:
            return retry_api_call(request.execute, rate_limiter=rate_limiter)
        return retry_api_call(lambda: request.execute(http=self._http_factory()), rate_limiter=rate_limiter)

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ EVENTS                                                             ║
    # ╚════════════════════════════════════════════════════════════════════╝

    def _list_events_blocking(self, calendar_id: str, query: EventQuery) -> List[EventRecord]:
        params = {
            "calendarId": calendar_id,
            "showDeleted": False,
            "singleEvents": True,
            "orderBy": "startTime",
        }
        if query.text:
            params["q"] = query.text
        if query.time_min is not None:
            params["timeMin"] = rfc3339(query.time_min)
        if query.time_max is not None:
            params["timeMax"] = rfc3339(query.time_max)

        records: List[EventRecord] = []
        counted = 0
        skipped = 0
        page_token = None
        while True:
            if query.max_results is None or query.starts_at_or_after is not None:
                page_size = MAX_PAGE_SIZE
            else:
                page_size = min(query.max_results - counted, MAX_PAGE_SIZE)
            request = self._service.events().list(maxResults=page_size, pageToken=page_token, **params)
            result = self._execute(request, self._list_limiter)
            for item in result.get("items", []):
                record = EventRecord.from_google(item, calendar_id)
                if query.starts_at_or_after is not None:
                    try:
                        if start_instant(record, self._tz) < query.starts_at_or_after:
                            skipped += 1
                            continue
                    except MalformedTimeError:
                        # handed on for the engine to report; takes no result slot
                        records.append(record)
                        continue
                records.append(record)
                counted += 1
                if query.max_results is not None and counted >= query.max_results:
                    break
            page_token = result.get("nextPageToken")
            if not page_token:
                break
            if query.max_results is not None and counted >= query.max_results:
                break
        logger.debug(f"Fetched {counted} events from calendar {calendar_id} (skipped {skipped} already started)")
        return records

    async def list_events(self, calendar_id: str, query: EventQuery) -> List[EventRecord]:
        return await asyncio.to_thread(self._list_events_blocking, calendar_id, query)

    async def insert_event(self, calendar_id: str, body: Dict[str, Any]) -> Dict[str, Any]:
        request = self._service.events().insert(calendarId=calendar_id, body=body)
        return await asyncio.to_thread(self._execute, request, self._api_limiter)

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ CALENDAR DIRECTORY                                                 ║
    # ╚════════════════════════════════════════════════════════════════════╝

    def _fetch_directory_blocking(self, change_token: Optional[str]) -> DirectoryFetch:
        entries: List[CalendarRef] = []
        new_token = None
        page_token = None
        for page in range(self._max_directory_pages):
            request = self._service.calendarList().list(maxResults=MAX_PAGE_SIZE, pageToken=page_token)
            if page == 0 and change_token:
                request.headers["If-None-Match"] = change_token
            try:
                result = self._execute(request, self._api_limiter)
            except HttpError as e:
                if page == 0 and e.resp.status == 304:
                    logger.debug("Calendar list not modified")
                    return NOT_MODIFIED
                raise
            if page == 0:
                new_token = result.get("etag")
            entries.extend(CalendarRef.from_google(item) for item in result.get("items", []))
            page_token = result.get("nextPageToken")
            if not page_token:
                break
        else:
            logger.error(
                f"Calendar list still has more pages after {self._max_directory_pages}; "
                f"keeping the first {len(entries)} calendars"
            )
        logger.info(f"Fetched calendar list with {len(entries)} calendars")
        return entries, new_token

    async def fetch_directory(self, change_token: Optional[str]) -> DirectoryFetch:
        return await asyncio.to_thread(self._fetch_directory_blocking, change_token)
