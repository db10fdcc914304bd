"""
Shared fakes for the test suite: an in-memory calendar source, a manual
clock, and a helper to build events relative to a fixed "now".
"""
import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from whenis.errors import NOT_MODIFIED
from whenis.models import CalendarRef, EventRecord, PartialInstant
from whenis.time_model import end_instant, start_instant

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def make_event(title, start, end=None, calendar="cal", event_id=None):
    """Build a timed EventRecord; ``start``/``end`` are datetimes."""
    end = end or start + timedelta(hours=1)
    return EventRecord(
        id=event_id or f"{calendar}-{title}",
        title=title,
        start=PartialInstant.at(start),
        end=PartialInstant.at(end),
        source_calendar=calendar,
    )


class ManualClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


class FakeSource:
    """
    In-memory CalendarSource.

    events: calendar id -> list of EventRecord (matched like Google does:
        text in the title, end after time_min, start before time_max, start not
        before starts_at_or_after).
    failures: calendar id -> exception raised by list_events.
    delays: calendar id -> seconds slept before answering.
    """

    def __init__(self, calendars=(), events=None, failures=None, delays=None, token="etag-1"):
        self.calendars = list(calendars)
        self.token = token
        self.events = events or {}
        self.failures = failures or {}
        self.delays = delays or {}
        self.directory_error = None
        self.directory_delay = 0.0
        self.directory_calls = []
        self.calls = []
        self.cancelled = []
        self.inserted = []

    async def list_events(self, calendar_id, query):
        self.calls.append((calendar_id, query))
        try:
            if calendar_id in self.delays:
                await asyncio.sleep(self.delays[calendar_id])
        except asyncio.CancelledError:
            self.cancelled.append(calendar_id)
            raise
        if calendar_id in self.failures:
            raise self.failures[calendar_id]
        matched = []
        for record in self.events.get(calendar_id, []):
            if query.text and query.text.casefold() not in record.title.casefold():
                continue
            if query.time_min is not None and end_instant(record) <= query.time_min:
                continue
            if query.time_max is not None and start_instant(record) >= query.time_max:
                continue
            if query.starts_at_or_after is not None and start_instant(record) < query.starts_at_or_after:
                continue
            matched.append(record)
        if query.max_results is not None:
            matched = matched[:query.max_results]
        return matched

    async def fetch_directory(self, change_token):
        self.directory_calls.append(change_token)
        if self.directory_delay:
            await asyncio.sleep(self.directory_delay)
        if self.directory_error is not None:
            raise self.directory_error
        if change_token is not None and change_token == self.token:
            return NOT_MODIFIED
        return list(self.calendars), self.token

    async def insert_event(self, calendar_id, body):
        self.inserted.append((calendar_id, body))
        return {"id": "created", **body}


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def calendars():
    return [
        CalendarRef(id="primary@example.com", display_name="Bot", is_primary=True, summary="Bot"),
        CalendarRef(id="f1", display_name="Formula 1", summary="Formula 1"),
        CalendarRef(id="games", display_name="Game Releases", summary="Game Releases"),
        CalendarRef(id="feed", display_name="https://example.com/feed.ics", summary="https://example.com/feed.ics"),
    ]
