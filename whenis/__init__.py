# whenis Package
"""
whenis - calendar aggregation engine

This package answers "when is X" questions across many Google calendars:
- Directory cache of the calendars the account can see
- Concurrent scatter-gather queries with partial-failure tolerance
- Views: nearest match, calendar-title fallback, ongoing events
"""

__version__ = "1.0.0"

from .errors import (
    NOT_MODIFIED,
    AllSourcesFailedError,
    DirectoryUnavailableError,
    MalformedTimeError,
    SourceError,
    WhenisError,
)
from .models import CalendarRef, DirectorySnapshot, EventQuery, EventRecord, PartialInstant, QueryResult
from .time_model import end_instant, sort_by_start, start_instant
from .directory import DirectoryCache
from .engine import ScatterGatherEngine
from .views import CalendarAggregator

__all__ = [
    'NOT_MODIFIED', 'AllSourcesFailedError', 'DirectoryUnavailableError',
    'MalformedTimeError', 'SourceError', 'WhenisError',
    'CalendarRef', 'DirectorySnapshot', 'EventQuery', 'EventRecord', 'PartialInstant', 'QueryResult',
    'start_instant', 'end_instant', 'sort_by_start',
    'DirectoryCache', 'ScatterGatherEngine', 'CalendarAggregator',
]
