"""
models.py: Immutable records passed between the directory, engine and views.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from whenis.errors import MalformedTimeError, SourceError


@dataclass(frozen=True)
class CalendarRef:
    """One entry of the calendar directory."""
    id: str
    display_name: str
    is_primary: bool = False
    summary: str = ""

    @classmethod
    def from_google(cls, item: Dict[str, Any]) -> "CalendarRef":
        summary = item.get("summary", "")
        return cls(
            id=item["id"],
            display_name=item.get("summaryOverride") or summary or item["id"],
            is_primary=bool(item.get("primary", False)),
            summary=summary,
        )


@dataclass(frozen=True)
class DirectorySnapshot:
    """The directory as of one successful fetch. Replaced wholesale, never mutated."""
    entries: Tuple[CalendarRef, ...] = ()
    change_token: Optional[str] = None
    refreshed_at: Optional[float] = None


@dataclass(frozen=True)
class PartialInstant:
    """Google's EventDateTime: either a full RFC 3339 timestamp or a bare date."""
    date_time: Optional[str] = None
    date: Optional[str] = None

    @classmethod
    def from_google(cls, value: Optional[Dict[str, Any]]) -> "PartialInstant":
        value = value or {}
        return cls(date_time=value.get("dateTime") or None, date=value.get("date") or None)

    def to_google(self) -> Dict[str, str]:
        if self.date_time:
            return {"dateTime": self.date_time}
        if self.date:
            return {"date": self.date}
        return {}

    @classmethod
    def at(cls, instant: datetime) -> "PartialInstant":
        return cls(date_time=instant.isoformat())


@dataclass(frozen=True)
class EventRecord:
    id: str
    title: str
    start: PartialInstant
    end: PartialInstant
    source_calendar: str
    description: str = ""
    location: str = ""

    @classmethod
    def from_google(cls, item: Dict[str, Any], calendar_id: str) -> "EventRecord":
        return cls(
            id=item.get("id", ""),
            title=item.get("summary", ""),
            description=item.get("description", ""),
            location=item.get("location", ""),
            start=PartialInstant.from_google(item.get("start")),
            end=PartialInstant.from_google(item.get("end")),
            source_calendar=calendar_id,
        )


@dataclass(frozen=True)
class EventQuery:
    """
    Filter sent to every calendar in one scatter-gather call.

    Deleted events are always excluded, recurring events are always expanded
    into single occurrences and results are always ordered by start time;
    those are not options.

    starts_at_or_after skips events that began earlier (Google's timeMin
    only bounds the end) before they count against max_results.
    """
    text: str = ""
    time_min: Optional[datetime] = None
    time_max: Optional[datetime] = None
    max_results: Optional[int] = None
    starts_at_or_after: Optional[datetime] = None


@dataclass(frozen=True)
class QueryResult:
    """
    Outcome of one aggregate call.

    An empty events tuple with an empty errors tuple means "nothing matched";
    errors present means coverage is degraded and callers should say so.
    """
    events: Tuple[EventRecord, ...] = ()
    errors: Tuple[SourceError, ...] = ()
    malformed: Tuple[MalformedTimeError, ...] = ()

    @property
    def failed_calendars(self) -> Tuple[str, ...]:
        return tuple(e.calendar_id for e in self.errors)

    @property
    def complete(self) -> bool:
        return not self.errors
