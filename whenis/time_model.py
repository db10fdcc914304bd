"""
time_model.py: Normalizes event start/end values into comparable instants.

Every ordering or window check in the engine goes through start_instant /
end_instant; raw date strings are never compared.
"""
from datetime import date, datetime, time
from typing import Iterable, List, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.parser import isoparse

from utils.environ import DEFAULT_TIMEZONE
from utils.logging import logger
from whenis.errors import MalformedTimeError
from whenis.models import EventRecord, PartialInstant

# Common timezone mappings for user-friendly configuration
COMMON_TIMEZONE_ALIASES = {
    "est": "America/New_York",
    "cst": "America/Chicago",
    "mst": "America/Denver",
    "pst": "America/Los_Angeles",
    "edt": "America/New_York",
    "cdt": "America/Chicago",
    "mdt": "America/Denver",
    "pdt": "America/Los_Angeles",
    "gmt": "UTC",
    "utc": "UTC"
}


def get_timezone(tz_name: Optional[str]) -> ZoneInfo:
    """
    Get a ZoneInfo object for the specified timezone name or alias.

    Falls back to UTC if the timezone is invalid.
    """
    if not tz_name:
        return ZoneInfo("UTC")
    key = COMMON_TIMEZONE_ALIASES.get(tz_name.lower().strip(), tz_name.strip())
    try:
        return ZoneInfo(key)
    except (ZoneInfoNotFoundError, ValueError) as e:
        logger.warning(f"Invalid timezone '{tz_name}', falling back to UTC: {e}")
        return ZoneInfo("UTC")


def to_instant(value: PartialInstant, tz: Union[str, ZoneInfo, None] = None) -> datetime:
    """
    Parse a PartialInstant into an aware datetime.

    A full timestamp wins; a bare date becomes midnight in ``tz`` (defaults to
    DEFAULT_TIMEZONE). Naive timestamps are read in ``tz`` as well.
    Raises ValueError when neither field yields a valid instant.
    """
    if not isinstance(tz, ZoneInfo):
        tz = get_timezone(tz or DEFAULT_TIMEZONE)

    if value.date_time:
        try:
            parsed = isoparse(value.date_time)
        except (ValueError, OverflowError) as e:
            if not value.date:
                raise ValueError(f"unparseable timestamp {value.date_time!r}: {e}") from e
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)

    if value.date:
        try:
            day = date.fromisoformat(value.date)
        except ValueError as e:
            raise ValueError(f"unparseable date {value.date!r}: {e}") from e
        return datetime.combine(day, time.min, tzinfo=tz)

    raise ValueError("neither dateTime nor date is set")


def start_instant(record: EventRecord, tz=None) -> datetime:
    """Normalized start of ``record``; raises MalformedTimeError."""
    try:
        return to_instant(record.start, tz)
    except ValueError as e:
        raise MalformedTimeError(record, "start", e) from e


def end_instant(record: EventRecord, tz=None) -> datetime:
    """Normalized end of ``record``; raises MalformedTimeError."""
    try:
        return to_instant(record.end, tz)
    except ValueError as e:
        raise MalformedTimeError(record, "end", e) from e


def sort_by_start(records: Iterable[EventRecord], tz=None) -> Tuple[List[EventRecord], List[MalformedTimeError]]:
    """
    Order records ascending by normalized start.

    Records whose start cannot be parsed are dropped from the ordering,
    logged, and returned in the second element. The sort is stable, so
    records with equal starts keep their input order.
    """
    keyed = []
    malformed = []
    for record in records:
        try:
            keyed.append((start_instant(record, tz), record))
        except MalformedTimeError as e:
            logger.warning(str(e))
            malformed.append(e)
    keyed.sort(key=lambda pair: pair[0])
    return [record for _, record in keyed], malformed
