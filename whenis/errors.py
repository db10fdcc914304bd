"""
errors.py: Error taxonomy for the aggregation engine.

Per-calendar failures are captured as SourceError values and returned next to
partial results; only AllSourcesFailedError and DirectoryUnavailableError are
raised to callers of the view selectors.
"""


class WhenisError(Exception):
    """Base class for every error raised by the engine."""


class SourceError(WhenisError):
    """One calendar's request failed (network, auth, quota or timeout)."""

    def __init__(self, calendar_id: str, cause: BaseException):
        self.calendar_id = calendar_id
        self.cause = cause
        super().__init__(f"failed to fetch events for calendar {calendar_id!r}: {cause}")


class AllSourcesFailedError(WhenisError):
    """Every calendar in one aggregate call failed."""

    def __init__(self, errors):
        self.errors = tuple(errors)
        ids = ", ".join(e.calendar_id for e in self.errors)
        super().__init__(f"all {len(self.errors)} calendar queries failed ({ids})")


class MalformedTimeError(WhenisError):
    """An event's start or end could not be normalized to an instant."""

    def __init__(self, record, field: str, cause=None):
        self.record = record
        self.field = field
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(
            f"event {record.title!r} ({record.id}) has an invalid {field} time{detail}"
        )


class DirectoryUnavailableError(WhenisError):
    """The calendar directory has never been loaded, so there is nothing to query."""


class _NotModified:
    """Marker returned by fetch_directory when the change token still matches."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "NOT_MODIFIED"


NOT_MODIFIED = _NotModified()
