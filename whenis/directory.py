"""
directory.py: Cached view of which calendars exist.

The cache holds one immutable DirectorySnapshot. Refreshes are serialized and
rate-limited by a TTL; a finished refresh publishes its result with a single
reference assignment, so readers see either the old or the new snapshot and
never a mix. Readers take no lock.
"""
import asyncio
import time
from typing import Callable, List, Optional

from utils.environ import DIRECTORY_TTL_SECONDS
from utils.logging import logger
from whenis.errors import NOT_MODIFIED, DirectoryUnavailableError
from whenis.models import CalendarRef, DirectorySnapshot


def contains_fold(haystack: str, needle: str) -> bool:
    """Case-insensitive containment."""
    return needle.casefold() in (haystack or "").casefold()


class DirectoryCache:
    """
    Process-lifetime cache of the calendar directory.

    Construct one per source and pass it to the engine; nothing here is
    module-global, so tests can run independent caches with fake clocks.

    Args:
        source: a CalendarSource (only fetch_directory is used).
        ttl: minimum seconds between two fetches.
        clock: monotonic time source.
    """

    def __init__(self, source, ttl: float = DIRECTORY_TTL_SECONDS,
                 clock: Callable[[], float] = time.monotonic):
        self._source = source
        self._ttl = ttl
        self._clock = clock
        self._snapshot: Optional[DirectorySnapshot] = None
        self._last_attempt: Optional[float] = None
        self._refresh_lock = asyncio.Lock()

    @property
    def snapshot(self) -> Optional[DirectorySnapshot]:
        """The currently published snapshot, or None before the first successful fetch."""
        return self._snapshot

    def _is_fresh(self) -> bool:
        return self._last_attempt is not None and self._clock() - self._last_attempt < self._ttl

    async def refresh(self, force: bool = False, timeout: Optional[float] = None) -> DirectorySnapshot:
        """
        Refresh the directory if the TTL has elapsed (or ``force`` is set).

        Returns the snapshot readers should use. Raises
        DirectoryUnavailableError only when no snapshot has ever been
        loaded; later failures keep serving the stale snapshot.
        """
        if not force and self._snapshot is not None and self._is_fresh():
            return self._snapshot

        async with self._refresh_lock:
            # another caller may have refreshed while we waited for the lock
            if not force and self._snapshot is not None and self._is_fresh():
                return self._snapshot

            previous = self._snapshot
            token = previous.change_token if previous is not None else None
            self._last_attempt = self._clock()
            try:
                fetched = await asyncio.wait_for(self._source.fetch_directory(token), timeout)
            except Exception as e:
                logger.error(f"failed to refresh calendar list: {e}")
                if previous is None:
                    self._last_attempt = None
                    raise DirectoryUnavailableError(f"calendar list could not be loaded: {e}") from e
                return previous

            if fetched is NOT_MODIFIED:
                if previous is not None:
                    return previous
                # a conditional fetch is never sent without a snapshot, but don't trust the source
                self._last_attempt = None
                raise DirectoryUnavailableError("calendar source reported no changes before any listing")

            entries, new_token = fetched
            self._snapshot = DirectorySnapshot(
                entries=tuple(entries),
                change_token=new_token,
                refreshed_at=self._last_attempt,
            )
            logger.info(f"Calendar directory refreshed: {len(entries)} calendars")
            return self._snapshot

    async def refresh_forever(self, stop_event: asyncio.Event, timeout: Optional[float] = None):
        """
        Keep the directory warm until ``stop_event`` is set.

        The caller owns the task running this coroutine and is expected to
        cancel or stop it on shutdown.
        """
        while not stop_event.is_set():
            try:
                await self.refresh(force=True, timeout=timeout)
            except DirectoryUnavailableError as e:
                logger.warning(f"Background directory refresh failed: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._ttl)
            except asyncio.TimeoutError:
                pass

    # ╔════════════════════════════════════════════════════════════════════╗
    # ║ READERS                                                            ║
    # ╚════════════════════════════════════════════════════════════════════╝

    async def list(self, timeout: Optional[float] = None) -> List[CalendarRef]:
        snapshot = await self.refresh(timeout=timeout)
        return list(snapshot.entries)

    async def ids(self, timeout: Optional[float] = None) -> List[str]:
        snapshot = await self.refresh(timeout=timeout)
        return [ref.id for ref in snapshot.entries]

    async def ids_matching(self, text: str, timeout: Optional[float] = None) -> List[str]:
        """Ids of non-primary calendars whose display name or summary contains ``text``."""
        snapshot = await self.refresh(timeout=timeout)
        return [
            ref.id for ref in snapshot.entries
            if not ref.is_primary and (contains_fold(ref.display_name, text) or contains_fold(ref.summary, text))
        ]

    async def names(self, timeout: Optional[float] = None) -> List[str]:
        """Display names for listing; the primary calendar and imported feed URLs are hidden."""
        snapshot = await self.refresh(timeout=timeout)
        return [
            ref.display_name for ref in snapshot.entries
            if not ref.is_primary and not ref.display_name.startswith("http")
        ]
