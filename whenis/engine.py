"""
engine.py: Scatter-gather query across every known calendar.

One task per calendar, all owned by the query_all call that created them.
The call waits for every task (success, failure or timeout) before merging,
so the result never depends on which calendar answered first.
"""
import asyncio
from typing import Callable, Iterable, List, Optional

from utils.environ import MAX_CONCURRENT_QUERIES, QUERY_TIMEOUT_SECONDS
from utils.logging import logger
from whenis.errors import AllSourcesFailedError, MalformedTimeError, SourceError
from whenis.models import EventQuery, EventRecord, QueryResult
from whenis.time_model import sort_by_start


class ScatterGatherEngine:
    """
    Args:
        directory: DirectoryCache supplying the calendar ids to fan out to.
        source: CalendarSource answering the per-calendar queries.
        max_concurrency: per-call cap on requests in flight.
        tz: timezone for date-only events (defaults to DEFAULT_TIMEZONE).
    """

    def __init__(self, directory, source, max_concurrency: int = MAX_CONCURRENT_QUERIES, tz=None):
        self._directory = directory
        self._source = source
        self._max_concurrency = max(1, max_concurrency)
        self.tz = tz

    async def query_all(
        self,
        query: EventQuery,
        total_limit: Optional[int] = None,
        *,
        timeout: Optional[float] = QUERY_TIMEOUT_SECONDS,
        calendar_ids: Optional[Iterable[str]] = None,
        where: Optional[Callable[[EventRecord], bool]] = None,
    ) -> QueryResult:
        """
        Send ``query`` to every calendar and merge the answers.

        The merged events are ordered by normalized start, filtered by
        ``where`` (which may raise MalformedTimeError to drop a record) and
        only then truncated to ``total_limit``, so a near event from one
        calendar is never lost to a later one from another.

        Per-calendar failures, including running past ``timeout``, end up in
        ``QueryResult.errors``. AllSourcesFailedError is raised only when no
        calendar answered at all.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout

        if calendar_ids is None:
            calendar_ids = await self._directory.ids(timeout=timeout)
        # captured once: a directory refresh mid-query does not change the fan-out
        ids = tuple(calendar_ids)
        if not ids:
            return QueryResult()

        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = [
            asyncio.create_task(self._query_one(calendar_id, query, semaphore, deadline))
            for calendar_id in ids
        ]
        try:
            outcomes = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        merged: List[EventRecord] = []
        errors: List[SourceError] = []
        succeeded = 0
        # merge in directory order rather than completion order
        for outcome in outcomes:
            if isinstance(outcome, SourceError):
                errors.append(outcome)
            else:
                succeeded += 1
                merged.extend(outcome)

        if not succeeded:
            raise AllSourcesFailedError(errors)

        ordered, malformed = sort_by_start(merged, self.tz)
        if where is not None:
            kept = []
            for record in ordered:
                try:
                    if where(record):
                        kept.append(record)
                except MalformedTimeError as e:
                    logger.warning(str(e))
                    malformed.append(e)
            ordered = kept
        if total_limit is not None:
            ordered = ordered[:max(0, total_limit)]

        if errors:
            logger.warning(f"Query answered by {succeeded}/{len(ids)} calendars")
        return QueryResult(events=tuple(ordered), errors=tuple(errors), malformed=tuple(malformed))

    async def _query_one(self, calendar_id: str, query: EventQuery, semaphore: asyncio.Semaphore,
                         deadline: Optional[float]):
        """Returns the calendar's events, or a SourceError. Only cancellation escapes."""
        remaining = None
        if deadline is not None:
            remaining = max(0.0, deadline - asyncio.get_running_loop().time())
        try:
            return await asyncio.wait_for(self._fetch(calendar_id, query, semaphore), remaining)
        except asyncio.TimeoutError:
            error = SourceError(calendar_id, TimeoutError("deadline exceeded"))
        except SourceError as e:
            error = e
        except Exception as e:
            error = SourceError(calendar_id, e)
        logger.error(str(error))
        return error

    async def _fetch(self, calendar_id: str, query: EventQuery, semaphore: asyncio.Semaphore) -> List[EventRecord]:
        async with semaphore:
            return await self._source.list_events(calendar_id, query)
