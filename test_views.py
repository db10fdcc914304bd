"""
Tests for the view selectors built on the engine.
"""
import asyncio
from datetime import timedelta

import pytest

from conftest import NOW, FakeSource, make_event
from whenis.directory import DirectoryCache
from whenis.engine import ScatterGatherEngine
from whenis.errors import AllSourcesFailedError
from whenis.models import CalendarRef, EventRecord, PartialInstant
from whenis.views import CalendarAggregator


def aggregator_for(source, clock):
    directory = DirectoryCache(source, clock=clock)
    engine = ScatterGatherEngine(directory, source, tz="UTC")
    return CalendarAggregator(directory, engine, source, now=lambda: NOW)


def refs(*names):
    return [CalendarRef(id=n, display_name=n.title(), summary=n.title()) for n in names]


def test_search_scenario_with_a_timed_out_calendar(clock):
    source = FakeSource(
        refs("qualifying", "race", "stuck"),
        events={
            "qualifying": [make_event("F1 Qualifying", NOW + timedelta(hours=2), calendar="qualifying")],
            "race": [make_event("F1 Race", NOW + timedelta(days=1), calendar="race")],
        },
        delays={"stuck": 5.0},
    )
    result = asyncio.run(aggregator_for(source, clock).search("f1", 2, timeout=0.2))
    assert [e.title for e in result.events] == ["F1 Qualifying", "F1 Race"]
    assert result.failed_calendars == ("stuck",)


def test_search_only_returns_future_starts(clock):
    source = FakeSource(
        refs("talks"),
        events={"talks": [
            make_event("Talk running", NOW - timedelta(minutes=30), NOW + timedelta(minutes=30), calendar="talks"),
            make_event("Talk next", NOW + timedelta(hours=4), calendar="talks"),
        ]},
    )
    result = asyncio.run(aggregator_for(source, clock).search("talk", 5))
    assert [e.title for e in result.events] == ["Talk next"]


def test_running_event_does_not_use_up_the_search_limit(clock):
    source = FakeSource(
        refs("talks"),
        events={"talks": [
            make_event("Talk running", NOW - timedelta(minutes=30), NOW + timedelta(minutes=30), calendar="talks"),
            make_event("Talk next", NOW + timedelta(hours=4), calendar="talks"),
        ]},
    )
    result = asyncio.run(aggregator_for(source, clock).search("talk", 1))
    assert [e.title for e in result.events] == ["Talk next"]
    (_, query), = source.calls
    assert query.starts_at_or_after == NOW


def test_running_event_does_not_hide_next_in_title_fallback(clock):
    source = FakeSource(
        refs("talks"),
        events={"talks": [
            make_event("Talk running", NOW - timedelta(minutes=30), NOW + timedelta(minutes=30), calendar="talks"),
            make_event("Talk next", NOW + timedelta(hours=4), calendar="talks"),
        ]},
    )
    aggregator = aggregator_for(source, clock)
    assert asyncio.run(aggregator.query_by_calendar_title("talks")).title == "Talk next"
    assert asyncio.run(aggregator.find_next("talk")).title == "Talk next"


def test_search_sends_text_and_time_bound(clock):
    source = FakeSource(refs("a"))
    asyncio.run(aggregator_for(source, clock).search("stream", 3))
    (_, query), = source.calls
    assert query.text == "stream"
    assert query.time_min == NOW
    assert query.max_results == 3


def test_search_total_failure_raises(clock):
    source = FakeSource(refs("a", "b"), failures={"a": OSError("x"), "b": OSError("y")})
    with pytest.raises(AllSourcesFailedError):
        asyncio.run(aggregator_for(source, clock).search("anything", 1))


def test_title_fallback_picks_earliest_across_matching_calendars(clock):
    source = FakeSource(
        [
            CalendarRef(id="f1", display_name="F1 Season", summary="F1 Season"),
            CalendarRef(id="games", display_name="Game Releases", summary="Game Releases"),
            CalendarRef(id="f1-academy", display_name="F1 Academy", summary="F1 Academy"),
        ],
        events={
            "f1": [make_event("GP", NOW + timedelta(days=3), calendar="f1")],
            "f1-academy": [make_event("Academy race", NOW + timedelta(days=1), calendar="f1-academy")],
            "games": [make_event("Release", NOW + timedelta(hours=1), calendar="games")],
        },
    )
    event = asyncio.run(aggregator_for(source, clock).query_by_calendar_title("f1"))
    assert event.title == "Academy race"
    assert all(query.max_results == 1 and query.starts_at_or_after == NOW for _, query in source.calls)


def test_title_fallback_tie_goes_to_directory_order(clock):
    same_time = NOW + timedelta(hours=6)
    source = FakeSource(
        refs("league one", "league two"),
        events={
            "league two": [make_event("Match B", same_time, calendar="league two")],
            "league one": [make_event("Match A", same_time, calendar="league one")],
        },
        delays={"league one": 0.02},
    )
    event = asyncio.run(aggregator_for(source, clock).query_by_calendar_title("LEAGUE"))
    assert event.title == "Match A"


def test_title_fallback_without_matching_calendar(clock, calendars):
    source = FakeSource(calendars)
    assert asyncio.run(aggregator_for(source, clock).query_by_calendar_title("cooking")) is None
    assert source.calls == []


def test_title_fallback_never_matches_primary(clock, calendars):
    source = FakeSource(calendars, events={"primary@example.com": [make_event("secret", NOW + timedelta(hours=1))]})
    assert asyncio.run(aggregator_for(source, clock).query_by_calendar_title("bot")) is None


def test_find_next_falls_back_to_calendar_titles(clock, calendars):
    source = FakeSource(
        calendars,
        events={"games": [make_event("Big launch", NOW + timedelta(days=2), calendar="games")]},
    )
    event = asyncio.run(aggregator_for(source, clock).find_next("game releases"))
    assert event.title == "Big launch"


def test_find_next_prefers_event_match(clock, calendars):
    source = FakeSource(
        calendars,
        events={"games": [
            make_event("Big launch", NOW + timedelta(days=2), calendar="games"),
            make_event("Formula 1 tie-in game", NOW + timedelta(days=5), calendar="games"),
        ]},
    )
    event = asyncio.run(aggregator_for(source, clock).find_next("formula 1"))
    assert event.title == "Formula 1 tie-in game"


def test_ongoing_scenario(clock):
    source = FakeSource(
        refs("fest", "old"),
        events={
            "fest": [
                make_event("Running", NOW - timedelta(days=5), NOW + timedelta(hours=1), calendar="fest"),
                make_event("Finished", NOW - timedelta(days=2), NOW - timedelta(hours=1), calendar="fest"),
                make_event("Ends now", NOW - timedelta(hours=2), NOW, calendar="fest"),
            ],
            "old": [
                make_event("Too old", NOW - timedelta(days=15), NOW + timedelta(hours=1), calendar="old"),
                make_event("Just outside", NOW - timedelta(days=11), NOW + timedelta(days=1), calendar="old"),
            ],
        },
    )
    result = asyncio.run(aggregator_for(source, clock).ongoing())
    assert [e.title for e in result.events] == ["Running"]
    (_, query), _ = source.calls
    assert query.time_min == NOW - timedelta(days=10)
    assert query.time_max == NOW
    assert query.max_results is None


def test_ongoing_reports_unparseable_end(clock):
    broken = EventRecord(id="x", title="No end", start=PartialInstant.at(NOW - timedelta(days=1)),
                         end=PartialInstant(date="soon"), source_calendar="fest")

    class PassThrough(FakeSource):
        async def list_events(self, calendar_id, query):
            return [broken]

    result = asyncio.run(aggregator_for(PassThrough(refs("fest")), clock).ongoing())
    assert result.events == ()
    assert [e.field for e in result.malformed] == ["end"]


def test_directory_names(clock, calendars):
    source = FakeSource(calendars)
    assert asyncio.run(aggregator_for(source, clock).directory_names()) == ["Formula 1", "Game Releases"]


def test_add_event_writes_to_primary(clock):
    source = FakeSource()
    created = asyncio.run(aggregator_for(source, clock).add_event(
        "someone", "Movie night", "bring snacks", NOW, timedelta(hours=2)))
    (calendar_id, body), = source.inserted
    assert calendar_id == "primary"
    assert body["start"] == {"dateTime": NOW.isoformat()}
    assert body["end"] == {"dateTime": (NOW + timedelta(hours=2)).isoformat()}
    assert body["creator"] == {"displayName": "someone"}
    assert created["id"] == "created"


def test_add_event_rejects_naive_start(clock):
    with pytest.raises(ValueError):
        asyncio.run(aggregator_for(FakeSource(), clock).add_event(
            "someone", "x", "", NOW.replace(tzinfo=None), timedelta(hours=1)))
